"""
Package diff tool
"""

from .__version__ import (
    __author__,
    __author_email__,
    __copyright__,
    __description__,
    __license__,
    __title__,
    __url__,
    __version__,
)

from .errors import (
    PackageDiffError,
    UsageError,
    IdenticalReferenceError,
    ResolutionError,
    PackageNotFoundError,
    DownloadFailedError,
    ToolExecutionError,
    ArchiveFormatError,
    ComparisonToolError,
)

from .diff_data import (
    PackageSpec,
    ResolvedArchive,
    Manifest,
    StructuralDiff,
    PathPair,
    ComparisonOutcome,
    Identical,
    DifferentBoolean,
    ComparisonIncomplete,
    DifferentReport,
    DiffState,
    FileDiff,
    ReportDiff,
)

from .archive_format_handler import (
    ArchiveFormatHandler,
    ArchiveMember,
    DispatchingArchiveHandler,
)

from .file_comparison import (
    FileHasher,
    LineDiffTool,
    DifflibDiffTool,
    GnuDiffTool,
)

from .manifest import (
    ExclusionPattern,
    expand_braces,
    ManifestBuilder,
    diff_manifests,
    pair_paths,
    find_common_prefix,
    strip_prefix,
)

from .registry import (
    ArchiveSource,
    NpmPackSource,
    PackageResolver,
    parse_package_ref,
)

from .content_comparator import ContentComparator
from .workspace import Workspace
from .config import CompareOptions

from .package_diff import (
    ComparisonPipeline,
    compare,
    packages_equal,
)

from .cli_output import (
    parse_unified_diff,
    print_report,
    ReportPrinter,
)
