"""
Options of a comparison.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Callable, Optional, TextIO, Tuple

from package_diff.archive_format_handler import ArchiveFormatHandler
from package_diff.diff_data import PathPair
from package_diff.errors import UsageError
from package_diff.file_comparison import LineDiffTool
from package_diff.registry import ArchiveSource

REGISTRY_ENV_VAR = 'PACKAGE_DIFF_REGISTRY'


@dataclass(frozen=True)
class CompareOptions:
    """
    Configuration of a comparison. All collaborators are optional; defaults are created by the
    pipeline.
    """
    full: bool = True
    exclude: Optional[str] = None
    to_stdout: bool = False
    stream: Optional[TextIO] = None
    registry_url: Optional[str] = None
    prefer_offline: bool = False
    before_all: Optional[Callable[[Tuple[PathPair, ...]], bool]] = None
    on_failure: Optional[Callable[[PathPair], bool]] = None
    strip_prefix: bool = False
    max_workers: Optional[int] = None
    workspace_dir: Optional[str] = None
    diff_tool: Optional[LineDiffTool] = None
    archive_source: Optional[ArchiveSource] = None
    archive_handler: Optional[ArchiveFormatHandler] = None
    logger: Optional[logging.Logger] = None

    def __post_init__(self):
        if self.full and (self.before_all is not None or self.on_failure is not None):
            raise UsageError('before_all and on_failure hooks are only supported in fast mode')

    @property
    def has_hooks(self) -> bool:
        return self.before_all is not None or self.on_failure is not None

    def with_overrides(self, **kwargs) -> CompareOptions:
        """
        :return: Copy of these options with the given fields replaced.
        """
        return dataclasses.replace(self, **kwargs)
