"""
Exceptions raised by the comparison engine.
"""

from typing import Optional


class PackageDiffError(Exception):
    """
    Base class of all errors raised by package-diff.
    """


class UsageError(PackageDiffError):
    """
    The engine was called with arguments that cannot produce a meaningful comparison.
    """


class IdenticalReferenceError(UsageError):
    """
    Both package references are the same string. Comparing a package with itself is a usage error
    and not an empty diff.
    """

    def __init__(self, ref: str):
        super().__init__(f'{ref} and {ref} are equal')
        self.ref = ref


class ResolutionError(PackageDiffError):
    """
    A package reference could not be turned into a local archive.
    """

    def __init__(self, message: str, ref: str, registry_url: Optional[str] = None):
        super().__init__(message)
        self.ref = ref
        self.registry_url = registry_url


class PackageNotFoundError(ResolutionError):
    """
    The reference names a local file that does not exist.
    """

    def __init__(self, ref: str):
        super().__init__(f'Cannot open file {ref}', ref)


class DownloadFailedError(ResolutionError):
    """
    The registry could not deliver the requested package.
    """

    def __init__(self, ref: str, registry_url: Optional[str] = None, reason: str = ''):
        registry = registry_url or 'default registry'
        message = f'Failed to download {ref} from {registry}'
        if reason:
            message += f': {reason}'
        super().__init__(message, ref, registry_url)
        self.reason = reason


class ToolExecutionError(PackageDiffError):
    """
    An external capability (archive handling, diffing) failed for a reason other than finding a
    difference.
    """


class ArchiveFormatError(ToolExecutionError):
    """
    Error class thrown by archive handlers if the input file format is not supported, the archive is
    corrupt or cannot be extracted.
    """


class ComparisonToolError(ToolExecutionError):
    """
    The line diff tool faulted. This is never a sign that the compared files differ.
    """

    def __init__(self, message: str, new_path=None, old_path=None):
        super().__init__(message)
        self.new_path = new_path
        self.old_path = old_path
