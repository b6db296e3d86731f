"""
Data classes representing package references, manifests, path pairs and comparison outcomes.
"""

from __future__ import annotations

import pathlib as pl
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class PackageSpec:
    """
    Parsed form of a package reference. Local archives have kind ``'file'`` and no name, registry
    packages have kind ``'registry'``, a name and an optional version spec.
    """
    raw: str
    kind: str
    name: Optional[str] = None
    spec: Optional[str] = None

    @property
    def is_file(self) -> bool:
        return self.kind == 'file'

    @property
    def fetch_name(self) -> str:
        """
        :return: ``name@spec`` as understood by the registry, ``latest`` if no spec was given.
        """
        return f'{self.name}@{self.spec or "latest"}'


@dataclass(frozen=True)
class ResolvedArchive:
    """
    A package reference resolved to an archive on the local file system.
    """
    path: pl.Path
    package: PackageSpec


@dataclass(frozen=True)
class Manifest:
    """
    Sorted, exclusion-filtered relative paths of the regular files in an archive. If the common root
    directory was stripped from the paths, it is kept in `prefix`.
    """
    paths: Tuple[str, ...]
    prefix: str = ''

    def __iter__(self):
        return iter(self.paths)

    def __len__(self):
        return len(self.paths)

    def __contains__(self, relpath):
        return relpath in self.paths


@dataclass(frozen=True)
class StructuralDiff:
    """
    Paths only present in the new manifest (`added`) and only present in the old one (`removed`).
    """
    added: Tuple[str, ...]
    removed: Tuple[str, ...]

    @property
    def diff_count(self) -> int:
        return len(self.added) + len(self.removed)


@dataclass(frozen=True)
class PathPair:
    """
    Corresponding file locations in the two extracted trees for one manifest-relative path. Either
    side may be missing on disk if the path was added or removed.
    """
    relpath: str
    new_path: pl.Path
    old_path: pl.Path

    @property
    def only_new(self) -> bool:
        return self.new_path.exists() and not self.old_path.exists()

    @property
    def only_old(self) -> bool:
        return self.old_path.exists() and not self.new_path.exists()


class ComparisonOutcome:
    """
    Base class of the results of a comparison. `value` is the raw result: the report text in full
    mode and a boolean in fast mode.
    """

    identical = False

    @property
    def value(self) -> Union[str, bool]:
        raise NotImplementedError()

    def __bool__(self):
        return self.identical


@dataclass(frozen=True)
class Identical(ComparisonOutcome):
    """
    No difference was found. `full` tells which mode produced the outcome.
    """
    full: bool = False

    identical = True

    @property
    def value(self) -> Union[str, bool]:
        return '' if self.full else True


@dataclass(frozen=True)
class DifferentBoolean(ComparisonOutcome):
    """
    Fast mode found (or was told about) a difference.
    """
    reason: str = ''

    @property
    def value(self) -> Union[str, bool]:
        return False


@dataclass(frozen=True)
class ComparisonIncomplete(DifferentBoolean):
    """
    The fast scan stopped at a differing pair that was not skipped. This is a regular result, not
    an error.
    """
    index: int = -1
    pair: Optional[PathPair] = None


@dataclass(frozen=True)
class DifferentReport(ComparisonOutcome):
    """
    Full mode report. If the report was streamed to the output, `text` is empty and `streamed` is
    set.
    """
    text: str = ''
    streamed: bool = False

    @property
    def value(self) -> Union[str, bool]:
        return self.text


class DiffState(Enum):
    """
    Enumeration that describes the difference state of a single file in a report.
    """

    DIFFERENT = auto()
    ADDED = auto()
    REMOVED = auto()


@dataclass
class FileDiff:
    """
    Summary of the unified diff of one file.
    """
    old_path: str
    new_path: str
    state: DiffState = DiffState.DIFFERENT
    added_lines: int = 0
    removed_lines: int = 0
    binary: bool = False

    @property
    def relpath(self) -> str:
        return self.old_path if self.state == DiffState.REMOVED else self.new_path


@dataclass
class ReportDiff:
    """
    This class contains the per-file summary of a full report.
    """
    files: List[FileDiff] = field(default_factory=list)

    def stats(self) -> Dict[DiffState, int]:
        """
        Computes the total number of occurrences per `DiffState`.
        :return: Dict mapping `DiffState` to the corresponding file counts.
        """
        counts = {state: 0 for state in DiffState}
        for record in self.files:
            counts[record.state] += 1

        return counts
