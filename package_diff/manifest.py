"""
Manifest construction, structural diffing and pairing of the paths to compare.
"""

from __future__ import annotations

import fnmatch
import logging
import pathlib as pl
import re
from typing import Iterable, List, Optional, Tuple

from package_diff.archive_format_handler import ArchiveFormatHandler, ArchiveMember, \
    DispatchingArchiveHandler
from package_diff.diff_data import Manifest, PathPair, StructuralDiff
from package_diff.errors import ArchiveFormatError, UsageError

logger = logging.getLogger(__name__)

# Characters that only make sense in a regular expression. Patterns without them are globs.
_REGEX_ONLY_CHARS = frozenset('^$\\()|+')

_BRACES = re.compile(r'\{([^{}]*,[^{}]*)\}')


def expand_braces(pattern: str) -> List[str]:
    """
    Expands the ``{a,b}`` alternatives of a glob, e.g. ``*.{md,txt}`` becomes ``*.md`` and
    ``*.txt``. Nested groups are expanded from the inside out.
    """
    match = _BRACES.search(pattern)
    if match is None:
        return [pattern]

    head, tail = pattern[:match.start()], pattern[match.end():]
    expanded = []
    for alternative in match.group(1).split(','):
        expanded.extend(expand_braces(head + alternative + tail))
    return list(dict.fromkeys(expanded))


class ExclusionPattern:
    """
    Pattern removing paths from a manifest, like ``diff --exclude`` does for ``diff -r``.

    Patterns containing regular expression syntax (``^$\\()|+``) are searched in the relative path.
    All other patterns are globs with optional ``{a,b}`` alternatives. A glob excludes a path if it
    matches any directory or file name on the path, or any trailing part of it, so ``node_modules``
    excludes everything below such a directory and ``dist/*`` excludes ``package/dist/a.js``.
    """

    def __init__(self, pattern: str):
        """
        :raises UsageError: If the pattern is not a valid regular expression.
        """
        self.pattern = pattern
        self.is_regex = any(char in _REGEX_ONLY_CHARS for char in pattern)
        self._regex = None
        self._globs = []
        if self.is_regex:
            try:
                self._regex = re.compile(pattern)
            except re.error as error:
                raise UsageError(f'Invalid exclude pattern {pattern!r}: {error}') from error
        else:
            self._globs = expand_braces(pattern)

    def __repr__(self):
        kind = 'regex' if self.is_regex else 'glob'
        return f'ExclusionPattern({self.pattern!r}, {kind})'

    def matches(self, relpath: str) -> bool:
        if self._regex is not None:
            return self._regex.search(relpath) is not None

        parts = relpath.split('/')
        candidates = parts + ['/'.join(parts[i:]) for i in range(len(parts) - 1)]
        return any(fnmatch.fnmatchcase(candidate, glob)
                   for glob in self._globs for candidate in candidates)


def find_common_prefix(lst: List[ArchiveMember]) -> List[str]:
    """
    Function finds the longest common prefix between all the members. The function ignores
    directory members that are fully contained within the prefix. The function identifies
    directories that contain all files in the listing.

    :param lst: Archive listing.
    :raises ArchiveFormatError: If a path is listed both as a file and as a directory.
    :return: prefix common to all members in the archive listing.
    """
    root = {}
    for member in lst:
        parts = member.path_parts if member.is_dir else member.path_parts[:-1]

        tree = root
        try:
            for part in parts:
                if part not in tree:
                    tree[part] = {}
                tree = tree[part]

            if not member.is_dir:
                tree[member.path_parts[-1]] = '__file__'
        except TypeError as error:
            raise ArchiveFormatError(f'The listing is not valid. '
                                     f'The same path is reused multiple times: '
                                     f'{member.relpath}') from error

    prefix = []
    tree = root
    while True:
        keys = tree.keys()
        if len(keys) == 1:
            key = next(iter(keys))
            val = tree[key]
            if isinstance(val, dict):
                prefix.append(key)
                tree = val
            else:
                break
        else:
            break
    return prefix


def strip_prefix(lst: List[ArchiveMember]) -> Tuple[List[str], List[ArchiveMember]]:
    """
    Finds and removes a prefix common to all members of an archive listing. A new listing is
    returned where all prefix directories are filtered out and the paths of each member don't
    contain the path prefix anymore.

    For details on the prefix computation see `find_common_prefix()`.

    :param lst: Input archive listing
    :return: Prefix segments and the new listing without prefix members and path segments.
    """
    prefix = find_common_prefix(lst)

    prefix_len = len(prefix)
    list_no_prefix = []
    for member in lst:
        if len(member.path_parts) <= prefix_len:
            # This filters out the directory entries forming the prefix path.
            continue

        list_no_prefix.append(ArchiveMember(member.path_parts[prefix_len:], is_dir=member.is_dir))

    return prefix, list_no_prefix


class ManifestBuilder:
    """
    Builds the manifest of an archive: its regular files, exclusion-filtered and sorted.
    """

    def __init__(self, handler: Optional[ArchiveFormatHandler] = None,
                 exclude: Optional[str] = None, keep_prefix: bool = True):
        """
        :param handler: Archive introspection capability, dispatches by archive type by default.
        :param exclude: Glob or regular expression of paths to leave out.
        :param keep_prefix: False to strip the root directory shared by all members.
        """
        self.handler = handler if handler is not None else DispatchingArchiveHandler()
        self.exclude = ExclusionPattern(exclude) if exclude else None
        self.keep_prefix = keep_prefix

    def build(self, archive_path: pl.Path) -> Manifest:
        """
        :param archive_path: Local archive.
        :raises ArchiveFormatError: If the archive cannot be listed.
        :return: Manifest of the archive.
        """
        members = list(self.handler.list_members(archive_path))

        prefix = []
        if not self.keep_prefix:
            prefix, members = strip_prefix(members)

        paths = {member.relpath for member in members if not member.is_dir}
        if self.exclude is not None:
            paths = {path for path in paths if not self.exclude.matches(path)}

        manifest = Manifest(tuple(sorted(paths)), '/'.join(prefix))
        logger.debug('%s: %d files in manifest', archive_path, len(manifest))
        return manifest


def diff_manifests(new: Iterable[str], old: Iterable[str]) -> StructuralDiff:
    """
    Computes the paths only present in one of the manifests. Both inputs are sorted, so they are
    traversed in parallel, always proceeding with the side where the next path is the
    lexicographically smaller one.

    :param new: Manifest of the new package.
    :param old: Manifest of the old package.
    :return: Added and removed paths in manifest order.
    """
    new_paths = list(new)
    old_paths = list(old)

    added = []
    removed = []
    i, j = 0, 0
    while i < len(new_paths) and j < len(old_paths):
        left = new_paths[i]
        right = old_paths[j]
        if left == right:
            i += 1
            j += 1
        elif left < right:
            added.append(left)
            i += 1
        else:
            removed.append(right)
            j += 1
    added.extend(new_paths[i:])
    removed.extend(old_paths[j:])

    return StructuralDiff(tuple(added), tuple(removed))


def pair_paths(new_root: pl.Path, old_root: pl.Path,
               new_manifest: Iterable[str], old_manifest: Iterable[str]) -> Tuple[PathPair, ...]:
    """
    Merges both manifests into the pairs of files to compare: the paths of the new manifest in
    their order, followed by the paths only present in the old manifest.

    :param new_root: Directory the new manifest paths are relative to.
    :param old_root: Directory the old manifest paths are relative to.
    :return: One pair per distinct relative path.
    """
    relpaths = dict.fromkeys(new_manifest)
    relpaths.update(dict.fromkeys(path for path in old_manifest if path not in relpaths))

    return tuple(
        PathPair(relpath, pl.Path(new_root, relpath), pl.Path(old_root, relpath))
        for relpath in relpaths
    )
