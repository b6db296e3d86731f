"""
Comparison pipeline: resolves two package references, builds and diffs their manifests, extracts
the archives and compares the file contents.
"""

from __future__ import annotations

import logging
import pathlib as pl
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Callable, List, Optional

from package_diff.archive_format_handler import DispatchingArchiveHandler
from package_diff.config import CompareOptions
from package_diff.content_comparator import ContentComparator
from package_diff.diff_data import ComparisonOutcome, DifferentBoolean, Manifest, ResolvedArchive
from package_diff.errors import IdenticalReferenceError
from package_diff.manifest import ManifestBuilder, diff_manifests, pair_paths
from package_diff.registry import PackageResolver
from package_diff.workspace import Workspace


def fan_out(*tasks: Callable[[], object]) -> List[object]:
    """
    Runs the tasks concurrently and waits for all of them. If any task failed, the exception of the
    first failed task in argument order is raised and all results are discarded.

    :return: Task results in argument order.
    """
    with ThreadPoolExecutor(max_workers=len(tasks)) as executor:
        futures = [executor.submit(task) for task in tasks]

    for future in futures:
        error = future.exception()
        if error is not None:
            raise error
    return [future.result() for future in futures]


class ComparisonPipeline:
    """
    Compares two packages according to a set of `CompareOptions`.
    """

    def __init__(self, options: Optional[CompareOptions] = None):
        self.options = options if options is not None else CompareOptions()
        self.logger = self.options.logger or logging.getLogger(__name__)

        self.handler = self.options.archive_handler or DispatchingArchiveHandler()
        self.resolver = PackageResolver(self.options.archive_source,
                                        registry_url=self.options.registry_url,
                                        prefer_offline=self.options.prefer_offline,
                                        logger=self.logger)
        self.manifest_builder = ManifestBuilder(self.handler, exclude=self.options.exclude,
                                                keep_prefix=not self.options.strip_prefix)
        self.comparator = ContentComparator(self.options.diff_tool,
                                            max_workers=self.options.max_workers,
                                            logger=self.logger)

    def _extract(self, archive: ResolvedArchive, destination: pl.Path) -> pl.Path:
        self.handler.extract(archive.path, destination)
        self.logger.info('unpacked to %s', destination)
        return destination

    def run(self, new_ref: str, old_ref: str) -> ComparisonOutcome:
        """
        :param new_ref: Reference of the new package.
        :param old_ref: Reference of the old package. A bare version takes the name of `new_ref`.
        :raises IdenticalReferenceError: If both references are the same.
        :raises ResolutionError: If a package could not be found or downloaded.
        :raises ToolExecutionError: If an archive or the diff tool failed.
        :return: Outcome in the requested mode.
        """
        if new_ref == old_ref:
            raise IdenticalReferenceError(new_ref)

        options = self.options
        workspace = Workspace.for_session(new_ref, old_ref, options.workspace_dir)

        new_download = workspace.make_dir('download-new')
        old_download = workspace.make_dir('download-old')
        new_archive, old_archive = fan_out(
            partial(self.resolver.resolve, new_ref, new_download),
            partial(self.resolver.resolve, old_ref, old_download, sibling_ref=new_ref),
        )

        new_unpack = workspace.make_dir('unpack-new')
        old_unpack = workspace.make_dir('unpack-old')
        extract_new = partial(self._extract, new_archive, new_unpack)
        extract_old = partial(self._extract, old_archive, old_unpack)

        # Without hooks a structural difference decides fast mode, so extraction waits for it.
        short_circuit = not options.full and not options.has_hooks
        if short_circuit:
            new_manifest, old_manifest = fan_out(
                partial(self.manifest_builder.build, new_archive.path),
                partial(self.manifest_builder.build, old_archive.path),
            )
        else:
            new_manifest, old_manifest, _, _ = fan_out(
                partial(self.manifest_builder.build, new_archive.path),
                partial(self.manifest_builder.build, old_archive.path),
                extract_new,
                extract_old,
            )

        structure = diff_manifests(new_manifest, old_manifest)
        self.logger.debug('file structure: %d added, %d removed', len(structure.added),
                          len(structure.removed))
        if short_circuit:
            if structure.diff_count > 0:
                return DifferentBoolean(f'file structure differs in {structure.diff_count} files')
            fan_out(extract_new, extract_old)

        pairs = pair_paths(self._root(new_unpack, new_manifest),
                           self._root(old_unpack, old_manifest),
                           new_manifest, old_manifest)

        if options.full:
            return self.comparator.full_diff(pairs, to_stdout=options.to_stdout,
                                             stream=options.stream)
        return self.comparator.fast_check(pairs, before_all=options.before_all,
                                          on_failure=options.on_failure)

    @staticmethod
    def _root(unpack_dir: pl.Path, manifest: Manifest) -> pl.Path:
        return unpack_dir / manifest.prefix if manifest.prefix else unpack_dir


def compare(new_ref: str, old_ref: str, options: Optional[CompareOptions] = None,
            **overrides) -> ComparisonOutcome:
    """
    Compares two packages. The outcome's `value` is the unified diff report in full mode and a
    boolean in fast mode.

    :param new_ref: Reference of the new package: archive path, ``name@spec`` or bare version.
    :param old_ref: Reference of the old package.
    :param options: Comparison options.
    :param overrides: `CompareOptions` fields replacing those of `options`.
    """
    if options is None:
        options = CompareOptions(**overrides)
    elif overrides:
        options = options.with_overrides(**overrides)
    return ComparisonPipeline(options).run(new_ref, old_ref)


def packages_equal(new_ref: str, old_ref: str, options: Optional[CompareOptions] = None,
                   **overrides) -> bool:
    """
    Fast check whether two packages have the same files with the same contents.
    """
    overrides['full'] = False
    overrides.setdefault('to_stdout', False)
    return compare(new_ref, old_ref, options, **overrides).identical
