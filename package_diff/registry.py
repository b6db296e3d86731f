"""
Resolution of package references to local archives, downloading registry packages if needed.
"""

from __future__ import annotations

import logging
import os
import pathlib as pl
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional

from package_diff.diff_data import PackageSpec, ResolvedArchive
from package_diff.errors import DownloadFailedError, PackageNotFoundError

ARCHIVE_SUFFIXES = ('.tgz', '.tar', '.tar.gz', '.tar.bz2', '.tbz2', '.tar.xz', '.txz', '.zip',
                    '.7z')


def parse_package_ref(ref: str) -> PackageSpec:
    """
    Parses a package reference. Local archives are recognised by a ``file:`` prefix, a path
    separator, a leading ``.`` or ``~``, an archive suffix, or by existing on disk. Everything else
    is ``name[@spec]`` where the name may be scoped (``@scope/name``).

    :param ref: Package reference as given by the user.
    :return: Parsed reference.
    """
    if ref.startswith('file:'):
        return PackageSpec(ref, 'file', spec=ref[len('file:'):])

    if not ref.startswith('@'):
        looks_like_path = '/' in ref or '\\' in ref or ref.startswith(('.', '~')) \
            or ref.lower().endswith(ARCHIVE_SUFFIXES)
        if looks_like_path or os.path.exists(ref):
            return PackageSpec(ref, 'file', spec=ref)

    separator = ref.find('@', 1)
    if separator < 0:
        return PackageSpec(ref, 'registry', name=ref)
    return PackageSpec(ref, 'registry', name=ref[:separator], spec=ref[separator + 1:] or None)


class ArchiveSource(ABC):
    """
    Capability that fetches a package archive from a registry.
    """

    @abstractmethod
    def fetch(self, name: str, spec: str, destination: pl.Path, registry_url: Optional[str] = None,
              prefer_offline: bool = False) -> pl.Path:
        """
        Downloads the archive of a package version into the destination directory.

        :param name: Package name.
        :param spec: Version, version range or tag.
        :param destination: Existing directory owned by this download.
        :param registry_url: Registry to use instead of the configured default.
        :param prefer_offline: True to prefer locally cached data over network requests.
        :raises DownloadFailedError: On any non-successful outcome.
        :return: Path of the downloaded archive.
        """
        raise NotImplementedError()


class NpmPackSource(ArchiveSource):
    """
    Archive source running ``npm pack``, which downloads the tarball of a registry package into
    the working directory and prints its file name.
    """

    def __init__(self, executable: str = 'npm', timeout: Optional[float] = 300):
        self.executable = executable
        self.timeout = timeout

    def __repr__(self):
        return f'NpmPackSource({self.executable!r})'

    def command(self, name: str, spec: str, registry_url: Optional[str] = None,
                prefer_offline: bool = False) -> List[str]:
        cmd = [self.executable, 'pack', f'{name}@{spec}']
        if registry_url:
            cmd += ['--registry', registry_url]
        if prefer_offline:
            cmd.append('--prefer-offline')
        return cmd

    def fetch(self, name: str, spec: str, destination: pl.Path, registry_url: Optional[str] = None,
              prefer_offline: bool = False) -> pl.Path:
        ref = f'{name}@{spec}'
        cmd = self.command(name, spec, registry_url, prefer_offline)
        try:
            result = subprocess.run(cmd, cwd=destination, stdout=subprocess.PIPE,
                                    stderr=subprocess.PIPE, text=True, timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as error:
            raise DownloadFailedError(ref, registry_url, str(error)) from error

        if result.returncode != 0:
            raise DownloadFailedError(ref, registry_url, result.stderr.strip())

        lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        if not lines:
            raise DownloadFailedError(ref, registry_url, 'npm pack did not report an archive')

        archive = destination / lines[-1]
        if not archive.is_file():
            raise DownloadFailedError(ref, registry_url, f'archive {archive} is missing')
        return archive


class PackageResolver:
    """
    Turns package references into local archives.
    """

    def __init__(self, source: Optional[ArchiveSource] = None, registry_url: Optional[str] = None,
                 prefer_offline: bool = False, logger: Optional[logging.Logger] = None):
        """
        :param source: Registry capability, `NpmPackSource` by default.
        :param registry_url: Registry to download from instead of the source's default.
        :param prefer_offline: True to prefer cached registry data.
        :param logger: Logger receiving download progress messages.
        """
        self.source = source if source is not None else NpmPackSource()
        self.registry_url = registry_url
        self.prefer_offline = prefer_offline
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def package_spec(self, ref: str, sibling_ref: Optional[str] = None) -> PackageSpec:
        """
        Parses `ref`. A registry reference without version part, e.g. ``1.2.0`` or ``next``, takes
        the name of the registry sibling reference and becomes its version spec.
        """
        package = parse_package_ref(ref)
        if package.is_file or package.spec is not None or sibling_ref is None:
            return package

        sibling = parse_package_ref(sibling_ref)
        if sibling.is_file:
            return package
        return PackageSpec(ref, 'registry', name=sibling.name, spec=ref)

    def resolve(self, ref: str, download_dir: pl.Path,
                sibling_ref: Optional[str] = None) -> ResolvedArchive:
        """
        :param ref: Package reference.
        :param download_dir: Directory owned by this resolution, used for registry downloads.
        :param sibling_ref: The other reference of the comparison, supplies the package name for
            bare versions.
        :raises PackageNotFoundError: If a local archive does not exist.
        :raises DownloadFailedError: If the registry download failed.
        """
        package = self.package_spec(ref, sibling_ref)

        if package.is_file:
            path = pl.Path(package.spec).expanduser()
            if not path.exists():
                raise PackageNotFoundError(ref)
            return ResolvedArchive(path, package)

        self.logger.info('%s: downloading archive...', package.fetch_name)
        try:
            path = self.source.fetch(package.name, package.spec or 'latest', download_dir,
                                     registry_url=self.registry_url,
                                     prefer_offline=self.prefer_offline)
        except DownloadFailedError as error:
            if error.ref == ref:
                raise
            raise DownloadFailedError(ref, self.registry_url, str(error)) from error
        self.logger.info('%s: done', package.fetch_name)
        return ResolvedArchive(path, package)
