"""
Implementations of handlers (listing and extraction of contents) for various archive formats.
"""
from __future__ import annotations

import os
import pathlib as pl
import shutil
import tarfile
import zipfile
from abc import ABC, abstractmethod
from typing import Iterator, List, Union

from package_diff.errors import ArchiveFormatError
from package_diff.utils import path_parts


class ArchiveMember:
    """
    A file or directory contained in an archive.
    """

    def __init__(self, relpath: Union[str, List[str]], is_dir: bool = False) -> None:
        """
        :param relpath: Path string or list of path segments identifying this object.
        :param is_dir: True for directory entries.
        """
        self.is_dir = is_dir
        self._path_parts = path_parts(relpath) if isinstance(relpath, str) else list(relpath)
        self._relpath = '/'.join(self._path_parts)
        if '..' in self._path_parts:
            raise ArchiveFormatError(f'Archive member escapes the archive root: {relpath}')

    def __repr__(self):
        return f'ArchiveMember({self._relpath!r}, is_dir={self.is_dir})'

    def __eq__(self, other):
        if not isinstance(other, ArchiveMember):
            return NotImplemented
        return self._path_parts == other._path_parts and self.is_dir == other.is_dir

    def __hash__(self):
        return hash((self._relpath, self.is_dir))

    @property
    def path_parts(self) -> List[str]:
        """
        :return: List of path segments identifying this object.
        """
        return self._path_parts

    @property
    def relpath(self) -> str:
        """
        :return: Canonical path identifying this object.
        """
        return self._relpath


class ArchiveFormatHandler(ABC):
    """
    Base class for all archive handlers.
    """

    @abstractmethod
    def check_file(self, path: pl.Path) -> bool:
        """
        Checks if the given path can be processed by this handler.

        :param path: Input path
        :return: True, if the path is a valid archive for this handler.
        """
        raise NotImplementedError()

    @abstractmethod
    def list_members(self, path: pl.Path) -> Iterator[ArchiveMember]:
        """
        Lists the files and folders in the given archive.

        :param path: Input path
        :raises ArchiveFormatError: If the input is not supported by this handler or is corrupt.
        :return: Contents of the archive in no particular order.
        """
        raise NotImplementedError()

    @abstractmethod
    def extract(self, path: pl.Path, destination: pl.Path) -> None:
        """
        Extracts the full tree of the archive into the destination directory. Member paths are
        interpreted relative to the destination, exactly as returned by `list_members()`.

        :param path: Input path
        :param destination: Existing, writable directory.
        :raises ArchiveFormatError: If the archive is not supported, corrupt or cannot be written.
        """
        raise NotImplementedError()


class ZipArchiveHandler(ArchiveFormatHandler):
    """
    Handler for zip-based archives.
    """

    def check_file(self, path: pl.Path) -> bool:
        return path.is_file() and zipfile.is_zipfile(path)

    def list_members(self, path: pl.Path) -> Iterator[ArchiveMember]:
        if not self.check_file(path):
            raise ArchiveFormatError('Not a zip file.')

        try:
            with zipfile.ZipFile(path, 'r') as archive:
                infos = archive.infolist()
        except (zipfile.BadZipFile, OSError) as error:
            raise ArchiveFormatError(f'Cannot read zip file {path}: {error}') from error

        for info in infos:
            yield ArchiveMember(info.filename, is_dir=info.is_dir())

    def extract(self, path: pl.Path, destination: pl.Path) -> None:
        if not self.check_file(path):
            raise ArchiveFormatError('Not a zip file.')

        try:
            with zipfile.ZipFile(path, 'r') as archive:
                for info in archive.infolist():
                    # Validates the member path before zipfile sanitizes it.
                    ArchiveMember(info.filename, is_dir=info.is_dir())
                archive.extractall(destination)
        except (zipfile.BadZipFile, OSError) as error:
            raise ArchiveFormatError(f'Cannot extract zip file {path}: {error}') from error


class TarArchiveHandler(ArchiveFormatHandler):
    """
    Handler for tar-based archives, including various compressed variants thereof.
    """

    def check_file(self, path: pl.Path) -> bool:
        return path.is_file() and tarfile.is_tarfile(path)

    def list_members(self, path: pl.Path) -> Iterator[ArchiveMember]:
        if not self.check_file(path):
            raise ArchiveFormatError('Not a tar file.')

        try:
            with tarfile.open(path, mode='r') as archive:
                members = archive.getmembers()
        except (tarfile.TarError, OSError) as error:
            raise ArchiveFormatError(f'Cannot read tar file {path}: {error}') from error

        for member in members:
            if member.isfile():
                yield ArchiveMember(member.name)
            elif member.isdir():
                yield ArchiveMember(member.name, is_dir=True)

    def extract(self, path: pl.Path, destination: pl.Path) -> None:
        if not self.check_file(path):
            raise ArchiveFormatError('Not a tar file.')

        try:
            with tarfile.open(path, mode='r') as archive:
                members = archive.getmembers()
                for member in members:
                    ArchiveMember(member.name, is_dir=member.isdir())
                if hasattr(tarfile, 'data_filter'):
                    archive.extractall(destination, members=members, filter='data')
                else:
                    archive.extractall(destination, members=members)
        except (tarfile.TarError, OSError) as error:
            raise ArchiveFormatError(f'Cannot extract tar file {path}: {error}') from error


class DirArchiveHandler(ArchiveFormatHandler):
    """
    Handler for simple directory-based archives. The directory name is the first segment of every
    member path.
    """

    def check_file(self, path: pl.Path) -> bool:
        return path.is_dir()

    def list_members(self, path: pl.Path) -> Iterator[ArchiveMember]:
        if not self.check_file(path):
            raise ArchiveFormatError('File is not a directory.')

        # The parent dir is always defined. If we are in the actual file system root, e.g. '/',
        # 'D:\'..., calling parent returns the file system root again.
        archive_root = path.parent

        yield ArchiveMember(os.path.relpath(path, archive_root), is_dir=True)

        for root, dirs, files in os.walk(path):
            for dir_name in dirs:
                yield ArchiveMember(
                    os.path.relpath(os.path.join(root, dir_name), archive_root), is_dir=True)

            for file_name in files:
                yield ArchiveMember(os.path.relpath(os.path.join(root, file_name), archive_root))

    def extract(self, path: pl.Path, destination: pl.Path) -> None:
        if not self.check_file(path):
            raise ArchiveFormatError('File is not a directory.')

        try:
            shutil.copytree(path, destination / path.name, dirs_exist_ok=True)
        except (shutil.Error, OSError) as error:
            raise ArchiveFormatError(f'Cannot copy directory {path}: {error}') from error


try:
    import py7zr


    class SevenZipArchiveHandler(ArchiveFormatHandler):
        """
        Handler for 7zip-based archives.
        """

        def check_file(self, path: pl.Path) -> bool:
            return path.is_file() and py7zr.is_7zfile(path)

        def list_members(self, path: pl.Path) -> Iterator[ArchiveMember]:
            if not self.check_file(path):
                raise ArchiveFormatError('Not a 7z file.')

            try:
                with py7zr.SevenZipFile(path, 'r') as archive:
                    infos = archive.list()
            except (py7zr.Bad7zFile, OSError) as error:
                raise ArchiveFormatError(f'Cannot read 7z file {path}: {error}') from error

            for info in infos:
                yield ArchiveMember(info.filename, is_dir=info.is_directory)

        def extract(self, path: pl.Path, destination: pl.Path) -> None:
            if not self.check_file(path):
                raise ArchiveFormatError('Not a 7z file.')

            try:
                with py7zr.SevenZipFile(path, 'r') as archive:
                    for name in archive.getnames():
                        ArchiveMember(name)
                    archive.extractall(path=destination)
            except (py7zr.Bad7zFile, OSError) as error:
                raise ArchiveFormatError(f'Cannot extract 7z file {path}: {error}') from error

except ImportError:
    py7zr = None


class DispatchingArchiveHandler(ArchiveFormatHandler):
    """
    Handler that dispatches to the first supported handler in a collection of other handlers.
    """

    def __init__(self):
        self._format_handlers = [
            ZipArchiveHandler(),
            TarArchiveHandler(),
            DirArchiveHandler(),
        ]
        if py7zr is not None:
            self._format_handlers.append(
                SevenZipArchiveHandler()
            )

    def _get_handler_for_file(self, path: pl.Path) -> ArchiveFormatHandler:
        """
        Checks the added handlers one-by-one in order for compatibility with the given archive. The
        first matching handler is returned.

        :param path: Input archive path.
        :return: First matching handler.
        :throws ArchiveFormatError: If no suitable handler is found.
        """
        for handler in self._format_handlers:
            if handler.check_file(path):
                return handler

        raise ArchiveFormatError(
            f'Could not find handler that supports the given archive type: {path}')

    def check_file(self, path: pl.Path) -> bool:
        try:
            handler = self._get_handler_for_file(path)
            return handler is not None
        except ArchiveFormatError:
            return False

    def list_members(self, path: pl.Path) -> Iterator[ArchiveMember]:
        handler = self._get_handler_for_file(path)
        return handler.list_members(path)

    def extract(self, path: pl.Path, destination: pl.Path) -> None:
        handler = self._get_handler_for_file(path)
        handler.extract(path, destination)
