"""
Helpers to compare file contents.
"""

from __future__ import annotations

import difflib
import hashlib as hl
import pathlib as pl
import re
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional

from package_diff.errors import ComparisonToolError

# Lines end at a newline only, like in diff(1). The last line may lack it.
_LINE = re.compile(r'[^\n]*\n|[^\n]+\Z')


class FileHasher:
    """
    Helper class to compute hash values of io streams.
    """

    def __init__(self, hash_algorithm: str = 'md5', hash_buffer_size=128 * 1024):
        """
        :param hash_algorithm: Hashing algorithm, must be supported by `hashlib`
        :param hash_buffer_size: Buffer size used to read the input streams.
        """
        self.hash_algorithm = hash_algorithm
        self.hash_buffer_size = hash_buffer_size

    def __repr__(self):
        return f'FileHasher({self.hash_algorithm})'

    def compute_hash(self, input_io):
        """
        Computes the hash sum for an input io object.
        :param input_io: input io object
        :return: string with the hex representation of the hash
        """
        digest = hl.new(self.hash_algorithm)
        while True:
            data = input_io.read(self.hash_buffer_size)
            if not data:
                break
            digest.update(data)
        return digest.hexdigest()


class LineDiffTool(ABC):
    """
    Line-level diff capability used by the content comparison. The old file is always the ``---``
    side of a unified diff and a path that does not exist is compared as an empty file.
    """

    # True if diffs are computed by Python code in the calling process.
    in_process = False

    @abstractmethod
    def unified_diff(self, new_path: pl.Path, old_path: pl.Path) -> str:
        """
        :return: Unified diff from `old_path` to `new_path`, empty if the files are identical.
        :raises ComparisonToolError: If the tool could not compare the files.
        """
        raise NotImplementedError()

    @abstractmethod
    def same(self, new_path: pl.Path, old_path: pl.Path) -> bool:
        """
        Quiet comparison that only answers whether the files are identical. A file present on one
        side only is never identical to the missing one.

        :raises ComparisonToolError: If the tool could not compare the files.
        """
        raise NotImplementedError()


def _exists(path: pl.Path) -> bool:
    if not path.exists():
        return False
    if not path.is_file():
        raise ComparisonToolError(f'Not a regular file: {path}')
    return True


class DifflibDiffTool(LineDiffTool):
    """
    In-process diff tool based on `difflib`. Quiet comparisons compare file sizes and hashes.
    """

    in_process = True

    def __init__(self, hasher: Optional[FileHasher] = None, context_lines: int = 3,
                 encoding: str = 'utf-8'):
        """
        :param hasher: Hasher used by quiet comparisons.
        :param context_lines: Number of unchanged lines around each change.
        :param encoding: Text encoding of the compared files. Files that cannot be decoded are
            reported as differing binary files.
        """
        self.hasher = hasher if hasher is not None else FileHasher()
        self.context_lines = context_lines
        self.encoding = encoding

    def __repr__(self):
        return f'DifflibDiffTool({self.hasher!r})'

    @staticmethod
    def _read(path: pl.Path) -> bytes:
        if not _exists(path):
            return b''
        try:
            return path.read_bytes()
        except OSError as error:
            raise ComparisonToolError(f'Cannot read {path}: {error}') from error

    def _hash(self, path: pl.Path) -> str:
        try:
            with open(path, 'rb') as reader:
                return self.hasher.compute_hash(reader)
        except OSError as error:
            raise ComparisonToolError(f'Cannot read {path}: {error}') from error

    def same(self, new_path: pl.Path, old_path: pl.Path) -> bool:
        new_exists = _exists(new_path)
        old_exists = _exists(old_path)
        if new_exists != old_exists:
            return False
        if not new_exists:
            return True

        try:
            if new_path.stat().st_size != old_path.stat().st_size:
                return False
        except OSError as error:
            raise ComparisonToolError(f'Cannot stat {new_path}: {error}', new_path,
                                      old_path) from error
        return self._hash(new_path) == self._hash(old_path)

    def unified_diff(self, new_path: pl.Path, old_path: pl.Path) -> str:
        new_data = self._read(new_path)
        old_data = self._read(old_path)
        one_sided = new_path.exists() != old_path.exists()
        if new_data == old_data and not one_sided:
            return ''

        try:
            new_lines = _LINE.findall(new_data.decode(self.encoding))
            old_lines = _LINE.findall(old_data.decode(self.encoding))
        except UnicodeDecodeError:
            return f'Binary files {old_path} and {new_path} differ\n'

        output = []
        for line in difflib.unified_diff(old_lines, new_lines, fromfile=str(old_path),
                                         tofile=str(new_path), n=self.context_lines):
            if not line.endswith('\n'):
                line += '\n\\ No newline at end of file\n'
            output.append(line)

        if not output:
            # Empty file added or removed, there are no lines to show.
            output = [f'--- {old_path}\n', f'+++ {new_path}\n']
        return ''.join(output)


class GnuDiffTool(LineDiffTool):
    """
    Diff tool running the external ``diff`` program. Exit status 1 means that differences were
    found, any status above 1 is a tool failure.
    """

    def __init__(self, executable: str = 'diff', timeout: Optional[float] = None):
        """
        :param executable: Name or path of the diff program.
        :param timeout: Seconds after which a single invocation is considered failed.
        """
        self.executable = executable
        self.timeout = timeout

    def __repr__(self):
        return f'GnuDiffTool({self.executable!r})'

    def _run(self, args: List[str], new_path: pl.Path, old_path: pl.Path) -> str:
        cmd = [self.executable] + args + ['--', str(old_path), str(new_path)]
        try:
            result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True,
                                    errors='replace', timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as error:
            raise ComparisonToolError(f'Error while executing {" ".join(cmd)}: {error}',
                                      new_path, old_path) from error

        if result.returncode == 0:
            return ''
        if result.returncode == 1:
            return result.stdout
        raise ComparisonToolError(
            f'{" ".join(cmd)} failed with exit status {result.returncode}: '
            f'{result.stderr.strip()}', new_path, old_path)

    def unified_diff(self, new_path: pl.Path, old_path: pl.Path) -> str:
        _exists(new_path)
        _exists(old_path)
        return self._run(['--unified', '--new-file'], new_path, old_path)

    def same(self, new_path: pl.Path, old_path: pl.Path) -> bool:
        new_exists = _exists(new_path)
        old_exists = _exists(old_path)
        if new_exists != old_exists:
            return False
        if not new_exists:
            return True

        cmd = [self.executable, '-q', '--', str(old_path), str(new_path)]
        try:
            result = subprocess.run(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE,
                                    text=True, errors='replace', timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as error:
            raise ComparisonToolError(f'Error while executing {" ".join(cmd)}: {error}',
                                      new_path, old_path) from error

        if result.returncode > 1:
            raise ComparisonToolError(
                f'{" ".join(cmd)} failed with exit status {result.returncode}: '
                f'{result.stderr.strip()}', new_path, old_path)
        return result.returncode == 0
