"""
Helpers creating test archives.
"""
import io
import pathlib as pl
import tarfile
import zipfile
from typing import Dict, Union

Contents = Dict[str, Union[str, bytes]]


def _as_bytes(data: Union[str, bytes]) -> bytes:
    return data.encode('utf8') if isinstance(data, str) else data


def make_tar(path: pl.Path, files: Contents, mode: str = 'w:gz') -> pl.Path:
    """
    Writes a tar archive containing the given files.
    :param path: Archive path.
    :param files: Mapping of member path to contents.
    :param mode: `tarfile` write mode, selects the compression.
    """
    with tarfile.open(path, mode) as archive:
        for name, data in files.items():
            data = _as_bytes(data)
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return path


def make_zip(path: pl.Path, files: Contents) -> pl.Path:
    """
    Writes a zip archive containing the given files.
    """
    with zipfile.ZipFile(path, 'w') as archive:
        for name, data in files.items():
            archive.writestr(name, _as_bytes(data))
    return path


def make_dir(path: pl.Path, files: Contents) -> pl.Path:
    """
    Writes the given files below `path`.
    """
    for name, data in files.items():
        target = path / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(_as_bytes(data))
    return path


PKG1 = {
    'package/package.json': '{\n  "name": "pkg",\n  "version": "1.0.0"\n}\n',
    'package/index.js': 'module.exports = 1;\n',
    'package/README.md': '# pkg\n',
    'package/lib/util.js': 'exports.a = 1;\nexports.b = 2;\n',
}

PKG2 = {
    'package/package.json': '{\n  "name": "pkg",\n  "version": "2.0.0"\n}\n',
    'package/index.js': 'module.exports = 2;\n',
    'package/README.md': '# pkg\n\nSecond release.\n',
    'package/lib/util.js': 'exports.a = 1;\nexports.b = 2;\n',
}
