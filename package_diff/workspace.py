"""
Temporary working directories of a comparison session.
"""

from __future__ import annotations

import hashlib as hl
import pathlib as pl
import tempfile
from typing import Optional, Union


class Workspace:
    """
    Session directory handing out fresh, collision-free subdirectories. Directories are never
    deleted by the workspace; their lifetime is up to the caller.
    """

    def __init__(self, session_dir: Union[str, pl.Path]):
        self.session_dir = pl.Path(session_dir)
        self.session_dir.mkdir(parents=True, exist_ok=True)

    def __repr__(self):
        return f'Workspace({str(self.session_dir)!r})'

    @classmethod
    def for_session(cls, new_ref: str, old_ref: str,
                    base_dir: Optional[Union[str, pl.Path]] = None) -> Workspace:
        """
        Creates or reuses the session directory of a pair of package references.

        :param new_ref: Reference of the new package.
        :param old_ref: Reference of the old package.
        :param base_dir: Parent of the session directory, the system temp directory by default.
        """
        digest = hl.md5((new_ref + '\0' + old_ref).encode('utf8')).hexdigest()[:12]
        base = pl.Path(base_dir) if base_dir is not None else pl.Path(tempfile.gettempdir())
        return cls(base / f'package-diff-{digest}')

    def make_dir(self, suffix: str) -> pl.Path:
        """
        :param suffix: Readable name prefix of the new directory, e.g. ``unpack-new``.
        :return: Path of a new, empty directory inside the session directory.
        """
        return pl.Path(tempfile.mkdtemp(prefix=f'{suffix}-', dir=self.session_dir))
