"""Host vault access: file enumeration and content reads."""

import logging
import os
from pathlib import Path
from typing import List, Protocol

from pydantic import BaseModel

from .errors import TransientReadError

logger = logging.getLogger(__name__)


class VaultEntry(BaseModel):
    """A live file as reported by the vault listing."""

    path: str        # vault-relative POSIX path
    name: str
    extension: str   # lower-case, without dot
    mtime: int       # milliseconds since epoch
    size: int

    @classmethod
    def from_stat(cls, relpath: str, st: os.stat_result) -> "VaultEntry":
        name = relpath.rsplit("/", 1)[-1]
        _, dot, ext = name.rpartition(".")
        return cls(
            path=relpath,
            name=name,
            extension=ext.lower() if dot else "",
            mtime=st.st_mtime_ns // 1_000_000,
            size=st.st_size,
        )


class Vault(Protocol):
    """
    Protocol for the file collection being tracked.

    Implementations list files and read their content. Listing order does
    not matter; callers sort by path where order is observable.
    """

    root: Path

    def list_files(self) -> List[VaultEntry]:
        """
        Enumerate every file currently in the vault.

        Returns:
            One entry per file, with vault-relative POSIX paths
        """
        ...

    def read_bytes(self, path: str) -> bytes:
        """
        Read a file's content.

        Args:
            path: Vault-relative POSIX path

        Raises:
            TransientReadError: If the file cannot be read right now
        """
        ...


class FilesystemVault:
    """
    Vault backed by a local directory tree.

    Directory symlinks are not followed, so a link cycle can't make the
    scan run forever.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def list_files(self) -> List[VaultEntry]:
        entries = []
        for dirpath, _dirnames, filenames in os.walk(self.root):
            for filename in filenames:
                full = Path(dirpath) / filename
                relpath = full.relative_to(self.root).as_posix()
                try:
                    relpath.encode("utf-8")
                except UnicodeEncodeError:
                    # Undecodable bytes in the name can't be recorded as JSON text
                    logger.warning("Skipping file with non-UTF-8 name: %r", relpath)
                    continue
                try:
                    st = full.stat()
                except OSError as e:
                    # Removed between listing and stat
                    logger.debug("Skipping %s: %s", relpath, e)
                    continue
                entries.append(VaultEntry.from_stat(relpath, st))
        return entries

    def read_bytes(self, path: str) -> bytes:
        try:
            return (self.root / path).read_bytes()
        except OSError as e:
            raise TransientReadError(path, e.strerror or str(e)) from e
