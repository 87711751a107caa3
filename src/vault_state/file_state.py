"""Build recorded FileState entries from live vault files."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from .constants import HASHABLE_EXTENSIONS
from .core import FileState, HashPolicy
from .errors import TransientReadError
from .hashing import compute_content_hash
from .notify import LoggingNotifier, Notifier
from .vault import Vault, VaultEntry

logger = logging.getLogger(__name__)


def is_hashable(extension: str) -> bool:
    """Check if files with this extension get a content hash."""
    return extension.lower() in HASHABLE_EXTENSIONS


class FileStateBuilder:
    """Produces the FileState recorded for a live file.

    Content is only read for hashable extensions. A failed read is not
    fatal: the state is recorded without a hash, the failure is reported
    through the notifier and the scan carries on.
    """

    def __init__(
        self,
        vault: Vault,
        policy: HashPolicy = HashPolicy.RAW,
        notifier: Optional[Notifier] = None,
        max_workers: int = 1,
    ):
        self.vault = vault
        self.policy = policy
        self.notifier = notifier or LoggingNotifier()
        self.max_workers = max_workers
        self.read_errors: List[TransientReadError] = []

    def build(self, entry: VaultEntry) -> FileState:
        """Build the state for one file, hashing it if eligible."""
        file_hash = None
        if is_hashable(entry.extension):
            try:
                data = self.vault.read_bytes(entry.path)
            except TransientReadError as e:
                self.read_errors.append(e)
                self.notifier.warning(f"{e}; recorded without hash")
            else:
                file_hash = compute_content_hash(data, self.policy)
                logger.debug("Hashed %s (%d bytes)", entry.path, len(data))

        return FileState(
            path=entry.path,
            mtime=entry.mtime,
            size=entry.size,
            hash=file_hash,
        )

    def build_many(self, entries: Sequence[VaultEntry]) -> List[FileState]:
        """Build states for many files, in input order.

        Hashing runs on a thread pool when ``max_workers > 1``.
        """
        if self.max_workers <= 1 or len(entries) <= 1:
            return [self.build(e) for e in entries]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(self.build, entries))
