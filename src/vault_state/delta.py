"""Delta computation - compares the live vault to the reconstructed state."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from .core import DeltaRecord, FileState
from .file_state import FileStateBuilder
from .ignore import IgnoreMatcher
from .utils import get_iso_timestamp
from .vault import VaultEntry


@dataclass
class PendingChanges:
    """Classified differences, before any content is read."""

    added: List[VaultEntry] = field(default_factory=list)
    modified: List[VaultEntry] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.modified or self.removed)

    @property
    def total(self) -> int:
        return len(self.added) + len(self.modified) + len(self.removed)


def tracked_entries(
    live_files: Iterable[VaultEntry],
    matcher: IgnoreMatcher,
) -> Dict[str, VaultEntry]:
    """Index the live listing by path, dropping ignored files."""
    return {e.path: e for e in live_files if not matcher.is_ignored(e.path)}


def preview_changes(
    previous: Mapping[str, FileState],
    live_files: Iterable[VaultEntry],
    matcher: IgnoreMatcher,
) -> PendingChanges:
    """
    Classify live files against the previous state without reading content.

    A path absent from ``previous`` is added; a path whose mtime differs is
    modified; a previous path with no live file is removed. Equal mtime
    means unchanged, whatever the content. Each list is sorted by path.
    """
    current = tracked_entries(live_files, matcher)
    changes = PendingChanges()

    changes.removed = sorted(path for path in previous if path not in current)

    for path in sorted(current):
        entry = current[path]
        prev = previous.get(path)
        if prev is None:
            changes.added.append(entry)
        elif prev.mtime != entry.mtime:
            changes.modified.append(entry)

    return changes


def build_delta(
    previous: Mapping[str, FileState],
    live_files: Iterable[VaultEntry],
    matcher: IgnoreMatcher,
    builder: FileStateBuilder,
    now: Optional[datetime] = None,
) -> Optional[DeltaRecord]:
    """
    Build the delta that takes ``previous`` to the live vault.

    Only added and modified files are read and hashed.

    Args:
        previous: State reconstructed from the store
        live_files: Current vault listing
        matcher: Ignore rules; ignored files never appear in the delta
        builder: Produces FileState entries for added/modified files
        now: Creation time (defaults to the current UTC time)

    Returns:
        The delta, or None when nothing changed and nothing should be written
    """
    changes = preview_changes(previous, live_files, matcher)
    if changes.is_empty:
        return None

    return DeltaRecord(
        createdAt=get_iso_timestamp(now),
        added=builder.build_many(changes.added),
        modified=builder.build_many(changes.modified),
        removed=changes.removed,
    )
