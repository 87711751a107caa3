"""Replay of a base plus ordered deltas into the current known state."""

from typing import Dict, Iterable, Optional

from .core import BaseSnapshot, DeltaRecord, FileState
from .errors import HistoryUnavailableError
from .store import SnapshotStore


def apply_delta(state: Dict[str, FileState], delta: DeltaRecord) -> None:
    """Apply one delta to ``state`` in place.

    Added and modified entries are both upserts; the split only matters for
    reporting. Removals go last.
    """
    for entry in delta.added:
        state[entry.path] = entry
    for entry in delta.modified:
        state[entry.path] = entry
    for path in delta.removed:
        state.pop(path, None)


def reconstruct_state(
    base: BaseSnapshot,
    deltas: Iterable[DeltaRecord],
) -> Dict[str, FileState]:
    """
    Compute the current path -> FileState mapping.

    Args:
        base: Base snapshot to start from (not modified)
        deltas: Deltas in creation order

    Returns:
        A new mapping. The same base and delta sequence always produce the
        same mapping, and replaying deltas whose effects are already in the
        base leaves the result unchanged.
    """
    state = dict(base.files)
    for delta in deltas:
        apply_delta(state, delta)
    return state


def load_current_state(store: SnapshotStore) -> Dict[str, FileState]:
    """Reconstruct state from everything stored.

    Raises:
        MissingBaseError: If the store has no base
        CorruptStateError: If the base or any delta can't be parsed
    """
    return load_state_at(store, None)


def load_state_at(store: SnapshotStore, period: Optional[str]) -> Dict[str, FileState]:
    """Reconstruct state as of the end of ``period`` (YYYY-MM-DD).

    Only deltas recorded on or before ``period`` are replayed; ``None``
    replays all of them.

    Raises:
        HistoryUnavailableError: If ``period`` is before the base's day
    """
    base = store.read_base()
    if period is not None and period < base.createdAt[:10]:
        raise HistoryUnavailableError(period, base.createdAt)
    handles = store.list_deltas()
    if period is not None:
        handles = [h for h in handles if h.period <= period]
    return reconstruct_state(base, (store.read_delta(h) for h in handles))
