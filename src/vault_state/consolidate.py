"""Consolidation: fold accumulated deltas into a fresh base."""

import logging
from datetime import datetime
from typing import Optional

from .constants import CONSOLIDATION_THRESHOLD
from .core import BaseSnapshot, ConsolidationResult
from .reconstruct import reconstruct_state
from .store import SnapshotStore
from .utils import get_iso_timestamp

logger = logging.getLogger(__name__)


def should_consolidate(delta_count: int, threshold: int = CONSOLIDATION_THRESHOLD) -> bool:
    """Check if enough deltas have accumulated to fold them into the base."""
    return delta_count >= threshold


def consolidate(store: SnapshotStore, now: Optional[datetime] = None) -> ConsolidationResult:
    """
    Replace the base with the fully reconstructed state and drop the deltas.

    The new base is written (and fsynced) before any delta is deleted. If
    the process dies in between, the leftover deltas are already reflected
    in the new base and replaying them again yields the same state.

    Raises:
        MissingBaseError: If there is no base to consolidate into
        CorruptStateError: If any stored record can't be parsed
        StorageWriteError: If writing the base or deleting a delta fails
    """
    handles = store.list_deltas()
    if not handles:
        return ConsolidationResult()

    base = store.read_base()
    state = reconstruct_state(base, (store.read_delta(h) for h in handles))

    new_base = BaseSnapshot(createdAt=get_iso_timestamp(now), files=state)
    store.write_base(new_base)
    store.delete_deltas(handles)

    logger.info("Consolidated %d deltas into new base (%d files)", len(handles), len(state))
    return ConsolidationResult(
        deltas_folded=len(handles),
        files=len(state),
        createdAt=new_base.createdAt,
    )
