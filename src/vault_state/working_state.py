"""Status summary of the vault against its recorded snapshots."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .context import VaultContext
from .core import VaultStateConfig
from .delta import PendingChanges, preview_changes
from .ops import load_config
from .reconstruct import load_current_state
from .utils import get_period


@dataclass(slots=True)
class VaultStatus:
    """High-level status summary for UI display."""

    period: str
    enabled: bool
    has_base: bool = False
    base_created: Optional[str] = None
    delta_count: int = 0
    delta_periods: List[str] = field(default_factory=list)
    ran_today: bool = False
    consolidation_threshold: int = 0

    # Recorded (reconstructed) state
    total_tracked: int = 0
    total_size: int = 0
    hashed: int = 0

    # Live vault vs recorded state
    pending: PendingChanges = field(default_factory=PendingChanges)

    @property
    def has_changes(self) -> bool:
        """Check if the next run would record anything."""
        return not self.pending.is_empty

    @property
    def deltas_until_consolidation(self) -> int:
        return max(self.consolidation_threshold - self.delta_count, 0)


def compute_status(
    ctx: Optional[VaultContext] = None,
    config: Optional[VaultStateConfig] = None,
    now: Optional[datetime] = None,
) -> VaultStatus:
    """
    Summarize recorded snapshots and pending changes.

    Reads the store and lists the vault but never hashes or writes.

    Raises:
        CorruptStateError: If a stored record can't be parsed
    """
    if ctx is None:
        ctx = VaultContext()
    config = config or load_config(ctx)

    period = get_period(now)
    status = VaultStatus(
        period=period,
        enabled=config.enabled,
        consolidation_threshold=config.consolidation_threshold,
    )
    if not config.enabled:
        return status

    store = ctx.store_for(config)
    status.has_base = store.has_base()
    if not status.has_base:
        return status

    handles = store.list_deltas()
    status.delta_count = len(handles)
    status.delta_periods = [h.period for h in handles]
    status.ran_today = store.has_delta_for(period)
    status.base_created = store.read_base().createdAt

    state = load_current_state(store)
    status.total_tracked = len(state)
    status.total_size = sum(f.size for f in state.values())
    status.hashed = sum(1 for f in state.values() if f.hash is not None)

    status.pending = preview_changes(state, ctx.vault.list_files(), ctx.get_ignore_matcher(config))
    return status
