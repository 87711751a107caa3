"""vault-state: base/delta snapshot tracking of a file vault."""

from .constants import VAULT_STATE_VERSION as __version__
from .consolidate import consolidate, should_consolidate
from .controller import SnapshotController
from .core import (
    BaseSnapshot,
    ConsolidationResult,
    DeltaHandle,
    DeltaRecord,
    FileState,
    HashPolicy,
    RunOutcome,
    RunResult,
    VaultStateConfig,
)
from .delta import build_delta, preview_changes
from .file_state import FileStateBuilder
from .ignore import IgnoreMatcher
from .reconstruct import load_current_state, load_state_at, reconstruct_state
from .store import SnapshotStore
from .vault import FilesystemVault, Vault, VaultEntry

__all__ = [
    "__version__",
    "BaseSnapshot",
    "ConsolidationResult",
    "DeltaHandle",
    "DeltaRecord",
    "FileState",
    "FileStateBuilder",
    "FilesystemVault",
    "HashPolicy",
    "IgnoreMatcher",
    "RunOutcome",
    "RunResult",
    "SnapshotController",
    "SnapshotStore",
    "Vault",
    "VaultEntry",
    "VaultStateConfig",
    "build_delta",
    "consolidate",
    "load_current_state",
    "load_state_at",
    "preview_changes",
    "reconstruct_state",
    "should_consolidate",
]
