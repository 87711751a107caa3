"""Vault context for managing paths and vault discovery."""

from pathlib import Path
from typing import Optional

from .constants import CONFIG_FILE, LOCK_FILE, VAULT_STATE_DIR
from .core import VaultStateConfig
from .ignore import IgnoreMatcher, split_patterns
from .store import SnapshotStore
from .vault import FilesystemVault


class VaultContext:
    """Manages vault root discovery and path resolution."""

    def __init__(self, start_path: Optional[Path] = None):
        """Initialize context by finding the vault root.

        Args:
            start_path: Path to start searching for the vault root
        """
        self.root = self._find_root(start_path or Path.cwd())
        if not self.root:
            raise ValueError(f"Not inside a vault-state vault (no {VAULT_STATE_DIR} found)")
        self._matcher: Optional[IgnoreMatcher] = None

    @classmethod
    def is_initialized(cls, path: Optional[Path] = None) -> bool:
        """Check if a specific directory is initialized (without traversing up)."""
        target = path or Path.cwd()
        return (target / VAULT_STATE_DIR).exists()

    @classmethod
    def init(cls, path: Optional[Path] = None) -> "VaultContext":
        """Initialize a new vault at the given path."""
        target = path or Path.cwd()
        marker = target / VAULT_STATE_DIR
        marker.mkdir(parents=True, exist_ok=True)
        return cls(target)

    def _find_root(self, start: Path) -> Optional[Path]:
        """Walk up directory tree to find the vault root."""
        current = start.resolve()

        while current != current.parent:
            if (current / VAULT_STATE_DIR).is_dir():
                return current
            current = current.parent

        if (current / VAULT_STATE_DIR).is_dir():
            return current
        return None

    @property
    def storage_dir(self) -> Path:
        """Get the vault-state control directory."""
        return self.root / VAULT_STATE_DIR

    @property
    def config_path(self) -> Path:
        return self.storage_dir / CONFIG_FILE

    @property
    def lock_path(self) -> Path:
        return self.storage_dir / LOCK_FILE

    @property
    def vault(self) -> FilesystemVault:
        return FilesystemVault(self.root)

    def store_for(self, config: VaultStateConfig) -> SnapshotStore:
        """Get the snapshot store for the configured folder."""
        return SnapshotStore(self.root / config.snapshot_folder)

    def get_ignore_matcher(self, config: VaultStateConfig) -> IgnoreMatcher:
        """Get the ignore matcher, recompiling only when the config changed."""
        key = (config.snapshot_folder, tuple(split_patterns(config.ignored_folders)))
        if self._matcher is None or self._matcher.key != key:
            self._matcher = IgnoreMatcher.compile(config.snapshot_folder, config.ignored_folders)
        return self._matcher
