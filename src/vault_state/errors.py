"""Custom exceptions for vault-state.

This module defines typed exceptions for better error handling and clearer
error messages throughout the application.
"""


class VaultStateError(RuntimeError):
    """Base class for all vault-state errors."""
    pass


# Scan Errors
class TransientReadError(VaultStateError):
    """A single file's content could not be read during hashing."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not read {path}: {reason}")


# Store Errors
class NamingCollisionError(VaultStateError):
    """A delta for this period already exists."""

    def __init__(self, period: str, path: str):
        self.period = period
        self.path = path
        super().__init__(
            f"Delta for {period} already exists at {path}. "
            f"Only one delta is recorded per day."
        )


class StorageError(VaultStateError):
    """Base class for snapshot storage errors."""
    pass


class StorageWriteError(StorageError):
    """Base or delta write failed; nothing was committed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write {path}: {reason}")


# Integrity Errors
class IntegrityError(VaultStateError):
    """Base class for data integrity errors."""
    pass


class CorruptStateError(IntegrityError):
    """A base or delta file could not be parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(
            f"Snapshot file {path} is corrupt: {reason}\n"
            f"Restore it from a backup or remove the snapshot folder to start a new base."
        )


class MissingBaseError(IntegrityError):
    """Reconstruction was requested but no base snapshot exists."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"No base snapshot found at {path}")


class HistoryUnavailableError(VaultStateError):
    """The requested day predates the current base; its deltas were consolidated."""

    def __init__(self, period: str, base_created: str):
        self.period = period
        self.base_created = base_created
        super().__init__(
            f"No history for {period}: the base snapshot was created at {base_created} "
            f"and earlier deltas have been consolidated."
        )


# Configuration Errors
class ConfigError(VaultStateError):
    """Configuration is missing or invalid."""
    pass


# Concurrency Errors
class RunInProgressError(VaultStateError):
    """Another snapshot run holds the lock for this vault."""

    def __init__(self, lock_path: str):
        self.lock_path = lock_path
        super().__init__(f"Another snapshot run is in progress (lock: {lock_path})")
