"""Core operations for vault-state."""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from .context import VaultContext
from .controller import SnapshotController
from .core import (
    ConsolidationResult,
    DeltaHandle,
    DeltaRecord,
    FileState,
    RunResult,
    VaultStateConfig,
)
from .errors import ConfigError
from .notify import Notifier
from .reconstruct import load_state_at
from .utils import atomic_write_text


# ============= Configuration =============

def load_config(ctx: Optional[VaultContext] = None) -> VaultStateConfig:
    """Load vault configuration, falling back to defaults if none is saved.

    Raises:
        ConfigError: If the config file exists but is unreadable or invalid
    """
    if ctx is None:
        ctx = VaultContext()

    if not ctx.config_path.exists():
        return VaultStateConfig()

    try:
        with ctx.config_path.open() as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read {ctx.config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{ctx.config_path} must contain a mapping")

    try:
        return VaultStateConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {ctx.config_path}:\n{e}") from e


def save_config(config: VaultStateConfig, ctx: Optional[VaultContext] = None) -> None:
    """Save vault configuration atomically."""
    if ctx is None:
        ctx = VaultContext.init()

    config_text = yaml.safe_dump(config.model_dump(mode="json"), default_flow_style=False, sort_keys=False)
    atomic_write_text(ctx.config_path, config_text)


# ============= Snapshot Operations =============

def make_controller(
    ctx: VaultContext,
    config: Optional[VaultStateConfig] = None,
    notifier: Optional[Notifier] = None,
) -> SnapshotController:
    """Build a controller for the vault, using the memoized ignore matcher."""
    config = config or load_config(ctx)
    return SnapshotController(
        ctx.vault,
        config,
        notifier=notifier,
        matcher=ctx.get_ignore_matcher(config),
        lock_path=ctx.lock_path,
    )


def run(
    ctx: Optional[VaultContext] = None,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
) -> RunResult:
    """Take today's snapshot if it hasn't been taken yet."""
    if ctx is None:
        ctx = VaultContext()
    return make_controller(ctx, notifier=notifier).run_if_needed(now)


def consolidate_now(
    ctx: Optional[VaultContext] = None,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
) -> ConsolidationResult:
    """Fold every stored delta into the base, ignoring the threshold."""
    if ctx is None:
        ctx = VaultContext()
    config = load_config(ctx)
    if not config.enabled:
        raise ConfigError("No snapshot folder configured")
    return make_controller(ctx, config, notifier).consolidate_now(now)


def load_history(ctx: Optional[VaultContext] = None) -> List[Tuple[DeltaHandle, DeltaRecord]]:
    """Load every stored delta in replay order."""
    if ctx is None:
        ctx = VaultContext()
    store = ctx.store_for(load_config(ctx))
    return [(h, store.read_delta(h)) for h in store.list_deltas()]


def state_at(
    ctx: Optional[VaultContext] = None,
    period: Optional[str] = None,
) -> Dict[str, FileState]:
    """Reconstruct the recorded state as of ``period`` (latest if None)."""
    if ctx is None:
        ctx = VaultContext()
    return load_state_at(ctx.store_for(load_config(ctx)), period)
