"""Once-per-period snapshot orchestration.

State machine per invocation (period = UTC calendar day)::

    delta for today exists  -> skip
    no base                 -> create base
    base                    -> create delta (unless nothing changed)
                               -> consolidate if the delta count hit the threshold

The controller never raises to its caller: store and parse failures are
reported through the notifier and returned as a FAILED RunResult, so the
next triggering event can simply retry.
"""

import contextlib
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

import portalocker

from .consolidate import consolidate, should_consolidate
from .constants import LOCK_FILE, VAULT_STATE_DIR
from .core import (
    BaseSnapshot,
    ConsolidationResult,
    RunOutcome,
    RunResult,
    VaultStateConfig,
)
from .delta import build_delta, tracked_entries
from .errors import NamingCollisionError, RunInProgressError, VaultStateError
from .file_state import FileStateBuilder
from .ignore import IgnoreMatcher
from .notify import LoggingNotifier, Notifier
from .reconstruct import load_current_state
from .store import SnapshotStore
from .utils import get_iso_timestamp, get_period
from .vault import Vault

logger = logging.getLogger(__name__)


class SnapshotController:
    """Runs the base/delta/consolidate decision for one vault."""

    def __init__(
        self,
        vault: Vault,
        config: VaultStateConfig,
        notifier: Optional[Notifier] = None,
        matcher: Optional[IgnoreMatcher] = None,
        lock_path: Optional[Path] = None,
    ):
        self.vault = vault
        self.config = config
        self.notifier = notifier or LoggingNotifier()
        self.matcher = matcher or IgnoreMatcher.compile(
            config.snapshot_folder, config.ignored_folders
        )
        self.lock_path = lock_path or (Path(vault.root) / VAULT_STATE_DIR / LOCK_FILE)
        self.store = SnapshotStore(Path(vault.root) / config.snapshot_folder)

    def _builder(self) -> FileStateBuilder:
        return FileStateBuilder(
            self.vault,
            policy=self.config.hash_policy,
            notifier=self.notifier,
            max_workers=self.config.max_workers,
        )

    @contextlib.contextmanager
    def _single_flight(self) -> Iterator[None]:
        """Hold the vault's run lock, failing fast if another run has it."""
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with portalocker.Lock(str(self.lock_path), mode="a", timeout=0, fail_when_locked=True):
                yield
        except portalocker.LockException as e:
            raise RunInProgressError(str(self.lock_path)) from e

    # ============= Entry Points =============

    def run_if_needed(self, now: Optional[datetime] = None) -> RunResult:
        """Take the snapshot for the current period if it hasn't been taken.

        Args:
            now: Clock override; the period is its UTC date

        Returns:
            RunResult describing what happened
        """
        period = get_period(now)
        if not self.config.enabled:
            logger.debug("No snapshot folder configured; skipping")
            return RunResult(outcome=RunOutcome.DISABLED, period=period)

        try:
            with self._single_flight():
                result = self._run(period, now)
        except RunInProgressError as e:
            logger.info("%s", e)
            return RunResult(outcome=RunOutcome.SKIPPED_BUSY, period=period, message=str(e))
        except (VaultStateError, OSError) as e:
            logger.error("Snapshot run for %s aborted: %s", period, e)
            self.notifier.error(f"Snapshot failed: {e}")
            return RunResult(outcome=RunOutcome.FAILED, period=period, message=str(e))

        if result.outcome in (RunOutcome.BASE_CREATED, RunOutcome.DELTA_CREATED) or result.consolidated:
            self.notifier.info(result.summary())
        return result

    def consolidate_now(self, now: Optional[datetime] = None) -> ConsolidationResult:
        """Fold all deltas into the base regardless of the threshold.

        Raises:
            RunInProgressError: If a run holds the lock
            VaultStateError: If the store can't be read or written
        """
        with self._single_flight():
            result = consolidate(self.store, now)
        if result.consolidated:
            self.notifier.info("Snapshots consolidated into new base.")
        return result

    # ============= Steps =============

    def _run(self, period: str, now: Optional[datetime]) -> RunResult:
        self.store.ensure_folder()

        if self.store.has_delta_for(period):
            logger.debug("Delta for %s already exists", period)
            return RunResult(outcome=RunOutcome.SKIPPED_ALREADY_RAN, period=period)

        if not self.store.has_base():
            base = self.create_base(now)
            return RunResult(
                outcome=RunOutcome.BASE_CREATED,
                period=period,
                files=len(base.files),
            )

        try:
            result = self.create_delta(period, now)
        except NamingCollisionError:
            return RunResult(outcome=RunOutcome.SKIPPED_ALREADY_RAN, period=period)

        result.consolidated = self.maybe_consolidate(now).consolidated
        return result

    def create_base(self, now: Optional[datetime] = None) -> BaseSnapshot:
        """Scan every tracked file and write base.json."""
        entries = tracked_entries(self.vault.list_files(), self.matcher)
        states = self._builder().build_many([entries[p] for p in sorted(entries)])

        base = BaseSnapshot(
            createdAt=get_iso_timestamp(now),
            files={s.path: s for s in states},
        )
        self.store.write_base(base)
        logger.info("Base snapshot created with %d files", len(base.files))
        return base

    def create_delta(self, period: str, now: Optional[datetime] = None) -> RunResult:
        """Record today's changes relative to the reconstructed state.

        Raises:
            NamingCollisionError: If a delta for ``period`` appeared meanwhile
        """
        previous = load_current_state(self.store)
        delta = build_delta(
            previous,
            self.vault.list_files(),
            self.matcher,
            self._builder(),
            now=now,
        )
        if delta is None:
            logger.info("No changes since last snapshot")
            return RunResult(outcome=RunOutcome.NO_CHANGES, period=period)

        self.store.append_delta(delta, period)
        logger.info("Delta %s created %s", period, delta.summary)
        return RunResult(
            outcome=RunOutcome.DELTA_CREATED,
            period=period,
            added=len(delta.added),
            modified=len(delta.modified),
            removed=len(delta.removed),
        )

    def maybe_consolidate(self, now: Optional[datetime] = None) -> ConsolidationResult:
        """Consolidate if the stored delta count reached the threshold."""
        count = len(self.store.list_deltas())
        if not should_consolidate(count, self.config.consolidation_threshold):
            return ConsolidationResult()
        return consolidate(self.store, now)
