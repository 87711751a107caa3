"""Tests for state reconstruction from base plus deltas."""

import random
from datetime import datetime, timezone

import pytest

from vault_state.consolidate import consolidate
from vault_state.core import BaseSnapshot, DeltaRecord, FileState
from vault_state.errors import CorruptStateError, HistoryUnavailableError, MissingBaseError
from vault_state.reconstruct import (
    apply_delta,
    load_current_state,
    load_state_at,
    reconstruct_state,
)
from vault_state.store import SnapshotStore


def _fs(path, mtime=1, hash=None):
    return FileState(path=path, mtime=mtime, size=mtime * 10, hash=hash)


@pytest.fixture
def base():
    return BaseSnapshot(
        createdAt="2026-03-01T00:00:00.000Z",
        files={"a.md": _fs("a.md", 1, "a1"), "b.png": _fs("b.png", 1)},
    )


class TestReconstructState:
    """Test the replay algorithm."""

    def test_no_deltas_returns_base_files(self, base):
        state = reconstruct_state(base, [])

        assert state == base.files
        assert state is not base.files

    def test_base_not_mutated(self, base):
        before = dict(base.files)
        reconstruct_state(base, [DeltaRecord(createdAt="t", removed=["a.md"])])

        assert base.files == before

    def test_added_modified_removed(self, base):
        delta = DeltaRecord(
            createdAt="t",
            added=[_fs("c.md", 2, "c2")],
            modified=[_fs("a.md", 2, "a2")],
            removed=["b.png"],
        )

        state = reconstruct_state(base, [delta])

        assert set(state) == {"a.md", "c.md"}
        assert state["a.md"].hash == "a2"
        assert state["c.md"].mtime == 2

    def test_deltas_apply_in_order(self, base):
        """Later deltas win over earlier ones."""
        d1 = DeltaRecord(createdAt="1", modified=[_fs("a.md", 2, "a2")])
        d2 = DeltaRecord(createdAt="2", modified=[_fs("a.md", 3, "a3")])

        assert reconstruct_state(base, [d1, d2])["a.md"].hash == "a3"
        assert reconstruct_state(base, [d2, d1])["a.md"].hash == "a2"

    def test_remove_then_readd(self, base):
        d1 = DeltaRecord(createdAt="1", removed=["a.md"])
        d2 = DeltaRecord(createdAt="2", added=[_fs("a.md", 5, "a5")])

        state = reconstruct_state(base, [d1, d2])
        assert state["a.md"].mtime == 5

    def test_removing_unknown_path_is_harmless(self, base):
        state = reconstruct_state(base, [DeltaRecord(createdAt="t", removed=["nope.md"])])
        assert state == base.files

    def test_deterministic(self, base):
        """The same inputs always produce the same mapping."""
        rng = random.Random(42)
        deltas = []
        paths = [f"n/{i}.md" for i in range(30)]
        for d in range(20):
            sample = rng.sample(paths, 6)
            deltas.append(DeltaRecord(
                createdAt=str(d),
                added=[_fs(p, d, f"h{d}") for p in sample[:2]],
                modified=[_fs(p, d + 100, f"m{d}") for p in sample[2:4]],
                removed=sample[4:],
            ))

        first = reconstruct_state(base, deltas)
        second = reconstruct_state(base, deltas)

        assert first == second
        assert list(first.items()) == list(second.items())

    def test_replaying_absorbed_deltas_is_idempotent(self, base):
        """Deltas already folded into a base don't change it when replayed."""
        deltas = [
            DeltaRecord(createdAt="1", added=[_fs("x.md", 2)], removed=["b.png"]),
            DeltaRecord(createdAt="2", modified=[_fs("x.md", 3)], removed=["a.md"]),
            DeltaRecord(createdAt="3", added=[_fs("a.md", 4)]),
        ]
        folded = BaseSnapshot(createdAt="new", files=reconstruct_state(base, deltas))

        assert reconstruct_state(folded, deltas) == folded.files

    def test_apply_delta_in_place(self):
        state = {}
        apply_delta(state, DeltaRecord(createdAt="t", added=[_fs("a.md")]))
        assert list(state) == ["a.md"]


class TestLoadFromStore:
    """Test reconstruction through the store."""

    @pytest.fixture
    def store(self, tmp_path, base):
        store = SnapshotStore(tmp_path / "snaps")
        store.write_base(base)
        store.append_delta(DeltaRecord(createdAt="d2", added=[_fs("c.md", 2)]), "2026-03-02")
        store.append_delta(DeltaRecord(createdAt="d3", removed=["c.md", "a.md"]), "2026-03-03")
        return store

    def test_load_current_state(self, store):
        assert set(load_current_state(store)) == {"b.png"}

    def test_load_state_at(self, store):
        """Point-in-time state replays only deltas up to that day."""
        assert set(load_state_at(store, "2026-03-01")) == {"a.md", "b.png"}
        assert set(load_state_at(store, "2026-03-02")) == {"a.md", "b.png", "c.md"}
        assert set(load_state_at(store, "2026-03-03")) == {"b.png"}

    def test_load_state_before_base_is_unavailable(self, store):
        """Days folded into a newer base can't be reconstructed any more."""
        consolidate(store, now=datetime(2026, 3, 3, 12, 0, tzinfo=timezone.utc))

        with pytest.raises(HistoryUnavailableError) as exc:
            load_state_at(store, "2026-03-01")

        assert exc.value.period == "2026-03-01"
        assert exc.value.base_created.startswith("2026-03-03")
        assert set(load_state_at(store, "2026-03-03")) == {"b.png"}

    def test_missing_base(self, tmp_path):
        with pytest.raises(MissingBaseError):
            load_current_state(SnapshotStore(tmp_path / "empty"))

    def test_corrupt_delta_aborts(self, store):
        store.delta_path("2026-03-04").write_text("[]")

        with pytest.raises(CorruptStateError):
            load_current_state(store)
