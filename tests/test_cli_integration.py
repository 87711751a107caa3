"""Integration tests for CLI commands that verify real workflows.

Everything runs in-process through CliRunner against a vault in tmp_path.
"""

import json

import pytest
from typer.testing import CliRunner

from vault_state import ops
from vault_state.cli import app
from vault_state.context import VaultContext
from vault_state.ops import load_config

from tests.fixtures.vaults import day, period


# ========== Fixtures ==========

@pytest.fixture
def runner():
    """Create a CliRunner for in-process testing."""
    return CliRunner()


@pytest.fixture
def vault_dir(tmp_path, monkeypatch):
    """Empty directory used as the current working directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def snapshotted(initialized_ctx, write_file):
    """Initialized vault with a base on day 1 and a delta on day 2."""
    ctx, config = initialized_ctx
    write_file("notes/a.md", "alpha")
    write_file("notes/b.md", "beta")
    ops.run(ctx, now=day(1))

    write_file("notes/c.md", "gamma", mtime=2_000_000)
    (ctx.root / "notes" / "b.md").unlink()
    ops.run(ctx, now=day(2))
    return ctx


# ========== init ==========

def test_init_creates_config(runner, vault_dir):
    result = runner.invoke(app, ["init", "--ignore", "drafts,tmp*"])

    assert result.exit_code == 0, result.output
    assert "Initialized vault" in result.output
    config = load_config(VaultContext(vault_dir))
    assert config.snapshot_folder == "snapshots"
    assert config.ignored_folders == "drafts,tmp*"


def test_init_with_path_and_folder(runner, vault_dir):
    target = vault_dir / "my-vault"
    target.mkdir()

    result = runner.invoke(app, ["init", str(target), "-s", "meta/snaps"])

    assert result.exit_code == 0, result.output
    assert (target / ".vault-state" / "config.yaml").exists()
    assert load_config(VaultContext(target)).snapshot_folder == "meta/snaps"


def test_init_twice_fails(runner, vault_dir):
    runner.invoke(app, ["init"])

    result = runner.invoke(app, ["init"])

    assert result.exit_code == 1
    assert "already initialized" in result.output


def test_commands_outside_vault(runner, vault_dir):
    for command in (["run"], ["status"], ["history"], ["show"], ["consolidate"], ["config"]):
        result = runner.invoke(app, command)
        assert result.exit_code == 1, command
        assert "vault-state init" in result.output


# ========== run ==========

def test_run_creates_base_then_no_changes(runner, vault_dir, write_file):
    runner.invoke(app, ["init"])
    write_file("notes/a.md", "alpha")
    write_file("images/pic.png", "png")

    first = runner.invoke(app, ["run"])
    second = runner.invoke(app, ["run"])

    assert first.exit_code == 0, first.output
    assert "Base snapshot created (2 files)." in first.output
    assert second.exit_code == 0, second.output
    assert "No changes since last snapshot." in second.output

    base = json.loads((vault_dir / "snapshots" / "base.json").read_text())
    assert set(base["files"]) == {"images/pic.png", "notes/a.md"}
    assert "hash" in base["files"]["notes/a.md"]
    assert "hash" not in base["files"]["images/pic.png"]


def test_run_records_delta(runner, vault_dir, write_file):
    runner.invoke(app, ["init"])
    write_file("notes/a.md", "alpha")
    ctx = VaultContext(vault_dir)
    ops.run(ctx, now=day(1))

    write_file("notes/a.md", "alpha v2", mtime=2_000_000)
    result = runner.invoke(app, ["run"])

    assert result.exit_code == 0, result.output
    assert "Delta created  +0  ~1  -0" in result.output
    assert len(list((vault_dir / "snapshots").glob("delta-*.json"))) == 1


def test_run_quiet(runner, vault_dir, write_file):
    runner.invoke(app, ["init"])
    write_file("notes/a.md", "alpha")

    result = runner.invoke(app, ["run", "--quiet"])

    assert result.exit_code == 0
    assert result.output.strip() == ""
    assert (vault_dir / "snapshots" / "base.json").exists()


def test_run_without_snapshot_folder(runner, vault_dir):
    runner.invoke(app, ["init", "--snapshot-folder", ""])

    result = runner.invoke(app, ["run"])

    assert result.exit_code == 1
    assert "No snapshot folder configured" in result.output


def test_run_with_corrupt_base_fails(runner, initialized_ctx):
    ctx, _ = initialized_ctx
    (ctx.root / "_snapshots").mkdir()
    (ctx.root / "_snapshots" / "base.json").write_text("{oops")

    result = runner.invoke(app, ["run"])

    assert result.exit_code == 1
    assert "Snapshot failed" in result.output


# ========== status ==========

def test_status_before_first_run(runner, initialized_ctx):
    result = runner.invoke(app, ["status"])

    assert result.exit_code == 0, result.output
    assert "No base snapshot yet" in result.output


def test_status_shows_pending_changes(runner, snapshotted, write_file):
    write_file("notes/a.md", "alpha v2", mtime=3_000_000)
    write_file("notes/new.md", "new", mtime=3_000_000)
    (snapshotted.root / "notes" / "c.md").unlink()

    result = runner.invoke(app, ["status"])

    assert result.exit_code == 0, result.output
    assert "Deltas:" in result.output
    assert "Pending changes" in result.output
    assert "modified" in result.output and "notes/a.md" in result.output
    assert "added" in result.output and "notes/new.md" in result.output
    assert "removed" in result.output and "notes/c.md" in result.output


def test_status_clean(runner, snapshotted):
    result = runner.invoke(app, ["status"])

    assert result.exit_code == 0, result.output
    assert "No changes since last snapshot" in result.output


# ========== history / show ==========

def test_history_lists_deltas(runner, snapshotted):
    result = runner.invoke(app, ["history"])

    assert result.exit_code == 0, result.output
    assert period(2) in result.output


def test_history_empty(runner, initialized_ctx, write_file):
    ctx, _ = initialized_ctx
    write_file("notes/a.md")
    ops.run(ctx, now=day(1))

    result = runner.invoke(app, ["history"])

    assert result.exit_code == 0
    assert "No deltas recorded since the last base." in result.output


def test_show_current_and_past_state(runner, snapshotted):
    current = runner.invoke(app, ["show"])
    past = runner.invoke(app, ["show", "--at", period(1)])

    assert current.exit_code == 0, current.output
    assert "notes/c.md" in current.output
    assert "notes/b.md" not in current.output

    assert past.exit_code == 0, past.output
    assert "notes/b.md" in past.output
    assert "notes/c.md" not in past.output


def test_show_with_prefix(runner, snapshotted):
    result = runner.invoke(app, ["show", "--prefix", "notes/c"])

    assert result.exit_code == 0
    assert "notes/c.md" in result.output
    assert "notes/a.md" not in result.output


def test_show_before_base_reports_missing_history(runner, snapshotted):
    """After consolidation, days before the new base can't be shown."""
    ops.consolidate_now(snapshotted, now=day(3))

    result = runner.invoke(app, ["show", "--at", period(1)])

    assert result.exit_code == 1
    assert "No history for" in result.output
    assert "notes/a.md" not in result.output


def test_show_rejects_bad_date(runner, snapshotted):
    result = runner.invoke(app, ["show", "--at", "March 1st"])

    assert result.exit_code == 1
    assert "YYYY-MM-DD" in result.output


# ========== consolidate ==========

def test_consolidate_folds_deltas(runner, snapshotted):
    store = snapshotted.store_for(load_config(snapshotted))
    before = ops.state_at(snapshotted)

    result = runner.invoke(app, ["consolidate"])

    assert result.exit_code == 0, result.output
    assert "Folded 1 deltas" in result.output
    assert store.list_deltas() == []
    assert store.read_base().files == before


def test_consolidate_nothing(runner, initialized_ctx, write_file):
    ctx, _ = initialized_ctx
    write_file("notes/a.md")
    ops.run(ctx, now=day(1))

    result = runner.invoke(app, ["consolidate"])

    assert result.exit_code == 0
    assert "Nothing to consolidate." in result.output



def test_consolidate_reports_os_error(runner, snapshotted, monkeypatch):
    """Filesystem errors outside the store are reported, not raised."""
    def fail(*args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr("vault_state.cli.consolidate_now", fail)

    result = runner.invoke(app, ["consolidate"])

    assert result.exit_code == 1
    assert "Permission denied" in result.output
    assert not isinstance(result.exception, PermissionError)

# ========== config ==========

def test_config_show(runner, initialized_ctx):
    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0, result.output
    assert "snapshot_folder" in result.output
    assert "_snapshots" in result.output
    assert "Configuration saved" not in result.output


def test_config_update(runner, initialized_ctx):
    ctx, _ = initialized_ctx

    result = runner.invoke(app, [
        "config", "--threshold", "5", "--hash-policy", "normalized", "--ignore", "drafts",
    ])

    assert result.exit_code == 0, result.output
    assert "Configuration saved" in result.output
    config = load_config(ctx)
    assert config.consolidation_threshold == 5
    assert config.hash_policy.value == "normalized"
    assert config.ignored_folders == "drafts"
    assert config.snapshot_folder == "_snapshots"


def test_config_rejects_invalid_value(runner, initialized_ctx):
    ctx, _ = initialized_ctx

    result = runner.invoke(app, ["config", "--workers", "0"])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
    assert load_config(ctx).max_workers == 1


def test_config_rejects_folder_outside_vault(runner, initialized_ctx):
    ctx, _ = initialized_ctx

    result = runner.invoke(app, ["config", "--snapshot-folder", "../elsewhere"])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
    assert load_config(ctx).snapshot_folder == "_snapshots"
