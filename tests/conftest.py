"""Shared test fixtures and utilities."""

import pytest

from vault_state.context import VaultContext
from vault_state.core import VaultStateConfig
from vault_state.ops import save_config

from tests.fixtures.vaults import MemoryVault, RecordingNotifier, set_mtime


@pytest.fixture
def memory_vault():
    """Empty in-memory vault."""
    return MemoryVault()


@pytest.fixture
def notifier():
    """Notifier that records messages instead of printing them."""
    return RecordingNotifier()


@pytest.fixture
def write_file(tmp_path):
    """Factory fixture to write files relative to tmp_path with a fixed mtime (ms)."""
    def _write(path: str, content: str = "test content", mtime: int = 1_000_000):
        file_path = tmp_path / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)
        set_mtime(file_path, mtime)
        return file_path
    return _write


@pytest.fixture
def initialized_ctx(tmp_path, monkeypatch):
    """Create an initialized vault context with a snapshot folder configured."""
    monkeypatch.chdir(tmp_path)
    ctx = VaultContext.init()

    config = VaultStateConfig(snapshot_folder="_snapshots")
    save_config(config, ctx)

    return ctx, config
