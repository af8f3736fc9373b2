"""Common test fixtures for the NoteVault engine."""

from pathlib import Path

import pytest

from notevault.backup import BackupManager
from notevault.config import config
from notevault.models.schema import Delta, DeltaOp, Note, NoteContent
from notevault.observability import metrics
from notevault.services.sync_service import SyncService
from notevault.services.transfer_service import TransferService
from notevault.storage.note_repository import NoteRepository


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Keep metrics isolated between tests."""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Point the global config at a temporary storage root (auto-restored)."""
    monkeypatch.setattr(config, "base_dir", tmp_path / "vault")
    monkeypatch.setattr(config, "notes_dir", "notes")
    monkeypatch.setattr(config, "backup_dir", "backups")
    monkeypatch.setattr(config, "log_dir", None)
    monkeypatch.setattr(config, "log_level", "INFO")
    yield config


@pytest.fixture
def storage_root(tmp_path) -> Path:
    """A storage root that does not exist yet (first run)."""
    return tmp_path / "vault"


@pytest.fixture
def note_repository(storage_root):
    """Create a test note repository."""
    return NoteRepository(storage_root, notes_dir="notes")


@pytest.fixture
def sync_service(note_repository):
    return SyncService(repository=note_repository)


@pytest.fixture
def transfer_service(note_repository):
    return TransferService(repository=note_repository)


@pytest.fixture
def backup_manager(storage_root):
    return BackupManager(storage_root, backup_dir="backups")


@pytest.fixture
def make_note():
    """Factory for notes with content and a text delta."""

    def _make(title="Title", body="Body", uuid=None, timestamp=None, ops=None):
        text = f"{title}\n{body}"
        delta = Delta(ops=ops) if ops is not None else Delta(ops=[DeltaOp(insert=text)])
        kwargs = {"content": NoteContent(title=title, body=body, delta=delta)}
        if uuid is not None:
            kwargs["uuid"] = uuid
        if timestamp is not None:
            kwargs["timestamp"] = timestamp
        return Note(**kwargs)

    return _make
