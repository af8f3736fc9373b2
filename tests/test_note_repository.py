"""Tests for the NoteRepository class."""
import json
import os
from unittest.mock import patch

import pytest

from notevault.exceptions import (
    ErrorCode,
    MalformedRecordError,
    NoteDeleteError,
    NoteReadError,
    NoteWriteError,
    ValidationError,
)
from notevault.models.schema import Note
from notevault.observability import metrics
from notevault.storage.note_repository import NoteRepository, write_note_file


class TestCreate:
    """Tests for creating notes."""

    def test_create_bootstraps_directory(self, note_repository, storage_root, make_note):
        """The notes directory is created on first write."""
        assert not storage_root.exists()
        note = note_repository.create(make_note())
        path = storage_root / "notes" / f"{note.uuid}.json"
        assert path.is_file()
        assert json.loads(path.read_text(encoding="utf-8"))["uuid"] == note.uuid

    def test_create_same_uuid_upserts(self, note_repository, make_note):
        """Creating twice with one uuid leaves a single file with the second content."""
        note_repository.create(make_note(uuid="same", title="first"))
        note_repository.create(make_note(uuid="same", title="second"))

        files = list(note_repository.notes_dir.iterdir())
        assert [f.name for f in files] == ["same.json"]
        assert note_repository.get("same").content.title == "second"

    def test_create_does_not_touch_timestamp(self, note_repository, make_note):
        note = note_repository.create(make_note(timestamp=123))
        assert note_repository.get(note.uuid).timestamp == 123

    def test_create_write_failure(self, note_repository, make_note):
        """I/O errors surface as NoteWriteError."""
        with patch("builtins.open", side_effect=PermissionError("denied")):
            with pytest.raises(NoteWriteError) as exc_info:
                note_repository.create(make_note(uuid="w1"))
        err = exc_info.value
        assert err.code == ErrorCode.STORAGE_WRITE_FAILED
        assert err.operation == "create"
        assert err.details["path_hint"] == "w1.json"
        assert isinstance(err.original_error, PermissionError)

    def test_create_records_metrics(self, note_repository, make_note):
        note_repository.create(make_note())
        assert metrics.snapshot()["create_note"]["success_count"] == 1


class TestReadAll:
    """Tests for listing notes."""

    def test_first_run_creates_directory(self, note_repository):
        assert note_repository.read_all() == []
        assert note_repository.notes_dir.is_dir()

    def test_reads_every_record(self, note_repository, make_note):
        created = {note_repository.create(make_note(title=str(i))).uuid for i in range(5)}
        notes = note_repository.read_all()
        assert {nt.uuid for nt in notes} == created

    def test_ignores_other_extensions(self, note_repository, make_note):
        note_repository.create(make_note(uuid="keep"))
        (note_repository.notes_dir / "README.txt").write_text("hello")
        (note_repository.notes_dir / "keep.json.bak").write_text("{")
        (note_repository.notes_dir / "nested.json").mkdir()
        assert [nt.uuid for nt in note_repository.read_all()] == ["keep"]

    def test_malformed_record_fails_whole_listing(self, note_repository, make_note):
        """One bad record aborts the call; no partial list is returned."""
        note_repository.create(make_note(uuid="good"))
        (note_repository.notes_dir / "bad.json").write_text("{not json")
        with pytest.raises(MalformedRecordError) as exc_info:
            note_repository.read_all()
        assert exc_info.value.details["path_hint"] == "bad.json"

    def test_reads_legacy_records(self, note_repository):
        note_repository.notes_dir.mkdir(parents=True)
        legacy = {"id": "legacy-1", "timestamp": 1, "content": {"title": "t", "body": "", "delta": {}}}
        (note_repository.notes_dir / "legacy-1.json").write_text(json.dumps(legacy))
        [note] = note_repository.read_all()
        assert note.uuid == "legacy-1"

    def test_uses_configured_root(self, test_config, make_note):
        repository = NoteRepository()
        repository.create(make_note(uuid="cfg"))
        assert (test_config.get_storage_root() / "notes" / "cfg.json").is_file()


class TestEdit:
    """Tests for editing notes."""

    def test_edit_replaces_content(self, note_repository, make_note):
        note = note_repository.create(make_note(title="before"))
        note.content.title = "after"
        note.touch()
        note_repository.edit(note)
        stored = note_repository.get(note.uuid)
        assert stored.content.title == "after"
        assert stored.timestamp == note.timestamp

    def test_edit_unknown_uuid_creates(self, note_repository, make_note):
        """Edit has no existence check."""
        note_repository.edit(make_note(uuid="fresh"))
        assert note_repository.get("fresh").uuid == "fresh"

    def test_edit_write_failure_reports_operation(self, note_repository, make_note):
        with patch("builtins.open", side_effect=OSError(28, "No space left on device")):
            with pytest.raises(NoteWriteError) as exc_info:
                note_repository.edit(make_note())
        assert exc_info.value.operation == "edit"


class TestGet:
    def test_get_missing(self, note_repository):
        with pytest.raises(NoteReadError):
            note_repository.get("nope")


class TestDelete:
    """Tests for deleting notes."""

    def test_delete_removes_file(self, note_repository, make_note):
        note = note_repository.create(make_note())
        note_repository.delete(note.uuid)
        assert not note_repository.path_for(note.uuid).exists()
        assert note_repository.read_all() == []

    def test_delete_missing_is_failure(self, note_repository):
        """A missing file is a delete failure, not a success."""
        with pytest.raises(NoteDeleteError) as exc_info:
            note_repository.delete("ghost")
        err = exc_info.value
        assert err.not_found
        assert err.code == ErrorCode.NOTE_NOT_FOUND
        assert err.note_id == "ghost"

    def test_delete_os_error(self, note_repository, make_note):
        note = note_repository.create(make_note())
        with patch("notevault.storage.note_repository.os.remove", side_effect=PermissionError("denied")):
            with pytest.raises(NoteDeleteError) as exc_info:
                note_repository.delete(note.uuid)
        assert exc_info.value.code == ErrorCode.STORAGE_DELETE_FAILED
        assert not exc_info.value.not_found

    def test_delete_rejects_traversal(self, note_repository, storage_root):
        storage_root.mkdir()
        victim = storage_root / "victim.json"
        victim.write_text("{}")
        with pytest.raises(ValidationError):
            note_repository.delete("../victim")
        assert victim.exists()


class TestWritePrimitive:
    def test_write_note_file_into_any_directory(self, tmp_path, make_note):
        target = tmp_path / "a" / "b"
        path = write_note_file(target, make_note(uuid="x"))
        assert path == target / "x.json"
        assert path.is_file()

    def test_write_truncates(self, tmp_path):
        long_note = Note(uuid="t", timestamp=1)
        long_note.content.body = "x" * 1000
        write_note_file(tmp_path, long_note)
        write_note_file(tmp_path, Note(uuid="t", timestamp=1))
        data = json.loads((tmp_path / "t.json").read_text())
        assert data["content"]["body"] == ""
        assert os.path.getsize(tmp_path / "t.json") < 200
