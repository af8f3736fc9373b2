"""Tests for the command line entry point."""
import json
import logging

import pytest

from notevault.exceptions import MalformedRecordError, NoteReadError
from notevault.main import load_note_list, main
from notevault.models.schema import Note, NoteContent
from notevault.observability import ROOT_LOGGER_NAME
from notevault.storage.note_repository import NoteRepository


@pytest.fixture
def cli(test_config, tmp_path):
    """Run main() against the temporary storage root."""
    root = tmp_path / "vault"

    def _run(*argv):
        return main(["--base-dir", str(root), *argv])

    _run.root = root
    return _run


def _write_note_list(path, records):
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


RECORDS = [
    {"uuid": "a", "timestamp": 1, "content": {"title": "Older", "body": "", "delta": {}}},
    {"id": "b", "timestamp": 2, "content": {"title": "Newer", "body": "", "delta": {}}},
]


class TestList:
    def test_list_empty_store(self, cli, capsys):
        assert cli("list") == 0
        assert json.loads(capsys.readouterr().out) == []

    def test_list_newest_first(self, cli, capsys, tmp_path):
        cli("sync", str(_write_note_list(tmp_path / "notes.json", RECORDS)))
        capsys.readouterr()

        assert cli("list") == 0
        listed = json.loads(capsys.readouterr().out)
        assert [r["uuid"] for r in listed] == ["b", "a"]
        assert all("id" not in r for r in listed)


class TestSync:
    def test_sync_replaces_store(self, cli, capsys, tmp_path):
        repository = NoteRepository(cli.root)
        repository.create(Note(uuid="stale", content=NoteContent(title="old")))
        assert cli("sync", str(_write_note_list(tmp_path / "notes.json", RECORDS))) == 0
        assert "Synced 2 note(s)" in capsys.readouterr().out
        assert {nt.uuid for nt in repository.read_all()} == {"a", "b"}

    def test_sync_rejects_malformed_list(self, cli, capsys, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"not": "a list"}')
        assert cli("sync", str(bad)) == 1
        assert "Error:" in capsys.readouterr().err
        # Nothing was wiped
        assert not (cli.root / "notes").exists()

    def test_sync_missing_file(self, cli, capsys, tmp_path):
        assert cli("sync", str(tmp_path / "absent.json")) == 1
        assert "STORAGE_READ_FAILED" in capsys.readouterr().err


class TestImportExport:
    def test_import_and_export(self, cli, capsys, tmp_path):
        source = tmp_path / "todo.txt"
        source.write_text("Todo\nbuy milk")
        assert cli("import", str(source)) == 0
        assert "Imported 1 note(s)" in capsys.readouterr().out

        out_dir = tmp_path / "out"
        out_dir.mkdir()
        assert cli("export", str(out_dir)) == 0
        assert "Exported 1 note(s)" in capsys.readouterr().out
        [exported] = list(out_dir.iterdir())
        assert exported.read_text() == "Todo\nbuy milk"

    def test_import_skips_other_extensions(self, cli, capsys, tmp_path):
        good = tmp_path / "a.txt"
        good.write_text("hello")
        other = tmp_path / "b.md"
        other.write_text("# hi")
        assert cli("import", str(good), str(other)) == 0
        captured = capsys.readouterr()
        assert "Skipped 1 file(s)" in captured.err
        assert "Imported 1 note(s)" in captured.out

    def test_partial_import_reports_every_error(self, cli, capsys, tmp_path):
        good = tmp_path / "good.txt"
        good.write_text("fine")
        corrupt = tmp_path / "corrupt.json"
        corrupt.write_text("{")
        assert cli("import", str(good), str(corrupt)) == 1
        err = capsys.readouterr().err
        assert "Failed to import 1 of 2 file(s)" in err
        assert "corrupt.json" in err
        assert len(NoteRepository(cli.root).read_all()) == 1

    def test_export_into_missing_dir(self, cli, capsys, tmp_path):
        source = tmp_path / "n.txt"
        source.write_text("x")
        cli("import", str(source))
        assert cli("export", str(tmp_path / "missing")) == 1
        assert "EXPORT_FAILED" in capsys.readouterr().err


class TestBackup:
    def test_backup_nothing(self, cli, capsys):
        assert cli("backup") == 0
        assert "Nothing to back up" in capsys.readouterr().out

    def test_backup_writes_snapshot(self, cli, capsys, tmp_path):
        cli("sync", str(_write_note_list(tmp_path / "notes.json", RECORDS)))
        capsys.readouterr()
        assert cli("backup") == 0
        snapshot = capsys.readouterr().out.strip()
        assert snapshot.startswith(str(cli.root / "backups"))


class TestArguments:
    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "notevault" in capsys.readouterr().out

    def test_command_required(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2

    def test_log_dir_enables_file_logging(self, cli, tmp_path):
        log_dir = tmp_path / "logs"
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        before = list(root_logger.handlers)
        level = root_logger.level
        try:
            assert cli("--log-dir", str(log_dir), "list") == 0
        finally:
            for handler in list(root_logger.handlers):
                if handler not in before:
                    root_logger.removeHandler(handler)
                    handler.close()
            root_logger.setLevel(level)
        assert (log_dir / "notevault.log").exists()
        saved = json.loads((log_dir / "metrics.json").read_text())
        assert saved["operations"]["read_all_notes"]["count"] == 1

    def test_metrics_not_saved_without_log_dir(self, cli, tmp_path):
        assert cli("list") == 0
        assert not list(tmp_path.rglob("metrics.json"))


class TestLoadNoteList:
    def test_accepts_legacy_records(self, tmp_path):
        notes = load_note_list(_write_note_list(tmp_path / "n.json", RECORDS))
        assert [nt.uuid for nt in notes] == ["a", "b"]

    def test_item_errors(self, tmp_path):
        path = _write_note_list(tmp_path / "n.json", [{"timestamp": 1}])
        with pytest.raises(MalformedRecordError):
            load_note_list(path)

    def test_unreadable(self, tmp_path):
        with pytest.raises(NoteReadError):
            load_note_list(tmp_path / "missing.json")
