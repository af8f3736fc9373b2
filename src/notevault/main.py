#!/usr/bin/env python
"""Command line entry point for the NoteVault engine.

Exposes the engine operations and turns engine errors into readable
messages on stderr.
"""
import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from notevault import __version__
from notevault.backup import BackupManager
from notevault.config import config
from notevault.exceptions import (
    ConfigurationError,
    ImportBatchError,
    MalformedRecordError,
    NoteReadError,
    NoteVaultError,
)
from notevault.models.schema import Note, sort_by_recency
from notevault.observability import METRICS_FILE_NAME, configure_logging, metrics
from notevault.services.sync_service import SyncService
from notevault.services.transfer_service import TransferService, filter_importable_paths
from notevault.storage.note_repository import NoteRepository
from notevault.storage.record_codec import decode_note, encode_note

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(prog="notevault", description="NoteVault note store")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--base-dir",
        help="Storage root directory",
        type=str,
        default=os.environ.get("NOTEVAULT_BASE_DIR")
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None
    )
    parser.add_argument(
        "--log-dir",
        help="Directory for rotating log files (console only when omitted)",
        type=str,
        default=None
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("list", help="Print all notes as JSON, newest first")
    commands.add_parser("backup", help="Snapshot all notes into the backup directory")
    sync = commands.add_parser("sync", help="Replace local notes with a JSON list of notes")
    sync.add_argument("file", type=str, help="JSON file holding a list of note records")
    imp = commands.add_parser("import", help="Import .json or .txt files as new notes")
    imp.add_argument("paths", nargs="+", type=str)
    exp = commands.add_parser("export", help="Export notes as <uuid>.txt files")
    exp.add_argument("save_dir", type=str)
    return parser.parse_args(argv)


def update_config(args) -> None:
    """Update the global config with command line arguments."""
    try:
        if args.base_dir:
            config.base_dir = Path(args.base_dir)
        if args.log_level:
            config.log_level = args.log_level
        if args.log_dir:
            config.log_dir = Path(args.log_dir)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_note_list(path: Path) -> List[Note]:
    """Load a JSON array of note records (legacy ``id`` records accepted)."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise NoteReadError(
            f"Failed to read {path.name}", path=path, original_error=e
        ) from e
    except json.JSONDecodeError as e:
        raise MalformedRecordError(
            "Note list is not valid JSON", path=path, reason=str(e)
        ) from e
    if not isinstance(data, list):
        raise MalformedRecordError("Note list must be a JSON array", path=path)
    return [decode_note(json.dumps(item), source=path) for item in data]


def run(args) -> int:
    """Dispatch one command. Returns the process exit status."""
    repository = NoteRepository(config.get_storage_root())

    if args.command == "list":
        notes = sort_by_recency(repository.read_all())
        records = [json.loads(encode_note(nt)) for nt in notes]
        print(json.dumps(records, indent=2, ensure_ascii=False))
    elif args.command == "backup":
        snapshot = BackupManager(config.get_storage_root()).backup_notes(repository.read_all())
        print(snapshot if snapshot else "Nothing to back up")
    elif args.command == "sync":
        notes = SyncService(repository).sync(load_note_list(Path(args.file)))
        print(f"Synced {len(notes)} note(s)")
    elif args.command == "import":
        paths = filter_importable_paths(args.paths)
        skipped = len(args.paths) - len(paths)
        if skipped:
            print(f"Skipped {skipped} file(s) without a .json or .txt extension", file=sys.stderr)
        notes = TransferService(repository).import_notes(paths)
        print(f"Imported {len(notes)} note(s)")
    elif args.command == "export":
        written = TransferService(repository).export_notes(args.save_dir, repository.read_all())
        print(f"Exported {len(written)} note(s)")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Run the NoteVault command line."""
    args = parse_args(argv)

    try:
        update_config(args)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    log_level = getattr(logging, config.log_level, logging.INFO)
    if config.log_dir:
        try:
            configure_logging(log_dir=config.log_dir, level=log_level, console=False)
        except OSError as e:
            logging.basicConfig(level=log_level)
            logger.warning(f"Failed to configure file logging: {e}")
    else:
        logging.basicConfig(level=log_level)

    try:
        return run(args)
    except ImportBatchError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        for err in e.errors:
            print(f"  - {err}", file=sys.stderr)
        return 1
    except NoteVaultError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if config.log_dir:
            metrics.save(config.log_dir / METRICS_FILE_NAME)


if __name__ == "__main__":
    sys.exit(main())
