"""Backup snapshots for the NoteVault engine.

Each backup is a directory named after the Unix time (whole seconds) it
was taken, holding one record per note:

    <root>/<backup_dir>/<unix-seconds>/<uuid>.json

Only the most recent MAX_BACKUPS snapshots are kept.
"""
import logging
import re
import shutil
import time
from pathlib import Path
from typing import List, Optional, Tuple, Union

from notevault.config import config
from notevault.exceptions import BackupError, NoteVaultError
from notevault.models.schema import Note
from notevault.observability import timed_operation
from notevault.storage.note_repository import read_note_file, write_note_file
from notevault.storage.paths import RECORD_EXTENSION

logger = logging.getLogger(__name__)

# Snapshots kept after pruning
MAX_BACKUPS = 3

# Snapshot directory names are unsigned integers
_SNAPSHOT_NAME = re.compile(r"[0-9]+")


class BackupManager:
    """Writes timestamped note snapshots and prunes old ones.

    Backups are best-effort: a failure to prepare the backup root or to
    prune old snapshots is logged and never raised, so a backup can not
    block the save that triggered it. Only a failed snapshot write raises.
    """

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        backup_dir: Optional[str] = None,
    ):
        """Initialize the backup manager.

        Args:
            root: Storage root. If None, uses config.get_storage_root().
            backup_dir: Name of the backup subdirectory. If None, uses
                        config.backup_dir.
        """
        self.root = Path(root) if root is not None else config.get_storage_root()
        self.backup_dir = self.root / (backup_dir or config.backup_dir)

    def snapshot_path(self, snapshot_id: int) -> Path:
        return self.backup_dir / str(snapshot_id)

    def backup_notes(self, notes: List[Note]) -> Optional[Path]:
        """Write a snapshot of ``notes`` and prune old snapshots.

        Does nothing when ``notes`` is empty or every note is empty. Empty
        notes are left out of the snapshot. A snapshot taken in the same
        second as an existing one overwrites its files.

        Args:
            notes: The note set to snapshot.

        Returns:
            Path to the snapshot directory, or None if there was nothing
            to back up.

        Raises:
            BackupError: If any note fails to write. Files already written
                to the snapshot are left in place.
        """
        to_write = [nt for nt in notes if not nt.is_empty()]
        if not to_write:
            logger.debug("Skipping backup: no non-empty notes")
            return None

        snapshot_id = int(time.time())
        snapshot_dir = self.snapshot_path(snapshot_id)

        with timed_operation("backup_notes", snapshot_id=snapshot_id) as op:
            if not self.backup_dir.exists():
                try:
                    self.backup_dir.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    logger.error(f"Unable to create backup directory {self.backup_dir}: {e}")

            for note in to_write:
                try:
                    write_note_file(snapshot_dir, note, operation="backup")
                except NoteVaultError as e:
                    raise BackupError(
                        f"Failed to back up note {note.uuid}",
                        snapshot_id=snapshot_id,
                        path=snapshot_dir,
                        original_error=e,
                    ) from e

            op["result_count"] = len(to_write)

        logger.info(f"Backed up {len(to_write)} note(s) to {snapshot_dir}")
        self._rotate_backups()
        return snapshot_dir

    def list_snapshots(self) -> List[int]:
        """List snapshot ids (Unix seconds), oldest first.

        Entries whose names are not unsigned integers, and plain files,
        are ignored.
        """
        return [snapshot_id for snapshot_id, _ in self._snapshot_dirs()]

    def _snapshot_dirs(self) -> List[Tuple[int, Path]]:
        try:
            entries = list(self.backup_dir.iterdir())
        except OSError:
            return []

        snapshots = [
            (int(entry.name), entry)
            for entry in entries
            if _SNAPSHOT_NAME.fullmatch(entry.name) and entry.is_dir()
        ]
        return sorted(snapshots, key=lambda item: item[0])

    def load_snapshot(self, snapshot_id: int) -> List[Note]:
        """Read every note stored in a snapshot.

        Raises:
            NoteReadError: If a record cannot be read.
            MalformedRecordError: If a record cannot be decoded.
        """
        snapshot_dir = self.snapshot_path(snapshot_id)
        return [
            read_note_file(path)
            for path in sorted(snapshot_dir.glob(f"*{RECORD_EXTENSION}"))
        ]

    def _rotate_backups(self) -> int:
        """Remove the oldest snapshots beyond MAX_BACKUPS.

        Failures are logged and swallowed.

        Returns:
            Number of snapshots removed.
        """
        snapshots = self._snapshot_dirs()
        if len(snapshots) <= MAX_BACKUPS:
            return 0

        removed = 0
        for snapshot_id, path in snapshots[:len(snapshots) - MAX_BACKUPS]:
            try:
                shutil.rmtree(path)
                removed += 1
                logger.debug(f"Removed old backup: {snapshot_id}")
            except OSError as e:
                logger.warning(f"Failed to remove old backup {snapshot_id}: {e}")

        if removed > 0:
            logger.info(f"Rotated {removed} old backup(s)")

        return removed
