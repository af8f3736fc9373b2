"""Full resync of the local note store from an authoritative note list."""

import logging
import shutil
from typing import List, Optional

from notevault.exceptions import ErrorCode, NoteVaultError, SyncError
from notevault.models.schema import Note
from notevault.observability import timed_operation
from notevault.storage.note_repository import NoteRepository

logger = logging.getLogger(__name__)


class SyncService:
    """Replaces the local store with a caller-supplied note list.

    The local notes directory is treated as a disposable cache of the
    caller's list: it is removed entirely and then rebuilt, so no
    add/remove/update diff is needed.

    The replace is not transactional. If the wipe fails, nothing on disk
    has changed. If a write fails after the wipe, the store is left
    partially rebuilt and a ``SYNC_PARTIAL`` error reports how many notes
    were written; there is no rollback.
    """

    def __init__(self, repository: Optional[NoteRepository] = None):
        self.repository = repository or NoteRepository()

    def sync(self, notes: List[Note]) -> List[Note]:
        """Wipe the notes directory and write every note in ``notes``.

        A missing notes directory counts as already wiped.

        Args:
            notes: The authoritative note set.

        Returns:
            The notes that were written.

        Raises:
            SyncError: If the wipe or any write fails.
        """
        notes_dir = self.repository.notes_dir
        with timed_operation("sync_notes", note_count=len(notes)) as op:
            if notes_dir.exists():
                try:
                    shutil.rmtree(notes_dir)
                except OSError as e:
                    raise SyncError(
                        "Failed to clear local notes before sync",
                        total_count=len(notes),
                        path=notes_dir,
                        code=ErrorCode.SYNC_FAILED,
                        original_error=e,
                    ) from e
                logger.debug(f"Cleared notes directory {notes_dir}")

            written = 0
            for note in notes:
                try:
                    self.repository.create(note)
                except NoteVaultError as e:
                    logger.warning(
                        f"Sync aborted after {written} of {len(notes)} notes; "
                        "local store is partially rebuilt"
                    )
                    raise SyncError(
                        f"Failed to write note {note.uuid} during sync",
                        written_count=written,
                        total_count=len(notes),
                        path=self.repository.path_for(note.uuid),
                        code=ErrorCode.SYNC_PARTIAL,
                        original_error=e,
                    ) from e
                written += 1

            op["result_count"] = written
        logger.info(f"Synced {written} note(s) to {notes_dir}")
        return list(notes)
