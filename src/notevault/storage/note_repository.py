"""Repository for note storage and retrieval."""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from notevault.config import config
from notevault.exceptions import (
    ErrorCode,
    MalformedRecordError,
    NoteDeleteError,
    NoteReadError,
    NoteWriteError,
)
from notevault.models.schema import Note
from notevault.observability import traced
from notevault.storage.paths import RECORD_EXTENSION, notes_path, record_path
from notevault.storage.record_codec import decode_note, encode_note

logger = logging.getLogger(__name__)


def write_note_file(
    directory: Union[str, Path], note: Note, operation: str = "create"
) -> Path:
    """Write a note record into ``directory``, creating or truncating it.

    This is the single write primitive shared by create, edit, sync,
    import and backup. The directory (and its parents) is created when
    missing.

    Args:
        directory: Directory that holds the record files.
        note: The note to persist.
        operation: Operation name reported in errors.

    Returns:
        Path of the written record.

    Raises:
        NoteWriteError: If the directory or file cannot be written.
    """
    directory = Path(directory)
    file_path = record_path(directory, note.uuid)
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with open(file_path, "wb") as f:
            f.write(encode_note(note))
    except OSError as e:
        raise NoteWriteError(
            f"Failed to write note {note.uuid}",
            operation=operation,
            path=file_path,
            original_error=e,
        ) from e
    return file_path


def read_note_file(file_path: Union[str, Path]) -> Note:
    """Read and decode a single record file.

    Raises:
        NoteReadError: If the file cannot be read.
        MalformedRecordError: If its contents are not a valid record.
    """
    file_path = Path(file_path)
    try:
        raw = file_path.read_bytes()
    except OSError as e:
        raise NoteReadError(
            f"Failed to read note file {file_path.name}",
            path=file_path,
            original_error=e,
        ) from e
    return decode_note(raw, source=file_path)


class NoteRepository:
    """Repository for note storage and retrieval.

    Each note lives in ``<root>/<notes_dir>/<uuid>.json``. No state is
    cached between calls: every operation resolves paths from the root
    it was constructed with. There is no locking; a single active caller
    is assumed.
    """

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        notes_dir: Optional[str] = None,
    ):
        """Initialize the repository.

        Args:
            root: Storage root. If None, uses config.get_storage_root().
            notes_dir: Name of the live notes subdirectory. If None, uses
                       config.notes_dir.
        """
        self.root = Path(root) if root is not None else config.get_storage_root()
        self.notes_dir_name = notes_dir or config.notes_dir

    @property
    def notes_dir(self) -> Path:
        return notes_path(self.root, self.notes_dir_name)

    def path_for(self, note_id: str) -> Path:
        """Resolve the record path of a note ID."""
        return record_path(self.notes_dir, note_id)

    @traced("create_note")
    def create(self, note: Note) -> Note:
        """Create a note, overwriting any record with the same uuid.

        The notes directory is created on first use.
        """
        write_note_file(self.notes_dir, note, operation="create")
        logger.debug(f"Wrote note {note.uuid}")
        return note

    @traced("edit_note")
    def edit(self, note: Note) -> Note:
        """Replace a note's record.

        Shares the create write path with no existence check, so editing
        an unknown uuid creates it.
        """
        write_note_file(self.notes_dir, note, operation="edit")
        logger.debug(f"Updated note {note.uuid}")
        return note

    @traced("get_note")
    def get(self, note_id: str) -> Note:
        """Read a single note by uuid.

        Raises:
            NoteReadError: If the record is missing or unreadable.
            MalformedRecordError: If the record cannot be decoded.
        """
        return read_note_file(self.path_for(note_id))

    @traced("read_all_notes")
    def read_all(self) -> List[Note]:
        """Read every stored note.

        Creates the notes directory and returns an empty list on first run.
        A single malformed record fails the whole call; no partial list is
        returned. Order is unspecified.

        Raises:
            NoteReadError: If the directory or a record cannot be read.
            MalformedRecordError: If any record cannot be decoded.
        """
        notes_dir = self.notes_dir
        if not notes_dir.is_dir():
            try:
                notes_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise NoteReadError(
                    "Failed to create notes directory",
                    operation="read_all",
                    path=notes_dir,
                    original_error=e,
                ) from e
            logger.info(f"Created notes directory: {notes_dir}")
            return []

        try:
            entries = sorted(os.scandir(notes_dir), key=lambda entry: entry.name)
        except OSError as e:
            raise NoteReadError(
                "Failed to list notes directory",
                operation="read_all",
                path=notes_dir,
                original_error=e,
            ) from e

        notes = []
        for entry in entries:
            if not entry.name.endswith(RECORD_EXTENSION) or not entry.is_file():
                continue
            try:
                notes.append(read_note_file(entry.path))
            except MalformedRecordError:
                logger.error(f"Malformed note record {entry.name}, aborting listing")
                raise
        return notes

    @traced("delete_note")
    def delete(self, note_id: str) -> None:
        """Delete a note by uuid.

        Raises:
            ValidationError: If the uuid is not a safe path component.
            NoteDeleteError: If the record does not exist (``NOTE_NOT_FOUND``)
                or cannot be removed.
        """
        file_path = self.path_for(note_id)
        try:
            os.remove(file_path)
        except FileNotFoundError as e:
            raise NoteDeleteError(
                f"Note with uuid '{note_id}' not found",
                note_id=note_id,
                path=file_path,
                code=ErrorCode.NOTE_NOT_FOUND,
                original_error=e,
            ) from e
        except OSError as e:
            raise NoteDeleteError(
                f"Failed to delete note {note_id}",
                note_id=note_id,
                path=file_path,
                original_error=e,
            ) from e
        logger.debug(f"Deleted note {note_id}")
