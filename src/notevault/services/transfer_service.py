"""Import of foreign note files and plain-text export."""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from notevault.exceptions import (
    ErrorCode,
    ImportBatchError,
    MalformedRecordError,
    NoteReadError,
    NoteVaultError,
    NoteWriteError,
)
from notevault.models.schema import (
    Delta,
    Note,
    NoteContent,
    generate_uuid,
    now_millis,
    parse_uuid,
)
from notevault.observability import timed_operation
from notevault.storage.note_repository import NoteRepository
from notevault.storage.paths import RECORD_EXTENSION, export_path
from notevault.storage.record_codec import decode_note

logger = logging.getLogger(__name__)

# Extensions accepted by the import file chooser and drag-and-drop
ACCEPTED_EXTENSIONS = (".json", ".txt")


def filter_importable_paths(paths: Iterable[Union[str, Path]]) -> List[Path]:
    """Keep only paths with an importable extension (.json or .txt)."""
    return [
        Path(p) for p in paths if Path(p).suffix.lower() in ACCEPTED_EXTENSIONS
    ]


def note_from_text(text: str) -> Note:
    """Build a note from freeform text.

    The first line becomes the title, the second line the body, and the
    whole text is kept as a single insert op.
    """
    lines = [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]
    return Note(
        content=NoteContent(
            title=lines[0] if lines else "",
            body=lines[1] if len(lines) > 1 else "",
            delta=Delta.from_text(text),
        )
    )


def extract_plain_text(note: Note) -> str:
    """Concatenate the text inserts of a note's delta ("" without ops)."""
    return note.plain_text()


class TransferService:
    """Imports foreign files as new notes and exports notes as plain text."""

    def __init__(self, repository: Optional[NoteRepository] = None):
        self.repository = repository or NoteRepository()

    def import_notes(self, paths: Iterable[Union[str, Path]]) -> List[Note]:
        """Import each path as a new note and persist it immediately.

        Every path is handled independently. Content is parsed as a note
        record first; ``.json`` files must be valid records, anything else
        that is not a record is read as freeform text. A file stem that is a
        valid UUID becomes the note's uuid, otherwise a fresh uuid is
        generated. The timestamp is always set to the import time.

        Args:
            paths: Files to import.

        Returns:
            The imported notes, in input order.

        Raises:
            ImportBatchError: If any path failed. It carries one error per
                failed path and the notes that were imported anyway.
        """
        paths = [Path(p) for p in paths]
        imported: List[Note] = []
        errors: List[NoteVaultError] = []

        with timed_operation("import_notes", path_count=len(paths)) as op:
            for path in paths:
                try:
                    note = self._import_one(path)
                except NoteVaultError as e:
                    logger.warning(f"Failed to import {path.name}: {e}")
                    errors.append(e)
                    continue
                imported.append(note)

            op["result_count"] = len(imported)
            if errors:
                op["error_count"] = len(errors)

        if errors:
            raise ImportBatchError(errors, imported=imported)

        logger.info(f"Imported {len(imported)} note(s)")
        return imported

    def _import_one(self, path: Path) -> Note:
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise NoteReadError(
                f"Failed to read import file {path.name}",
                operation="import",
                path=path,
                original_error=e,
            ) from e

        note = self._parse(raw, path)
        note.uuid = parse_uuid(path.stem) or generate_uuid()
        note.timestamp = now_millis()

        try:
            self.repository.create(note)
        except NoteVaultError as e:
            # Report the input file, not the generated record path
            raise NoteWriteError(
                f"Failed to store imported file {path.name}",
                operation="import",
                path=path,
                original_error=e,
            ) from e
        return note

    @staticmethod
    def _parse(raw: bytes, path: Path) -> Note:
        try:
            return decode_note(raw, source=path)
        except MalformedRecordError:
            if path.suffix.lower() == RECORD_EXTENSION:
                raise

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedRecordError(
                f"Import file {path.name} is neither a note record nor UTF-8 text",
                path=path,
                reason=str(e),
            ) from e
        return note_from_text(text)

    def export_notes(
        self, save_dir: Union[str, Path], notes: Iterable[Note]
    ) -> List[Path]:
        """Write each note as ``<uuid>.txt`` in ``save_dir``.

        The file holds the concatenated text inserts of the note's delta,
        or nothing when the note has no ops. ``save_dir`` must exist.

        Returns:
            Paths of the written files.

        Raises:
            NoteWriteError: If a file cannot be written.
        """
        written = []
        with timed_operation("export_notes", save_dir=save_dir) as op:
            for note in notes:
                file_path = export_path(save_dir, note.uuid)
                try:
                    # No newline translation
                    file_path.write_bytes(extract_plain_text(note).encode("utf-8"))
                except OSError as e:
                    raise NoteWriteError(
                        f"Failed to export note {note.uuid}",
                        operation="export",
                        path=file_path,
                        code=ErrorCode.EXPORT_FAILED,
                        original_error=e,
                    ) from e
                written.append(file_path)
            op["result_count"] = len(written)
        logger.info(f"Exported {len(written)} note(s) to {save_dir}")
        return written
