"""JSON record parsing and serialization for notes.

Handles conversion between Note domain objects and the on-disk JSON
record, including the one-way migration of legacy records that carry
``id`` instead of ``uuid``. Kept separate from NoteRepository so the
wire format is independently testable.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from notevault.exceptions import ErrorCode, MalformedRecordError
from notevault.models.schema import Note

logger = logging.getLogger(__name__)

ENCODING = "utf-8"

# Keys every record must carry besides its identifier
REQUIRED_FIELDS = ("timestamp", "content")
LEGACY_ID_FIELD = "id"


class RecordCodec:
    """Encodes and decodes notes as JSON records."""

    def encode(self, note: Note) -> bytes:
        """Serialize a note to its canonical JSON record.

        Always emits the current shape (``uuid``, never ``id``). ``delta`` is
        ``{}`` when the note has no rich-text ops.
        """
        delta: Dict[str, Any] = {}
        if note.content.delta.ops is not None:
            delta["ops"] = [op.to_wire() for op in note.content.delta.ops]

        record = {
            "uuid": note.uuid,
            "timestamp": note.timestamp,
            "content": {
                "title": note.content.title,
                "body": note.content.body,
                "delta": delta,
            },
        }
        return json.dumps(record, ensure_ascii=False).encode(ENCODING)

    def decode(
        self, raw: Union[bytes, str], source: Optional[Union[str, Path]] = None
    ) -> Note:
        """Parse a note from a JSON record.

        A legacy ``id`` is renamed to ``uuid`` (``uuid`` wins when both are
        present). Unknown top-level keys are ignored.

        Args:
            raw: Record bytes (UTF-8) or text.
            source: Optional path the record came from, for error details.

        Returns:
            The decoded Note, always in the current shape.

        Raises:
            MalformedRecordError: If the record is not valid JSON, lacks an
                identifier or required fields, or fails validation.
        """
        try:
            text = raw.decode(ENCODING) if isinstance(raw, bytes) else raw
            data = json.loads(text)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedRecordError(
                "Record is not valid JSON", path=source, reason=str(e)
            ) from e

        if not isinstance(data, dict):
            raise MalformedRecordError(
                "Record must be a JSON object",
                path=source,
                reason=f"got {type(data).__name__}",
            )

        if "uuid" not in data and LEGACY_ID_FIELD not in data:
            raise MalformedRecordError(
                "Record has neither 'uuid' nor 'id'",
                path=source,
                code=ErrorCode.NOTE_ID_MISSING,
            )

        missing = [name for name in REQUIRED_FIELDS if name not in data]
        if missing:
            raise MalformedRecordError(
                f"Record is missing required field(s): {', '.join(missing)}",
                path=source,
            )

        normalized = self._migrate_legacy_id(data)
        try:
            note = Note.model_validate(normalized)
        except PydanticValidationError as e:
            raise MalformedRecordError(
                "Record does not match the note schema",
                path=source,
                reason=str(e),
            ) from e

        if "uuid" not in data:
            logger.debug(f"Migrated legacy record {note.uuid} from 'id' to 'uuid'")
        return note

    @staticmethod
    def _migrate_legacy_id(data: Dict[str, Any]) -> Dict[str, Any]:
        """Rename a legacy ``id`` to ``uuid``; when both exist ``uuid`` wins."""
        if LEGACY_ID_FIELD not in data:
            return data
        normalized = dict(data)
        legacy_id = normalized.pop(LEGACY_ID_FIELD)
        normalized.setdefault("uuid", legacy_id)
        return normalized


_codec = RecordCodec()


def encode_note(note: Note) -> bytes:
    """Serialize a note with the shared codec."""
    return _codec.encode(note)


def decode_note(raw: Union[bytes, str], source: Optional[Union[str, Path]] = None) -> Note:
    """Parse a note with the shared codec."""
    return _codec.decode(raw, source)
