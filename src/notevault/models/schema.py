"""Data models for the NoteVault engine."""

import time
import uuid as uuid_lib
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field, field_validator


def validate_safe_path_component(value: str, field_name: str = "value") -> str:
    """Validate that a value is safe to use as a single filesystem path component.

    Note IDs are opaque tokens, so any characters are accepted except
    those that would let the ID escape its directory:
    - Empty values
    - Path separators (/, \\) and NUL bytes
    - Current/parent directory references (. and ..)

    Args:
        value: The string to validate
        field_name: Name of the field for error messages

    Returns:
        The validated value (unchanged)

    Raises:
        ValueError: If the value is unsafe
    """
    if not value:
        raise ValueError(f"{field_name} cannot be empty")

    if value in (".", ".."):
        raise ValueError(f"{field_name} cannot be '.' or '..' (path traversal)")

    if "/" in value or "\\" in value:
        raise ValueError(f"{field_name} cannot contain path separators")

    if "\x00" in value:
        raise ValueError(f"{field_name} cannot contain NUL bytes")

    return value


def now_millis() -> int:
    """Get the current time as integer milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


def generate_uuid() -> str:
    """Generate a fresh random (version 4) note ID."""
    return str(uuid_lib.uuid4())


def parse_uuid(value: str) -> Optional[str]:
    """Parse a syntactically valid UUID and return its canonical form.

    Accepts the hyphenated, simple (32 hex digits), braced and ``urn:uuid:``
    spellings. Returns None for anything else.
    """
    try:
        return str(uuid_lib.UUID(value))
    except (ValueError, TypeError, AttributeError):
        return None


def is_valid_uuid(value: str) -> bool:
    """Check whether a string is a syntactically valid UUID."""
    return parse_uuid(value) is not None


class DeltaOp(BaseModel):
    """A single rich-text operation.

    The operation set is closed: ``insert``, ``delete``, ``retain`` and
    ``attributes``. An insert is usually text or an embed mapping
    (e.g. ``{"image": "..."}``); any other operand is kept as-is and
    contributes no text.
    """

    insert: Optional[Any] = None
    delete: Optional[int] = None
    retain: Optional[Union[int, Dict[str, Any]]] = None
    attributes: Optional[Dict[str, Any]] = None

    model_config = {"extra": "forbid"}

    @property
    def text(self) -> str:
        """Text contributed by this op; embeds and non-inserts contribute nothing."""
        return self.insert if isinstance(self.insert, str) else ""

    def to_wire(self) -> Dict[str, Any]:
        """Return only the operation keys that are set."""
        return {
            key: value
            for key, value in (
                ("insert", self.insert),
                ("delete", self.delete),
                ("retain", self.retain),
                ("attributes", self.attributes),
            )
            if value is not None
        }


class Delta(BaseModel):
    """Ordered rich-text operations. ``ops`` is None for notes without rich text."""

    ops: Optional[List[DeltaOp]] = None

    model_config = {"extra": "ignore"}

    @classmethod
    def from_text(cls, text: str) -> "Delta":
        """Build a delta holding a single insert of ``text``."""
        return cls(ops=[DeltaOp(insert=text)])

    def plain_text(self) -> str:
        """Concatenate the text of every insert op, in order."""
        if not self.ops:
            return ""
        return "".join(op.text for op in self.ops)


class NoteContent(BaseModel):
    """Plain-text projections and rich-text body of a note."""

    title: str = ""
    body: str = ""
    delta: Delta = Field(default_factory=Delta)

    model_config = {"validate_assignment": True, "extra": "ignore"}


class Note(BaseModel):
    """A persisted note.

    ``uuid`` doubles as the storage key (file stem) and never changes once
    assigned. ``timestamp`` is the last-modified time in epoch milliseconds.
    """

    uuid: str = Field(default_factory=generate_uuid, description="Unique ID of the note")
    timestamp: int = Field(
        default_factory=now_millis, description="Last modified, ms since epoch"
    )
    content: NoteContent = Field(default_factory=NoteContent)

    model_config = {"validate_assignment": True, "extra": "ignore"}

    @field_validator("uuid")
    @classmethod
    def validate_uuid(cls, v: str) -> str:
        """Validate that the ID is safe for filesystem use."""
        return validate_safe_path_component(v, "Note uuid")

    @classmethod
    def new(
        cls,
        title: str = "",
        body: str = "",
        delta: Optional[Delta] = None,
    ) -> "Note":
        """Create a note with a fresh ID and the current timestamp."""
        return cls(
            content=NoteContent(title=title, body=body, delta=delta or Delta())
        )

    def is_empty(self) -> bool:
        """A note is empty when both its title and body are empty strings."""
        return self.content.title == "" and self.content.body == ""

    def touch(self) -> None:
        """Refresh the last-modified timestamp."""
        self.timestamp = now_millis()

    def plain_text(self) -> str:
        return self.content.delta.plain_text()


def sort_by_recency(notes: Iterable[Note]) -> List[Note]:
    """Return notes ordered most recently modified first."""
    return sorted(notes, key=lambda nt: nt.timestamp, reverse=True)
