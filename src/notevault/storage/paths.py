"""Deterministic mapping from note IDs to storage paths.

Nothing here touches the filesystem.
"""
from pathlib import Path
from typing import Optional, Union

from notevault.config import config
from notevault.exceptions import ErrorCode, ValidationError
from notevault.models.schema import validate_safe_path_component

RECORD_EXTENSION = ".json"
EXPORT_EXTENSION = ".txt"


def _checked_id(note_id: str) -> str:
    try:
        return validate_safe_path_component(note_id, "Note uuid")
    except ValueError as e:
        raise ValidationError(
            str(e),
            field="uuid",
            value=note_id,
            code=ErrorCode.PATH_TRAVERSAL_DETECTED,
        ) from e


def notes_path(root: Union[str, Path], notes_dir: Optional[str] = None) -> Path:
    """Return the live notes directory under a storage root."""
    return Path(root) / (notes_dir or config.notes_dir)


def record_path(directory: Union[str, Path], note_id: str) -> Path:
    """Return the record file for ``note_id`` inside ``directory``.

    The ID is used verbatim as the file stem and is never split into
    path segments.

    Raises:
        ValidationError: If the ID could escape ``directory``.
    """
    return Path(directory) / f"{_checked_id(note_id)}{RECORD_EXTENSION}"


def resolve(
    root: Union[str, Path], note_id: str, notes_dir: Optional[str] = None
) -> Path:
    """Resolve ``root / <notes-dir> / <uuid>.json``."""
    return record_path(notes_path(root, notes_dir), note_id)


def export_path(save_dir: Union[str, Path], note_id: str) -> Path:
    """Return the plain-text export file for ``note_id`` inside ``save_dir``."""
    return Path(save_dir) / f"{_checked_id(note_id)}{EXPORT_EXTENSION}"
