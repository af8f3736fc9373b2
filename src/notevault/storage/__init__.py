"""Storage layer for the NoteVault engine."""

from notevault.storage.note_repository import NoteRepository, write_note_file
from notevault.storage.record_codec import RecordCodec, decode_note, encode_note

__all__ = [
    "NoteRepository",
    "RecordCodec",
    "decode_note",
    "encode_note",
    "write_note_file",
]
