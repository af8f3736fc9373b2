"""Service layer for the NoteVault engine."""
