"""Data models for the NoteVault engine."""
