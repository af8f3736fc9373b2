"""Configuration module for the NoteVault engine."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from notevault import __version__

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config, lives alongside the notes
_USER_ENV = Path.home() / ".notevault" / ".env"
load_dotenv(_USER_ENV)


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _validate_dir_name(value: str, field_name: str) -> str:
    """Directory names are fixed literals under the storage root."""
    if not value or value in (".", ".."):
        raise ValueError(f"{field_name} must be a directory name")
    if "/" in value or "\\" in value or "\x00" in value:
        raise ValueError(f"{field_name} must be a single path component")
    return value


class NoteVaultConfig(BaseModel):
    """Configuration for the NoteVault engine.

    The storage layout is ``<base_dir>/<notes_dir>/<uuid>.json`` for live
    notes and ``<base_dir>/<backup_dir>/<unix-seconds>/<uuid>.json`` for
    backup snapshots.
    """

    # Storage root
    base_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("NOTEVAULT_BASE_DIR", str(Path.home() / ".notevault"))
        )
    )
    # Live notes subdirectory name
    notes_dir: str = Field(
        default_factory=lambda: os.getenv("NOTEVAULT_NOTES_DIR", "notes")
    )
    # Backup snapshot root name
    backup_dir: str = Field(
        default_factory=lambda: os.getenv("NOTEVAULT_BACKUP_DIR", "backups")
    )
    # Logging configuration
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTEVAULT_LOG_DIR"))
            if os.getenv("NOTEVAULT_LOG_DIR")
            else None
        )
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("NOTEVAULT_LOG_LEVEL", "INFO").upper()
    )
    version: str = Field(default=__version__)

    model_config = {"validate_assignment": True}

    @field_validator("notes_dir")
    @classmethod
    def validate_notes_dir(cls, v: str) -> str:
        return _validate_dir_name(v, "notes_dir")

    @field_validator("backup_dir")
    @classmethod
    def validate_backup_dir(cls, v: str) -> str:
        return _validate_dir_name(v, "backup_dir")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level

    def get_storage_root(self) -> Path:
        """Get the absolute storage root, expanding ``~``."""
        return self.base_dir.expanduser().absolute()

    def get_notes_path(self) -> Path:
        """Get the absolute path of the live notes directory."""
        return self.get_storage_root() / self.notes_dir

    def get_backup_path(self) -> Path:
        """Get the absolute path of the backup snapshot root."""
        return self.get_storage_root() / self.backup_dir


# Create a global config instance
config = NoteVaultConfig()
