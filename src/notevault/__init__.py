"""
NoteVault - file-backed persistence and synchronization engine for personal notes.

Each note is stored as an individual JSON record on local disk. The package
provides the record codec, a note store, a full-resync engine, timestamped
backup snapshots with retention, and import/export of foreign files.

All operations are synchronous.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notevault")
except PackageNotFoundError:
    __version__ = "0.4.0"
