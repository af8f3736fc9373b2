"""Custom exceptions for the NoteVault engine.

Provides a structured exception hierarchy with error codes and
machine-readable error information. The engine only produces these
values; converting them to user-facing text happens at the boundary.
"""
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Record errors (1xxx)
    RECORD_MALFORMED = 1001
    NOTE_ID_MISSING = 1002

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_DELETE_FAILED = 4003
    NOTE_NOT_FOUND = 4004

    # Bulk operation errors (45xx)
    IMPORT_FAILED = 4501
    IMPORT_PARTIAL = 4502
    EXPORT_FAILED = 4503

    # Sync errors (5xxx)
    SYNC_FAILED = 5001
    SYNC_PARTIAL = 5002

    # Backup errors (55xx)
    BACKUP_FAILED = 5501

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001
    PATH_TRAVERSAL_DETECTED = 7005


def _path_hint(path: Union[str, Path]) -> str:
    """Reduce a path to its final component for error details."""
    return Path(str(path)).name or str(path)


class NoteVaultError(Exception):
    """Base exception for all NoteVault errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class ValidationError(NoteVaultError):
    """Raised for general validation errors (e.g. an unsafe note ID)."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value


class ConfigurationError(NoteVaultError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key


class MalformedRecordError(NoteVaultError):
    """Raised when bytes do not decode to a valid note record."""

    def __init__(
        self,
        message: str,
        path: Optional[Union[str, Path]] = None,
        reason: Optional[str] = None,
        code: ErrorCode = ErrorCode.RECORD_MALFORMED
    ):
        details = {}
        if path is not None:
            details["path_hint"] = _path_hint(path)
        if reason:
            details["reason"] = reason[:200]

        super().__init__(message, code=code, details=details)
        self.path = Path(path) if path is not None else None
        self.reason = reason


class StorageError(NoteVaultError):
    """Raised for storage/persistence errors."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[Union[str, Path]] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if path is not None:
            # Don't expose full paths in error messages
            details["path_hint"] = _path_hint(path)
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.path = Path(path) if path is not None else None
        self.original_error = original_error


class NoteReadError(StorageError):
    """Raised when a note file or import source cannot be read."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = "read",
        path: Optional[Union[str, Path]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message,
            operation=operation,
            path=path,
            code=ErrorCode.STORAGE_READ_FAILED,
            original_error=original_error,
        )


class NoteWriteError(StorageError):
    """Raised when a note file cannot be written (disk full, permissions)."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = "write",
        path: Optional[Union[str, Path]] = None,
        code: ErrorCode = ErrorCode.STORAGE_WRITE_FAILED,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message,
            operation=operation,
            path=path,
            code=code,
            original_error=original_error,
        )


class NoteDeleteError(StorageError):
    """Raised when a note file cannot be removed.

    A missing file is reported as a delete failure with the
    ``NOTE_NOT_FOUND`` code rather than treated as success.
    """

    def __init__(
        self,
        message: str,
        note_id: str,
        path: Optional[Union[str, Path]] = None,
        code: ErrorCode = ErrorCode.STORAGE_DELETE_FAILED,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message,
            operation="delete",
            path=path,
            code=code,
            original_error=original_error,
        )
        self.note_id = note_id
        self.details["note_id"] = note_id

    @property
    def not_found(self) -> bool:
        return self.code == ErrorCode.NOTE_NOT_FOUND


class SyncError(StorageError):
    """Raised when a full local resync fails.

    Attributes:
        written_count: Notes written before the failure. A non-zero value
            together with ``SYNC_PARTIAL`` means the store was wiped and
            only partially rebuilt.
        total_count: Notes the caller asked to write.
    """

    def __init__(
        self,
        message: str,
        written_count: int = 0,
        total_count: int = 0,
        path: Optional[Union[str, Path]] = None,
        code: ErrorCode = ErrorCode.SYNC_FAILED,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message,
            operation="sync",
            path=path,
            code=code,
            original_error=original_error,
        )
        self.written_count = written_count
        self.total_count = total_count
        self.details["written_count"] = written_count
        self.details["total_count"] = total_count


class BackupError(StorageError):
    """Raised when writing a backup snapshot fails.

    Only the snapshot write step raises this; retention pruning never does.
    """

    def __init__(
        self,
        message: str,
        snapshot_id: Optional[int] = None,
        path: Optional[Union[str, Path]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message,
            operation="backup",
            path=path,
            code=ErrorCode.BACKUP_FAILED,
            original_error=original_error,
        )
        self.snapshot_id = snapshot_id
        if snapshot_id is not None:
            self.details["snapshot_id"] = snapshot_id


class BulkOperationError(NoteVaultError):
    """Raised for bulk operation errors.

    Provides detailed information about which items succeeded and failed.

    Attributes:
        operation: Name of the bulk operation (e.g., "import_notes")
        total_count: Total number of items attempted
        success_count: Number of items that succeeded
        failed_ids: List of item identifiers that failed (full list)
        original_error: The underlying exception if applicable

    Note:
        The `details` dict contains `failed_ids` truncated to 10 items for
        safe serialization. Access `self.failed_ids` for the complete list.
    """

    def __init__(
        self,
        message: str,
        operation: str,
        total_count: int = 0,
        success_count: int = 0,
        failed_ids: Optional[List[str]] = None,
        code: ErrorCode = ErrorCode.IMPORT_FAILED,
        original_error: Optional[Exception] = None
    ):
        if total_count < 0:
            raise ValueError("total_count must be non-negative")
        if success_count < 0:
            raise ValueError("success_count must be non-negative")
        if success_count > total_count:
            raise ValueError("success_count cannot exceed total_count")

        details = {
            "operation": operation,
            "total_count": total_count,
            "success_count": success_count,
            "failed_count": total_count - success_count
        }
        if failed_ids:
            details["failed_ids"] = failed_ids[:10]
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.total_count = total_count
        self.success_count = success_count
        self.failed_ids: List[str] = list(failed_ids) if failed_ids else []
        self.original_error = original_error

    @property
    def failed_count(self) -> int:
        """Number of items that failed (computed from total - success)."""
        return self.total_count - self.success_count


class ImportBatchError(BulkOperationError):
    """Raised when one or more paths in an import batch failed.

    Carries every per-path error, not just the first, along with the notes
    that were imported (and already persisted) before and after the failures.

    Attributes:
        errors: One exception per failed path, in input order.
        imported: Notes successfully imported and written.
    """

    def __init__(
        self,
        errors: List[NoteVaultError],
        imported: Optional[List[Any]] = None,
    ):
        imported = list(imported) if imported else []
        failed = [self._failed_path(e) for e in errors]
        total = len(errors) + len(imported)
        code = ErrorCode.IMPORT_PARTIAL if imported else ErrorCode.IMPORT_FAILED
        super().__init__(
            f"Failed to import {len(errors)} of {total} file(s)",
            operation="import_notes",
            total_count=total,
            success_count=len(imported),
            failed_ids=failed,
            code=code,
        )
        self.errors: List[NoteVaultError] = list(errors)
        self.imported = imported

    @staticmethod
    def _failed_path(error: NoteVaultError) -> str:
        path = getattr(error, "path", None)
        if path is not None:
            return Path(path).name
        return error.details.get("path_hint", "<unknown>")
