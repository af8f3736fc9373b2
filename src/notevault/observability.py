"""Logging, timing and metrics for NoteVault operations.

Every public engine operation (create_note, sync_notes, backup_notes,
import_notes, ...) runs inside ``timed_operation``, which logs a start/end
pair tagged with a short correlation id and feeds the shared ``metrics``
collector. The CLI persists that collector next to the log files when a
log directory is configured.
"""
import functools
import json
import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

# Every module logger hangs below this name
ROOT_LOGGER_NAME = "notevault"

LOG_FILE_NAME = "notevault.log"
METRICS_FILE_NAME = "metrics.json"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

F = TypeVar('F', bound=Callable[..., Any])


def configure_logging(
    log_dir: Union[str, Path],
    level: int = logging.INFO,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    console: bool = True,
) -> Path:
    """Send the ``notevault`` logger hierarchy to a rotating log file.

    Calling this again with the same directory does not add a second file
    handler.

    Args:
        log_dir: Directory that receives ``notevault.log`` and its rotations.
        level: Level for the package logger and its handlers.
        max_bytes: Size at which the log file is rotated.
        backup_count: Rotated files kept beside the live one.
        console: Also attach a stderr handler.

    Returns:
        The log directory.

    Raises:
        OSError: If the directory cannot be created.
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = (log_path / LOG_FILE_NAME).absolute()

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers = package_logger.handlers
    has_file = any(
        isinstance(h, RotatingFileHandler) and Path(h.baseFilename) == log_file
        for h in handlers
    )
    if not has_file:
        file_handler = RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    has_console = any(type(h) is logging.StreamHandler for h in handlers)
    if console and not has_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        package_logger.addHandler(console_handler)

    package_logger.debug(f"Logging to {log_file}")
    return log_path


@dataclass
class OperationStats:
    """Running totals for one operation name."""
    count: int = 0
    error_count: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    def add(self, duration_ms: float, error: Optional[str]) -> None:
        self.count += 1
        self.total_ms += duration_ms
        self.max_ms = max(self.max_ms, duration_ms)
        if error is not None:
            self.error_count += 1
            self.last_error = error[:200]
            self.last_error_at = datetime.now(timezone.utc)

    def as_dict(self) -> Dict[str, Any]:
        return {
            'count': self.count,
            'success_count': self.count - self.error_count,
            'error_count': self.error_count,
            'avg_duration_ms': round(self.total_ms / self.count, 2) if self.count else 0,
            'max_duration_ms': round(self.max_ms, 2),
            'last_error': self.last_error,
            'last_error_at': self.last_error_at.isoformat() if self.last_error_at else None,
        }


class MetricsCollector:
    """Thread-safe per-operation counters and timings, held in memory."""

    def __init__(self):
        self._stats: Dict[str, OperationStats] = {}
        self._lock = Lock()
        self._since = datetime.now(timezone.utc)

    def record(self, operation: str, duration_ms: float, error: Optional[str] = None) -> None:
        """Add one run of ``operation``; a non-None ``error`` marks it failed."""
        with self._lock:
            self._stats.setdefault(operation, OperationStats()).add(duration_ms, error)

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Return the current totals keyed by operation name."""
        with self._lock:
            return {name: stats.as_dict() for name, stats in self._stats.items()}

    def reset(self) -> None:
        with self._lock:
            self._stats.clear()
            self._since = datetime.now(timezone.utc)

    def save(self, metrics_file: Union[str, Path]) -> bool:
        """Write the totals as JSON, replacing the file atomically.

        Failures are logged, not raised: metrics never fail a command.

        Returns:
            True if the file was written.
        """
        metrics_file = Path(metrics_file)
        payload = {
            "since": self._since.isoformat(),
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "operations": self.snapshot(),
        }
        temp_file = metrics_file.with_suffix(".tmp")
        try:
            metrics_file.parent.mkdir(parents=True, exist_ok=True)
            temp_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            temp_file.replace(metrics_file)
        except OSError as e:
            logger.error(f"Failed to save metrics to {metrics_file}: {e}")
            return False
        return True


# Shared by every traced operation in the process
metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context) -> Iterator[Dict[str, Any]]:
    """Time a block, log it, and record it in ``metrics``.

    The yielded dict is echoed in the END log line, so callers can attach
    results such as ``op['result_count'] = len(notes)``. Exceptions are
    recorded as failures and re-raised unchanged.
    """
    correlation_id = uuid.uuid4().hex[:8]
    info: Dict[str, Any] = {'correlation_id': correlation_id}
    context_str = ', '.join(f'{k}={v}' for k, v in context.items())
    logger.debug(f"[{correlation_id}] START {operation} ({context_str})")

    started = time.perf_counter()
    error: Optional[str] = None
    try:
        yield info
    except Exception as e:
        error = str(e) or type(e).__name__
        raise
    finally:
        duration_ms = (time.perf_counter() - started) * 1000
        metrics.record(operation, duration_ms, error)
        extra = ', '.join(f'{k}={v}' for k, v in info.items() if k != 'correlation_id')
        outcome = 'OK' if error is None else f'ERROR: {error}'
        logger.debug(
            f"[{correlation_id}] END {operation} ({duration_ms:.2f}ms) [{outcome}] {extra}"
        )


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Run the decorated function inside ``timed_operation``.

    A ``note_id`` keyword, or the uuid of a ``note`` argument, is added to
    the log context.
    """
    def decorator(func: F) -> F:
        name = operation_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            context = {}
            note = kwargs.get('note')
            if note is None:
                note = next((a for a in args if hasattr(a, 'content') and hasattr(a, 'uuid')), None)
            if 'note_id' in kwargs:
                context['note_id'] = kwargs['note_id']
            elif note is not None:
                context['note_id'] = note.uuid

            with timed_operation(name, **context) as op:
                result = func(*args, **kwargs)
                if isinstance(result, list):
                    op['result_count'] = len(result)
                return result

        return wrapper  # type: ignore
    return decorator
