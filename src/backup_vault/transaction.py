"""Job history: an append-only JSON-lines log of backup and send runs.

Each job writes a ``started`` record and then a ``completed`` or ``failed``
record. The log is shared between processes, so appends are serialized with
a file lock in addition to the in-process lock.
"""

import json
import logging
import os
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from filelock import FileLock

logger = logging.getLogger(__name__)

_transaction_log_path: Path | None = None
_write_lock = threading.Lock()


def set_transaction_log(path: Path | str | None) -> None:
    """Set (or with None, disable) the transaction log location."""
    global _transaction_log_path

    if path is None:
        _transaction_log_path = None
        return

    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    _transaction_log_path = path


def get_transaction_log() -> Path | None:
    """Return the active transaction log path, if any."""
    return _transaction_log_path


def log_transaction(
    action: str,
    status: str,
    source: str | None = None,
    destination: str | None = None,
    version: str | None = None,
    size_bytes: int | None = None,
    duration_seconds: float | None = None,
    error: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Append one record to the transaction log.

    None values are left out of the record. Write failures are logged and
    never interrupt the job that is being recorded.
    """
    path = _transaction_log_path
    if path is None:
        return

    record: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "pid": os.getpid(),
        "action": action,
        "status": status,
    }
    optional = {
        "source": source,
        "destination": destination,
        "version": version,
        "size_bytes": size_bytes,
        "duration_seconds": (
            round(duration_seconds, 3) if duration_seconds is not None else None
        ),
        "error": error,
        "details": details,
    }
    record.update({k: v for k, v in optional.items() if v is not None})

    try:
        with _write_lock, FileLock(str(path) + ".lock"):
            with open(path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record) + "\n")
    except OSError as e:
        logger.warning("Could not write transaction log %s: %s", path, e)


class TransactionContext:
    """Record a job as started, then completed or failed on exit."""

    def __init__(
        self,
        action: str,
        source: str | None = None,
        destination: str | None = None,
        version: str | None = None,
    ) -> None:
        self.action = action
        self.source = source
        self.destination = destination
        self.version = version
        self.size_bytes: int | None = None
        self.error: str | None = None
        self.details: dict[str, Any] = {}
        self._start = 0.0

    def __enter__(self) -> "TransactionContext":
        self._start = time.monotonic()
        log_transaction(
            action=self.action,
            status="started",
            source=self.source,
            destination=self.destination,
            version=self.version,
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        duration = time.monotonic() - self._start
        if exc_type is not None:
            log_transaction(
                action=self.action,
                status="failed",
                source=self.source,
                destination=self.destination,
                version=self.version,
                duration_seconds=duration,
                error=str(exc_val) or exc_type.__name__,
                details=self.details or None,
            )
        else:
            log_transaction(
                action=self.action,
                status="completed",
                source=self.source,
                destination=self.destination,
                version=self.version,
                size_bytes=self.size_bytes,
                duration_seconds=duration,
                error=self.error,
                details=self.details or None,
            )
        return False

    def set_destination(self, destination: str) -> None:
        self.destination = destination

    def set_size(self, size_bytes: int) -> None:
        self.size_bytes = size_bytes

    def add_detail(self, key: str, value: Any) -> None:
        self.details[key] = value

    def fail(self, message: str) -> None:
        """Attach an error message without changing the completion status."""
        self.error = message


def read_transaction_log(
    path: Path | str | None = None,
    limit: int | None = None,
    action_filter: str | None = None,
    status_filter: str | None = None,
) -> list[dict[str, Any]]:
    """Read records, most recent first.

    Args:
        path: Log file to read (defaults to the active log)
        limit: Maximum number of records to return
        action_filter: Only return records with this action
        status_filter: Only return records with this status

    Returns:
        List of record dicts; unreadable lines are skipped
    """
    path = Path(path) if path is not None else _transaction_log_path
    if path is None or not path.exists():
        return []

    records = []
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError:
                    logger.debug("Skipping malformed transaction line: %r", line)
                    continue
                if action_filter and record.get("action") != action_filter:
                    continue
                if status_filter and record.get("status") != status_filter:
                    continue
                records.append(record)
    except OSError as e:
        logger.warning("Could not read transaction log %s: %s", path, e)
        return []

    records.reverse()
    if limit is not None:
        records = records[:limit]
    return records


def get_transaction_stats(path: Path | str | None = None) -> dict[str, Any]:
    """Summarize the log: completed/failed counts per action and bytes copied."""
    records = read_transaction_log(path)

    stats: dict[str, Any] = {
        "total_records": len(records),
        "backups": {"completed": 0, "failed": 0},
        "sends": {"completed": 0, "failed": 0},
        "total_bytes_copied": 0,
    }
    buckets = {"backup": "backups", "send": "sends"}

    for record in records:
        bucket = buckets.get(record.get("action", ""))
        status = record.get("status")
        if bucket and status in ("completed", "failed"):
            stats[bucket][status] += 1
        if status == "completed":
            stats["total_bytes_copied"] += record.get("size_bytes", 0) or 0

    return stats
