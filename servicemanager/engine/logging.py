"""
Service Manager Logging — Structured JSON event log with async queue.

Implements:
- FileLogger: Per-category JSONL files with daily rotation
- AsyncLogQueue: In-memory queue with background flush
- Entry builders for session operations and remote calls

Layout: {log_dir}/{category}/{YYYY-MM-DD}.jsonl
"""

from __future__ import annotations

import atexit
import json
import logging
import threading
import time
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Any, Dict, List, Optional

logger = logging.getLogger("servicemanager.engine.logging")

CATEGORIES = ("session", "remote")


class LogEntry:
    """A structured log entry destined for one category file."""

    __slots__ = ("category", "data")

    def __init__(self, category: str, data: Dict[str, Any]):
        if category not in CATEGORIES:
            raise ValueError(f"Unknown log category: {category}")
        self.category = category
        self.data = data

    def to_json(self) -> str:
        return json.dumps(self.data, default=str, separators=(",", ":"))


class FileLogger:
    """
    Writes structured JSON log entries to per-category files.
    Files rotate daily: {log_dir}/{category}/{YYYY-MM-DD}.jsonl

    Thread-safe — one lock per file path.
    """

    def __init__(self, log_dir: str = ".servicemanager/logs"):
        self._log_dir = Path(log_dir)
        self._file_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        for category in CATEGORIES:
            (self._log_dir / category).mkdir(parents=True, exist_ok=True)

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def write(self, entry: LogEntry) -> None:
        self.write_batch([entry])

    def write_batch(self, entries: List[LogEntry]) -> None:
        """Write entries, grouping by file path so each file is opened once."""
        grouped: Dict[str, List[LogEntry]] = defaultdict(list)
        for entry in entries:
            grouped[str(self._resolve_path(entry.category))].append(entry)

        for file_path, batch in grouped.items():
            with self._file_locks[file_path]:
                with open(file_path, "a", encoding="utf-8") as f:
                    for entry in batch:
                        f.write(entry.to_json())
                        f.write("\n")

    def _resolve_path(self, category: str) -> Path:
        return self._log_dir / category / f"{date.today().isoformat()}.jsonl"

    def query(
        self,
        category: str,
        *,
        days: int = 7,
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 500,
    ) -> List[Dict[str, Any]]:
        """
        Read entries back from the last *days* daily files.

        Args:
            category: "session" or "remote".
            days: How many daily files to scan, counting today.
            filters: Exact-match constraints on top-level keys.
            limit: Max number of entries to return.

        Returns:
            Parsed entries, newest first.
        """
        base = self._log_dir / category
        if not base.exists():
            return []

        results: List[Dict[str, Any]] = []
        current = date.today()
        oldest = current - timedelta(days=max(days, 1) - 1)
        while current >= oldest:
            path = base / f"{current.isoformat()}.jsonl"
            if path.exists():
                # Within a file lines are chronological
                results.extend(reversed(self._read_jsonl(path, filters)))
            current -= timedelta(days=1)
        return results[:limit]

    @staticmethod
    def _read_jsonl(path: Path, filters: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
        entries: List[Dict[str, Any]] = []
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if filters and not all(data.get(k) == v for k, v in filters.items()):
                        continue
                    entries.append(data)
        except OSError as exc:
            logger.warning("Could not read log file %s: %s", path, exc)
        return entries


class AsyncLogQueue:
    """
    In-memory queue with a background flush thread.

    push() never blocks the event loop. The thread flushes every
    flush_interval_ms or once flush_batch_size entries accumulate.
    """

    def __init__(
        self,
        file_logger: FileLogger,
        flush_interval_ms: int = 100,
        flush_batch_size: int = 50,
        max_queue_size: int = 10000,
    ):
        self._logger = file_logger
        self._flush_interval = flush_interval_ms / 1000.0
        self._flush_batch_size = flush_batch_size
        self._queue: Queue[LogEntry] = Queue(maxsize=max_queue_size)
        self._running = False
        self._flush_thread: Optional[threading.Thread] = None
        self._dropped_count = 0

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._flush_thread = threading.Thread(
            target=self._flush_loop,
            name="servicemanager-log-flush",
            daemon=True,
        )
        self._flush_thread.start()
        logger.info("Async log queue started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the flush thread and drain remaining entries."""
        self._running = False
        if self._flush_thread and self._flush_thread.is_alive():
            self._flush_thread.join(timeout=timeout)
        self._drain()
        logger.info(f"Async log queue stopped (dropped: {self._dropped_count})")

    def push(self, entry: LogEntry) -> bool:
        """Queue an entry. Returns False if it was dropped (queue full)."""
        try:
            self._queue.put_nowait(entry)
            return True
        except Full:
            self._dropped_count += 1
            return False

    def _flush_loop(self) -> None:
        while self._running:
            batch = self._collect_batch()
            if batch:
                try:
                    self._logger.write_batch(batch)
                except OSError as e:
                    logger.error(f"Log flush error: {e}")
            else:
                time.sleep(self._flush_interval)

    def _collect_batch(self) -> List[LogEntry]:
        batch: List[LogEntry] = []
        deadline = time.monotonic() + self._flush_interval

        while len(batch) < self._flush_batch_size:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                batch.append(self._queue.get(timeout=min(remaining, 0.01)))
            except Empty:
                if batch:
                    break
        return batch

    def _drain(self) -> None:
        batch: List[LogEntry] = []
        while True:
            try:
                batch.append(self._queue.get_nowait())
            except Empty:
                break
        if batch:
            try:
                self._logger.write_batch(batch)
            except OSError as e:
                logger.error(f"Log drain error: {e}")

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        return self._dropped_count


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(event: str, level: str, **extra: Any) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
    }
    entry.update({k: v for k, v in extra.items() if v is not None})
    return entry


def log_session_event(
    operation: str,
    outcome: str,
    folder_id: Optional[str] = None,
    service_id: Optional[str] = None,
    service_count: Optional[int] = None,
    message: Optional[str] = None,
    error: Optional[Dict[str, Any]] = None,
) -> LogEntry:
    """
    Build a session operation entry.

    outcome is one of: success, failure, rejected, noop.
    """
    level = {"failure": "ERROR", "rejected": "WARNING"}.get(outcome, "INFO")
    data = _base_entry(
        event=f"session_{operation}",
        level=level,
        operation=operation,
        outcome=outcome,
        folder_id=folder_id,
        service_id=service_id,
        service_count=service_count,
        message=message,
        error=error,
    )
    return LogEntry("session", data)


def log_remote_call(
    operation: str,
    remote: str,
    duration_ms: float,
    success: bool,
    folder_id: Optional[str] = None,
    status_code: Optional[int] = None,
    error: Optional[str] = None,
) -> LogEntry:
    """Build a remote-call entry (one per fetch/create/save attempt)."""
    data = _base_entry(
        event="remote_called",
        level="INFO" if success else "ERROR",
        operation=operation,
        remote=remote,
        duration_ms=round(duration_ms, 2),
        success=success,
        folder_id=folder_id,
        status_code=status_code,
        error=error,
    )
    return LogEntry("remote", data)


# ---------------------------------------------------------------------------
# Global Log Queue
# ---------------------------------------------------------------------------

_global_queue: Optional[AsyncLogQueue] = None
_exit_hook_registered = False


def init_logging(
    log_dir: str = ".servicemanager/logs",
    flush_interval_ms: int = 100,
    flush_batch_size: int = 50,
    level: str = "INFO",
) -> AsyncLogQueue:
    """
    Configure stdlib log level and start the global async log queue.

    The queue is flushed at interpreter exit; the flush thread is a daemon
    and would otherwise drop whatever is still pending.
    """
    global _global_queue, _exit_hook_registered
    logging.getLogger("servicemanager").setLevel(level.upper())
    if _global_queue is not None:
        return _global_queue
    _global_queue = AsyncLogQueue(
        file_logger=FileLogger(log_dir=log_dir),
        flush_interval_ms=flush_interval_ms,
        flush_batch_size=flush_batch_size,
    )
    _global_queue.start()
    if not _exit_hook_registered:
        atexit.register(shutdown_logging)
        _exit_hook_registered = True
    return _global_queue


def get_log_queue() -> Optional[AsyncLogQueue]:
    return _global_queue


def log(entry: LogEntry) -> bool:
    """Push an entry to the global queue. No-op until init_logging() ran."""
    if _global_queue is None:
        return False
    return _global_queue.push(entry)


def shutdown_logging() -> None:
    """Flush and stop the global log queue."""
    global _global_queue
    if _global_queue:
        _global_queue.stop()
        _global_queue = None
