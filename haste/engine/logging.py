"""
Haste Event Log — JSON-lines record of document, request and system events.

Layout: {log_dir}/{stream}/{YYYY-MM-DD}.jsonl, one file per stream per day.

Events are pushed onto a bounded in-memory queue and written by a daemon
thread, so request handling never waits on disk. The standard ``logging``
loggers (``haste.*``) carry human-readable diagnostics alongside; this log
carries one machine-readable record per event.

Usage:
    init_logging(log_dir=".haste/logs")
    log(log_document_created(key="AkwMrtCpeS", size=12, mimetype="text/plain"))
    shutdown_logging()
"""

from __future__ import annotations

import gzip
import json
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger("haste.engine.logging")

STREAMS = ("documents", "requests", "system")

# Days a stream's files are kept before deletion
DEFAULT_RETENTION = {
    "documents": 30,
    "requests": 14,
    "system": 90,
}


@dataclass(frozen=True)
class Event:
    """One JSON log record and the stream it belongs to."""
    stream: str
    fields: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(self.fields, default=str, separators=(",", ":"))


class EventLogWriter:
    """Appends events to today's file of their stream."""

    def __init__(self, log_dir: str = ".haste/logs"):
        self.log_dir = Path(log_dir)
        self._lock = threading.Lock()
        for stream in STREAMS:
            (self.log_dir / stream).mkdir(parents=True, exist_ok=True)

    def path_for(self, stream: str, day: Optional[date] = None) -> Path:
        return self.log_dir / stream / f"{(day or date.today()).isoformat()}.jsonl"

    def write(self, events: Iterable[Event]) -> int:
        """Write events grouped per file; returns the number written."""
        lines: Dict[Path, List[str]] = defaultdict(list)
        for event in events:
            lines[self.path_for(event.stream)].append(event.to_json())

        with self._lock:
            for path, batch in lines.items():
                with open(path, "a", encoding="utf-8") as f:
                    f.write("\n".join(batch))
                    f.write("\n")
        return sum(len(batch) for batch in lines.values())


class EventQueue:
    """
    Bounded queue drained by a background writer thread.

    push() never blocks: when the queue is full the event is dropped and
    counted. stop() writes whatever is still queued.
    """

    def __init__(
        self,
        writer: EventLogWriter,
        flush_interval_ms: int = 100,
        flush_batch_size: int = 50,
        max_queue_size: int = 10000,
    ):
        self.writer = writer
        self._interval = flush_interval_ms / 1000.0
        self._batch_size = flush_batch_size
        self._queue: Queue[Event] = Queue(maxsize=max_queue_size)
        self._stopping = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.dropped = 0

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stopping.clear()
        self._thread = threading.Thread(target=self._run, name="haste-event-log", daemon=True)
        self._thread.start()
        logger.debug(f"Event log writing to {self.writer.log_dir}")

    def stop(self, timeout: float = 5.0) -> None:
        self._stopping.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        self._flush(self._take_all())
        if self.dropped:
            logger.warning(f"Event log dropped {self.dropped} event(s), queue was full")

    def push(self, event: Event) -> bool:
        """Queue an event; False when it was dropped."""
        try:
            self._queue.put_nowait(event)
        except Full:
            self.dropped += 1
            return False
        return True

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def _run(self) -> None:
        while not self._stopping.is_set():
            self._flush(self._take_batch())

    def _take_batch(self) -> List[Event]:
        # wait up to one interval for the first event, then take what is ready
        try:
            batch = [self._queue.get(timeout=self._interval)]
        except Empty:
            return []
        while len(batch) < self._batch_size:
            try:
                batch.append(self._queue.get_nowait())
            except Empty:
                break
        return batch

    def _take_all(self) -> List[Event]:
        batch: List[Event] = []
        while True:
            try:
                batch.append(self._queue.get_nowait())
            except Empty:
                return batch

    def _flush(self, batch: List[Event]) -> None:
        if not batch:
            return
        try:
            self.writer.write(batch)
        except OSError as e:
            logger.error(f"Event log write failed, {len(batch)} event(s) lost: {e}")


# ---------------------------------------------------------------------------
# Event builders
# ---------------------------------------------------------------------------

def _event(stream: str, event: str, /, level: str = "INFO", **fields: Any) -> Event:
    record: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
    }
    # optional fields left unset are omitted from the record
    record.update({k: v for k, v in fields.items() if v is not None and v != ""})
    return Event(stream, record)


def log_document_created(
    key: str,
    size: int,
    mimetype: str,
    name: str = "",
    encoded_size: Optional[int] = None,
    duration_ms: Optional[float] = None,
) -> Event:
    return _event(
        "documents", "document_created",
        key=key, size=size, mimetype=mimetype, name=name,
        encoded_size=encoded_size, duration_ms=duration_ms,
    )


def log_document_read(
    key: str,
    operation: str,
    found: bool,
    duration_ms: Optional[float] = None,
) -> Event:
    """Read of one document; ``operation`` is fetch or head."""
    return _event(
        "documents", f"document_{operation}",
        key=key, found=found, duration_ms=duration_ms,
    )


def log_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    client_ip: Optional[str] = None,
) -> Event:
    if status_code >= 500:
        level = "ERROR"
    elif status_code >= 400:
        level = "WARNING"
    else:
        level = "INFO"
    return _event(
        "requests", "http_request", level=level,
        method=method, path=path, status_code=status_code,
        duration_ms=duration_ms, client_ip=client_ip,
    )


def log_system_event(
    name: str,
    level: str = "INFO",
    details: Optional[Dict[str, Any]] = None,
) -> Event:
    """Startup, shutdown and static document loading."""
    return _event("system", name, level=level, details=details or None)


# ---------------------------------------------------------------------------
# Retention
# ---------------------------------------------------------------------------

class LogRetentionManager:
    """
    Ages out event log files.

    Files older than their stream's retention are deleted; younger files
    older than compress_after_days are gzipped in place (``.jsonl.gz``).
    """

    def __init__(
        self,
        log_dir: str = ".haste/logs",
        retention_days: Optional[Dict[str, int]] = None,
        compress_after_days: int = 7,
    ):
        self.log_dir = Path(log_dir)
        self.retention_days = {**DEFAULT_RETENTION, **(retention_days or {})}
        self.compress_after_days = compress_after_days

    def cleanup(self, today: Optional[date] = None) -> Dict[str, int]:
        today = today or date.today()
        deleted = compressed = 0

        for stream in STREAMS:
            directory = self.log_dir / stream
            if not directory.is_dir():
                continue
            keep_days = self.retention_days.get(stream, DEFAULT_RETENTION["system"])

            for path in sorted(directory.glob("*.jsonl*")):
                day = _file_day(path)
                if day is None:
                    continue
                age = (today - day).days
                if age > keep_days:
                    path.unlink()
                    deleted += 1
                elif age > self.compress_after_days and path.suffix == ".jsonl":
                    if _gzip_in_place(path):
                        compressed += 1

        logger.info(f"Event log cleanup: deleted {deleted}, compressed {compressed}")
        return {"deleted": deleted, "compressed": compressed}


def _file_day(path: Path) -> Optional[date]:
    try:
        return date.fromisoformat(path.name.split(".", 1)[0])
    except ValueError:
        return None


def _gzip_in_place(path: Path) -> bool:
    target = path.with_name(path.name + ".gz")
    try:
        with gzip.open(target, "wb") as f:
            f.write(path.read_bytes())
    except OSError as e:
        logger.error(f"Could not compress {path}: {e}")
        target.unlink(missing_ok=True)
        return False
    path.unlink()
    return True


# ---------------------------------------------------------------------------
# Process event queue
# ---------------------------------------------------------------------------

_queue: Optional[EventQueue] = None


def init_logging(
    log_dir: str = ".haste/logs",
    flush_interval_ms: int = 100,
    flush_batch_size: int = 50,
    max_queue_size: int = 10000,
) -> EventQueue:
    """Start the process event queue, replacing any running one."""
    global _queue
    shutdown_logging()
    _queue = EventQueue(
        EventLogWriter(log_dir),
        flush_interval_ms=flush_interval_ms,
        flush_batch_size=flush_batch_size,
        max_queue_size=max_queue_size,
    )
    _queue.start()
    return _queue


def get_log_queue() -> Optional[EventQueue]:
    return _queue


def log(event: Event) -> bool:
    """Queue an event; a no-op returning False while the event log is off."""
    if _queue is None:
        return False
    return _queue.push(event)


def shutdown_logging() -> None:
    global _queue
    if _queue is not None:
        _queue.stop()
        _queue = None


def configure_stdlib_logging(level: str = "INFO") -> None:
    """Level and console format for the ``haste`` logger hierarchy."""
    haste_logger = logging.getLogger("haste")
    haste_logger.setLevel(level)
    if not haste_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        haste_logger.addHandler(handler)
