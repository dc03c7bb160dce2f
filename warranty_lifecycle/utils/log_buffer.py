"""
In-Memory Log Buffer

Bounded ring buffer of recent log entries with explicit subscribe and
unsubscribe, used to stream logs to viewers. The entry point constructs one
buffer and passes it to whoever needs it; there is no module-level instance.

``LogBufferHandler`` feeds standard ``logging`` records into a buffer.
"""

import logging
import sys
import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


LEVELS = ("debug", "info", "warn", "error")


@dataclass
class LogEntry:
    """A single buffered log entry."""
    level: str
    message: str
    source: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "level": self.level,
            "message": self.message,
            "source": self.source,
            "metadata": self.metadata,
        }


LogSubscriber = Callable[[LogEntry], None]


class LogBuffer:
    """Bounded log buffer with subscriber callbacks."""

    def __init__(self, max_entries: int = 1000):
        """
        Initialize the buffer.

        Args:
            max_entries: Entries kept in memory; the oldest are dropped first
        """
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: deque = deque(maxlen=max_entries)
        self._subscribers: Dict[str, LogSubscriber] = {}
        self._lock = threading.Lock()

    def log(
        self,
        level: str,
        message: str,
        source: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> LogEntry:
        """Append an entry and notify every subscriber."""
        if level not in LEVELS:
            raise ValueError(f"Unknown log level: {level}")

        entry = LogEntry(level=level, message=message, source=source, metadata=metadata)
        with self._lock:
            self._entries.append(entry)
            subscribers = list(self._subscribers.items())

        for subscriber_id, callback in subscribers:
            try:
                callback(entry)
            except Exception as e:
                # Logging here would re-enter the buffer through the handler
                print(f"Error notifying log subscriber {subscriber_id}: {e}", file=sys.stderr)

        return entry

    def info(self, message: str, source: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None) -> LogEntry:
        return self.log("info", message, source, metadata)

    def warn(self, message: str, source: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None) -> LogEntry:
        return self.log("warn", message, source, metadata)

    def error(self, message: str, source: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None) -> LogEntry:
        return self.log("error", message, source, metadata)

    def debug(self, message: str, source: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None) -> LogEntry:
        return self.log("debug", message, source, metadata)

    def subscribe(self, callback: LogSubscriber) -> str:
        """Register a callback for new entries. Returns the subscription ID."""
        subscriber_id = f"subscriber-{uuid.uuid4().hex[:12]}"
        with self._lock:
            self._subscribers[subscriber_id] = callback
        return subscriber_id

    def unsubscribe(self, subscriber_id: str) -> bool:
        """Remove a subscription. Returns False if the ID was unknown."""
        with self._lock:
            return self._subscribers.pop(subscriber_id, None) is not None

    def recent(self, limit: int = 100) -> List[LogEntry]:
        """Most recent entries, oldest first."""
        with self._lock:
            entries = list(self._entries)
        return entries[-limit:] if limit > 0 else []

    def by_level(self, level: str, limit: int = 100) -> List[LogEntry]:
        with self._lock:
            entries = [e for e in self._entries if e.level == level]
        return entries[-limit:] if limit > 0 else []

    def by_source(self, source: str, limit: int = 100) -> List[LogEntry]:
        with self._lock:
            entries = [e for e in self._entries if e.source == source]
        return entries[-limit:] if limit > 0 else []

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


class LogBufferHandler(logging.Handler):
    """Logging handler that writes records into a ``LogBuffer``."""

    def __init__(self, buffer: LogBuffer, level: int = logging.NOTSET):
        super().__init__(level)
        self.buffer = buffer

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = _LEVEL_NAMES.get(record.levelno)
            if level is None:
                level = "error" if record.levelno > logging.ERROR else "debug"
            self.buffer.log(level, record.getMessage(), source=record.name)
        except Exception:
            self.handleError(record)


def setup_logging(level: str = "INFO", buffer: Optional[LogBuffer] = None) -> None:
    """
    Configure root logging, optionally mirroring records into a buffer.

    Args:
        level: Root log level name
        buffer: Buffer to attach a ``LogBufferHandler`` for
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )

    if buffer is not None:
        root = logging.getLogger()
        if not any(isinstance(h, LogBufferHandler) and h.buffer is buffer for h in root.handlers):
            root.addHandler(LogBufferHandler(buffer))
