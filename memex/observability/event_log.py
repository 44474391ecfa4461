"""Recent-events sink.

An explicitly constructed, bounded buffer of notable pipeline events
(scans, signals, trades, errors).  Every event is forwarded to structlog
and kept in memory so the API can serve the latest ones at /api/logs.

The sink is created by whoever builds the pipeline and passed down to
each component; there is no process-wide instance.
"""

from __future__ import annotations

import datetime as dt
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

from memex.observability.logger import get_logger


@dataclass
class Event:
    """A single recorded event."""
    event: str
    level: str = "info"
    fields: dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = dt.datetime.now(dt.timezone.utc).isoformat()

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "level": self.level,
            "event": self.event,
            **self.fields,
        }


class EventLog:
    """Bounded, newest-first buffer of pipeline events."""

    def __init__(self, max_events: int = 100, logger_name: str = "memex.events"):
        self._events: deque[Event] = deque(maxlen=max_events)
        self._lock = Lock()
        self._log = get_logger(logger_name)

    def emit(self, event: str, level: str = "info", **fields: Any) -> Event:
        entry = Event(event=event, level=level, fields=fields)
        with self._lock:
            self._events.appendleft(entry)
        getattr(self._log, level, self._log.info)(event, **fields)
        return entry

    def info(self, event: str, **fields: Any) -> Event:
        return self.emit(event, "info", **fields)

    def warning(self, event: str, **fields: Any) -> Event:
        return self.emit(event, "warning", **fields)

    def error(self, event: str, **fields: Any) -> Event:
        return self.emit(event, "error", **fields)

    def recent(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Return buffered events, newest first."""
        with self._lock:
            items = list(self._events)
        if limit is not None:
            items = items[:limit]
        return [e.to_dict() for e in items]

    def __len__(self) -> int:
        return len(self._events)
