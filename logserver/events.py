"""Structured server events rendered through logging."""

import logging
import threading
from enum import Enum

from logserver.formatter import format_event, utc_timestamp

logger = logging.getLogger(__name__)


class ServerEvent(Enum):
    CONNECTED = "connected"
    PROCESSED = "processed"
    DISCONNECTED = "disconnected"
    THRESHOLD_REACHED = "threshold-reached"
    ERROR = "error"


_LEVELS = {
    ServerEvent.CONNECTED: logging.INFO,
    ServerEvent.PROCESSED: logging.DEBUG,
    ServerEvent.DISCONNECTED: logging.INFO,
    ServerEvent.THRESHOLD_REACHED: logging.WARNING,
    ServerEvent.ERROR: logging.ERROR,
}


class EventReporter:
    """Logs server events and keeps a ring of the most recent errors."""

    def __init__(self, max_errors: int = 100):
        self._max_errors = max_errors
        self._errors: list[dict] = []
        self._counts: dict[ServerEvent, int] = {event: 0 for event in ServerEvent}
        self._lock = threading.Lock()

    def emit(self, event: ServerEvent, session_id: int | None = None,
             peer: str | None = None, **details):
        """Record one event and log it at the level for its kind."""
        with self._lock:
            self._counts[event] += 1
            if event is ServerEvent.ERROR:
                self._errors.append({
                    "timestamp": utc_timestamp(),
                    "session": session_id,
                    "peer": peer,
                    **{k: str(v) for k, v in details.items()},
                })
                if len(self._errors) > self._max_errors:
                    self._errors.pop(0)

        logger.log(_LEVELS[event], "%s",
                   format_event(event.value, session_id, peer, **details))

    def count(self, event: ServerEvent) -> int:
        with self._lock:
            return self._counts[event]

    def recent_errors(self, n: int = 10) -> list[dict]:
        """Return the N most recent error events."""
        with self._lock:
            return list(self._errors[-n:])
