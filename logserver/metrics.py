"""Thread-safe counters for the log server."""

import threading
import time


class ServerMetrics:
    """Counters guarded by their own lock, independent of the sink lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._messages_received = 0
        self._bytes_recorded = 0
        self._connections_accepted = 0
        self._errors = 0
        self._start_time = time.monotonic()

    def record_connection(self):
        with self._lock:
            self._connections_accepted += 1

    def record_message(self, nbytes: int):
        """Count one logged message of `nbytes` record bytes."""
        with self._lock:
            self._messages_received += 1
            self._bytes_recorded += nbytes

    def record_error(self):
        with self._lock:
            self._errors += 1

    def snapshot(self) -> dict:
        """Return a point-in-time snapshot of all counters."""
        with self._lock:
            elapsed = time.monotonic() - self._start_time
            messages = self._messages_received
            snap = {
                "messages_received": messages,
                "bytes_recorded": self._bytes_recorded,
                "connections_accepted": self._connections_accepted,
                "errors": self._errors,
            }

        snap["elapsed_seconds"] = round(elapsed, 2)
        snap["messages_per_second"] = (
            round(messages / elapsed, 2) if elapsed > 0 else 0.0
        )
        return snap
