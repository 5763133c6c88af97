"""Shutdown coordination: a single-trigger gate plus handler draining."""

import logging
import threading
from enum import Enum

logger = logging.getLogger(__name__)


class ServerState(Enum):
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class ShutdownCoordinator:
    """Holds the one authoritative "stop accepting" decision.

    - RUNNING: connections are accepted and served.
    - DRAINING: entered exactly once, by the first caller of `try_trigger`.
      The broadcast `signal` is set, shutdown callbacks run, and handlers
      finish their current message without starting another.
    - STOPPED: entered by `await_drain` once no handler is outstanding.

    The state and the outstanding-handler count share one lock; nothing
    else does.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._drained = threading.Condition(self._lock)
        self._state = ServerState.RUNNING
        self._outstanding = 0
        self._reason: str | None = None
        self._signal = threading.Event()
        self._callbacks: list = []

    @property
    def state(self) -> ServerState:
        with self._lock:
            return self._state

    @property
    def reason(self) -> str | None:
        """Why shutdown was triggered, or None while running."""
        with self._lock:
            return self._reason

    @property
    def outstanding(self) -> int:
        with self._lock:
            return self._outstanding

    @property
    def signal(self) -> threading.Event:
        """Broadcast event, set once shutdown is triggered. Never cleared."""
        return self._signal

    @property
    def is_draining(self) -> bool:
        return self._signal.is_set()

    def try_trigger(self, reason: str = "threshold reached") -> bool:
        """Move RUNNING -> DRAINING. Returns True only to the one caller that did."""
        with self._lock:
            if self._state is not ServerState.RUNNING:
                return False
            self._state = ServerState.DRAINING
            self._reason = reason
            callbacks = list(self._callbacks)
            self._signal.set()

        logger.info("Shutdown triggered: %s", reason)
        for callback in callbacks:
            self._run_callback(callback)
        return True

    def on_shutdown(self, callback):
        """Register `callback()` to run once shutdown is triggered.

        Runs immediately if shutdown has already been triggered.
        """
        with self._lock:
            if self._state is ServerState.RUNNING:
                self._callbacks.append(callback)
                return
        self._run_callback(callback)

    def handler_started(self):
        with self._lock:
            self._outstanding += 1

    def handler_finished(self):
        with self._lock:
            if self._outstanding <= 0:
                raise RuntimeError("handler_finished called with no outstanding handlers")
            self._outstanding -= 1
            if self._outstanding == 0:
                self._drained.notify_all()

    def await_drain(self, timeout: float | None = None) -> bool:
        """Block until no handler is outstanding, then move to STOPPED.

        Returns False only if `timeout` seconds pass first. Raises
        RuntimeError if shutdown has not been triggered.
        """
        with self._lock:
            if self._state is ServerState.RUNNING:
                raise RuntimeError("await_drain called before shutdown was triggered")
            drained = self._drained.wait_for(
                lambda: self._outstanding == 0, timeout=timeout
            )
            if drained:
                self._state = ServerState.STOPPED
                self._signal.set()
            return drained

    @staticmethod
    def _run_callback(callback):
        try:
            callback()
        except Exception:
            logger.exception("Shutdown callback %r failed", callback)
