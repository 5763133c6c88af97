"""Per-connection handler: read one message, append it, reply, repeat."""

import logging
import socket
from dataclasses import dataclass
from enum import Enum

from logserver.config import ServerConfig
from logserver.coordinator import ShutdownCoordinator
from logserver.errors import PeerClosed, SessionCancelled, SinkWriteError
from logserver.events import EventReporter, ServerEvent
from logserver.formatter import format_record
from logserver.metrics import ServerMetrics
from logserver.protocol import (
    ACK,
    LINE_TERMINATOR,
    SHUTDOWN_NOTICE,
    encode_reply,
)
from logserver.sink import LogSink, ThresholdPolicy, encode_record

logger = logging.getLogger(__name__)


class SessionOutcome(Enum):
    PROCESSED = "processed"
    SHUTDOWN_NOTIFIED = "shutdown-notified"
    ERRORED = "errored"
    CANCELLED = "cancelled"


@dataclass
class ConnectionSession:
    session_id: int
    peer: str
    messages: int = 0
    outcome: SessionOutcome | None = None


class ConnectionHandler:
    """Owns one accepted connection until it closes.

    Each message cycle is Reading -> Appending -> Replying. The handler
    checks the coordinator before every cycle and on idle reads, so a
    draining server lets the current message finish but starts no new one.
    """

    def __init__(self, conn: socket.socket, session: ConnectionSession,
                 config: ServerConfig, sink: LogSink, policy: ThresholdPolicy,
                 coordinator: ShutdownCoordinator, metrics: ServerMetrics,
                 reporter: EventReporter):
        self._conn = conn
        self.session = session
        self._config = config
        self._sink = sink
        self._policy = policy
        self._coordinator = coordinator
        self._metrics = metrics
        self._reporter = reporter
        self._buffer = b""

    def run(self) -> SessionOutcome:
        """Serve the connection and close it on every exit path."""
        session = self.session
        self._reporter.emit(ServerEvent.CONNECTED, session.session_id, session.peer)
        try:
            with self._conn:
                self._conn.settimeout(self._config.read_timeout)
                session.outcome = self._serve()
        except Exception as exc:
            logger.exception("Unexpected error in session #%d", session.session_id)
            self._metrics.record_error()
            self._reporter.emit(ServerEvent.ERROR, session.session_id,
                                session.peer, error=exc)
            session.outcome = SessionOutcome.ERRORED

        self._reporter.emit(ServerEvent.DISCONNECTED, session.session_id,
                            session.peer, outcome=session.outcome.value,
                            messages=session.messages)
        return session.outcome

    def _serve(self) -> SessionOutcome:
        while True:
            if self._coordinator.is_draining:
                return SessionOutcome.CANCELLED

            try:
                payload = self._read_message()
            except SessionCancelled:
                return SessionOutcome.CANCELLED
            except PeerClosed:
                return SessionOutcome.PROCESSED
            except OSError as exc:
                self._metrics.record_error()
                self._reporter.emit(ServerEvent.ERROR, self.session.session_id,
                                    self.session.peer, error=f"read failed: {exc}")
                return SessionOutcome.ERRORED

            text = payload.decode("utf-8", errors="replace").strip()
            if not text:
                continue

            outcome = self._process(text)
            if outcome is not None:
                return outcome
            if not self._config.persistent_connections:
                return SessionOutcome.PROCESSED

    def _read_message(self) -> bytes:
        """Return the next message, at most buffer_size bytes.

        Raises PeerClosed on EOF with nothing buffered, and SessionCancelled
        if the server starts draining while the connection is idle.
        """
        limit = self._config.buffer_size
        while LINE_TERMINATOR not in self._buffer and len(self._buffer) < limit:
            try:
                chunk = self._conn.recv(limit)
            except socket.timeout:
                # A partial line left idle is dropped once draining starts
                if self._coordinator.is_draining:
                    raise SessionCancelled()
                continue
            if not chunk:
                if self._buffer:
                    break
                raise PeerClosed()
            self._buffer += chunk

        line, sep, rest = self._buffer.partition(LINE_TERMINATOR)
        if not sep or len(line) > limit:
            line, rest = self._buffer[:limit], self._buffer[limit:]
        self._buffer = rest
        return line

    def _process(self, text: str) -> SessionOutcome | None:
        """Append one message and reply. Returns an outcome if the session ends."""
        session = self.session
        data = encode_record(format_record(session.session_id, session.peer, text))
        try:
            size = self._sink.append(data)
        except SinkWriteError as exc:
            self._metrics.record_error()
            self._reporter.emit(ServerEvent.ERROR, session.session_id,
                                session.peer, error=exc)
            return SessionOutcome.ERRORED

        session.messages += 1
        self._metrics.record_message(len(data))
        self._reporter.emit(ServerEvent.PROCESSED, session.session_id,
                            session.peer, size=size)

        if self._policy.reached(size):
            if self._coordinator.try_trigger("log size limit reached"):
                self._reporter.emit(ServerEvent.THRESHOLD_REACHED,
                                    session.session_id, session.peer,
                                    size=size, limit=self._policy.limit_bytes)
            self._reply(SHUTDOWN_NOTICE)
            return SessionOutcome.SHUTDOWN_NOTIFIED

        if not self._reply(ACK):
            return SessionOutcome.PROCESSED
        return None

    def _reply(self, token: str) -> bool:
        try:
            self._conn.sendall(encode_reply(token))
        except OSError as exc:
            logger.debug("Reply to session #%d failed: %s",
                         self.session.session_id, exc)
            return False
        return True
