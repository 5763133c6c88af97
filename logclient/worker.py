"""One client worker: a connection loop that sends messages until told to stop."""

import logging
import socket
import threading
from enum import Enum

from logclient.config import ClientConfig
from logclient.tracker import LatencyStats, PerformanceTracker
from logserver.protocol import LINE_TERMINATOR, encode_message, is_shutdown_notice

logger = logging.getLogger(__name__)


class WorkerOutcome(Enum):
    SHUTDOWN_RECEIVED = "shutdown-received"
    SERVER_UNAVAILABLE = "server-unavailable"
    COMPLETED = "completed"
    STOPPED = "stopped"


class ClientWorker:
    """Sends numbered log messages over TCP and waits for each reply.

    A dropped connection gets one immediate reconnect and resend; if that
    fails too the server is treated as unavailable.
    """

    def __init__(self, worker_id: int, config: ClientConfig,
                 stop_event: threading.Event, stats: LatencyStats):
        self.name = f"{config.client_id}-{worker_id}"
        self._config = config
        self._stop = stop_event
        self._stats = stats
        self._tracker = PerformanceTracker()
        self._sock: socket.socket | None = None
        self._buffer = b""
        self.sent = 0

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def run(self) -> WorkerOutcome:
        try:
            return self._loop()
        finally:
            self.close()
            logger.info("Worker %s exited after %d message(s)", self.name, self.sent)

    def _loop(self) -> WorkerOutcome:
        count = 0
        while not self._stop.is_set():
            if self._config.message_count and count >= self._config.message_count:
                return WorkerOutcome.COMPLETED

            count += 1
            message = f"Client {self.name} log message #{count}"
            reply = self._exchange(message)
            if reply is None:
                reply = self._exchange(message)
            if reply is None:
                self._stats.record_failed()
                logger.warning("Worker %s: server unavailable", self.name)
                return WorkerOutcome.SERVER_UNAVAILABLE

            if is_shutdown_notice(reply):
                logger.info("Server requested shutdown. Worker %s stopping.", self.name)
                return WorkerOutcome.SHUTDOWN_RECEIVED

            if not self._config.keep_alive:
                self.close()
            if self._config.send_interval > 0:
                self._stop.wait(self._config.send_interval)
        return WorkerOutcome.STOPPED

    def connect(self) -> bool:
        """Open a connection to the server. Returns True on success."""
        try:
            sock = socket.create_connection(
                (self._config.server_host, self._config.server_port),
                timeout=self._config.response_timeout,
            )
        except OSError as e:
            logger.debug("Worker %s failed to connect: %s", self.name, e)
            return False
        self._sock = sock
        self._buffer = b""
        return True

    def close(self):
        if self._sock:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None
            self._buffer = b""

    def _exchange(self, message: str) -> str | None:
        """Send one message and return the reply, or None if the link failed."""
        if self._sock is None and not self.connect():
            return None

        self._tracker.start()
        try:
            self._sock.sendall(encode_message(message))
            reply = self._recv_line()
        except OSError as e:
            logger.debug("Worker %s lost connection: %s", self.name, e)
            reply = None

        if reply is None:
            self.close()
            return None

        elapsed_ms = self._tracker.elapsed_ms()
        self.sent += 1
        self._stats.record_reply(elapsed_ms, is_shutdown_notice(reply))
        logger.info("Sent: %s | Server Response: %s | Time: %.0f ms",
                    message, reply, elapsed_ms)
        return reply

    def _recv_line(self) -> str | None:
        while LINE_TERMINATOR not in self._buffer:
            chunk = self._sock.recv(self._config.buffer_size)
            if not chunk:
                return None
            self._buffer += chunk
        line, self._buffer = self._buffer.split(LINE_TERMINATOR, 1)
        return line.decode("utf-8", errors="replace").strip()
