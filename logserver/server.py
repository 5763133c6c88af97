"""TCP accept loop: a thread per connection, then a coordinated drain."""

import itertools
import logging
import socket
import threading

from logserver.config import ServerConfig
from logserver.coordinator import ShutdownCoordinator
from logserver.events import EventReporter
from logserver.formatter import format_peer
from logserver.handler import ConnectionHandler, ConnectionSession
from logserver.metrics import ServerMetrics
from logserver.sink import LogSink, ThresholdPolicy

logger = logging.getLogger(__name__)

ACCEPT_POLL_SECS = 0.5


class LogServer:
    """Multi-threaded TCP server that appends messages to one log file.

    `start()` blocks: it accepts until the coordinator is triggered or the
    listener is closed, then waits for every handler to finish and returns.
    """

    def __init__(self, config: ServerConfig,
                 coordinator: ShutdownCoordinator | None = None,
                 sink: LogSink | None = None,
                 reporter: EventReporter | None = None):
        self._config = config
        self.coordinator = coordinator or ShutdownCoordinator()
        self.sink = sink or LogSink(config.log_path)
        self.policy = ThresholdPolicy(config.max_log_bytes)
        self.metrics = ServerMetrics()
        self.reporter = reporter or EventReporter()
        self._session_ids = itertools.count(1)
        self._sock: socket.socket | None = None
        self._server_address = None
        self._listener_closed = threading.Event()

        self.coordinator.on_shutdown(self.stop_accepting)

    @property
    def server_address(self) -> tuple:
        """Return (host, port) the server is bound to. Useful when port=0."""
        return self._server_address

    def start(self):
        """Bind, accept until shutdown, then drain outstanding handlers."""
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.settimeout(ACCEPT_POLL_SECS)
        try:
            self._sock.bind((self._config.host, self._config.port))
            self._sock.listen(socket.SOMAXCONN)
        except OSError:
            self._sock.close()
            self._sock = None
            raise

        self._server_address = self._sock.getsockname()
        logger.info("Server listening on %s:%d (log=%s, limit=%d bytes)",
                    *self._server_address, self.sink.path,
                    self.policy.limit_bytes)
        if self.policy.reached(self.sink.size):
            logger.warning("Log %s is already at %d bytes; the first append "
                           "will trigger shutdown", self.sink.path, self.sink.size)

        try:
            self._accept_loop()
        finally:
            self._close_listener()
            self.coordinator.try_trigger("listener closed")
            self._drain()

    def stop(self):
        """Request a graceful shutdown. Returns immediately."""
        self.coordinator.try_trigger("stop requested")

    def stop_accepting(self):
        """Unblock a pending accept() by shutting the listener down."""
        self._listener_closed.set()
        if self._sock is not None:
            try:
                self._sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass

    def _accept_loop(self):
        while not self.coordinator.is_draining and not self._listener_closed.is_set():
            try:
                conn, addr = self._sock.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if self._listener_closed.is_set() or self.coordinator.is_draining:
                    logger.debug("Accept stopped: %s", exc)
                    break
                logger.warning("Accept failed: %s", exc)
                continue

            if self.coordinator.is_draining:
                conn.close()
                break
            self._spawn_handler(conn, addr)

    def _spawn_handler(self, conn: socket.socket, addr):
        session = ConnectionSession(next(self._session_ids), format_peer(addr))
        self.metrics.record_connection()
        handler = ConnectionHandler(
            conn, session, self._config, self.sink, self.policy,
            self.coordinator, self.metrics, self.reporter,
        )
        self.coordinator.handler_started()
        t = threading.Thread(
            target=self._run_handler,
            args=(handler,),
            name=f"session-{session.session_id}",
            daemon=True,
        )
        try:
            t.start()
        except RuntimeError as exc:
            logger.error("Could not start handler for session #%d: %s",
                         session.session_id, exc)
            self.metrics.record_error()
            self.coordinator.handler_finished()
            conn.close()

    def _run_handler(self, handler: ConnectionHandler):
        try:
            handler.run()
        finally:
            self.coordinator.handler_finished()

    def _close_listener(self):
        self._listener_closed.set()
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass

    def _drain(self):
        outstanding = self.coordinator.outstanding
        logger.info("Stopped accepting (%s); draining %d handler(s)",
                    self.coordinator.reason, outstanding)
        timeout = self._config.drain_timeout or None
        if not self.coordinator.await_drain(timeout):
            logger.warning("Drain timed out with %d handler(s) still running",
                           self.coordinator.outstanding)
        self.sink.close()
        logger.info("Server stopped gracefully. Stats: %s", self.metrics.snapshot())
