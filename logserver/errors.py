"""Exception types raised by the log server."""


class LogServerError(Exception):
    """Base class for log server errors."""


class ConfigError(LogServerError):
    """Invalid configuration value. Fatal at startup."""


class SinkWriteError(LogServerError):
    """An append to the log file failed; the record was not written."""


class SessionCancelled(LogServerError):
    """The server is draining and the session must not start a new message."""


class PeerClosed(LogServerError):
    """The peer closed the connection (zero-byte read)."""
