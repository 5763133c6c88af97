"""Thread-safe append-only log sink with a size threshold."""

import logging
import os
import threading
from dataclasses import dataclass

from logserver.errors import SinkWriteError
from logserver.protocol import LINE_TERMINATOR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThresholdPolicy:
    """Maximum log size in bytes. A limit of 0 never triggers."""

    limit_bytes: int = 0

    def __post_init__(self):
        if self.limit_bytes < 0:
            raise ValueError("limit_bytes must be non-negative")

    @property
    def enabled(self) -> bool:
        return self.limit_bytes > 0

    def reached(self, size: int) -> bool:
        """Return True if a log of `size` bytes is at or over the limit."""
        return self.enabled and size >= self.limit_bytes


def encode_record(record) -> bytes:
    """Encode a record as one terminated line. Accepts str or bytes."""
    if isinstance(record, str):
        record = record.encode("utf-8")
    if not record:
        raise ValueError("record must be non-empty")
    if not record.endswith(LINE_TERMINATOR):
        record += LINE_TERMINATOR
    return record


class LogSink:
    """Append-only file writer. One append is in flight at a time."""

    def __init__(self, path: str):
        self._path = path
        self._lock = threading.Lock()

        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._file = open(path, "ab", buffering=0)
        self._size = os.fstat(self._file.fileno()).st_size

    @property
    def path(self) -> str:
        return self._path

    @property
    def size(self) -> int:
        """Size in bytes after the last committed append."""
        with self._lock:
            return self._size

    @property
    def closed(self) -> bool:
        return self._file is None

    def append(self, record) -> int:
        """Append one record and return the file size right after it.

        Raises SinkWriteError if the write fails or the sink is closed. A
        failed append leaves the file and the reported size unchanged.
        """
        data = encode_record(record)
        with self._lock:
            if self._file is None:
                raise SinkWriteError(f"log sink {self._path} is closed")
            try:
                self._write_all(data)
                size = os.fstat(self._file.fileno()).st_size
            except OSError as exc:
                self._rollback()
                raise SinkWriteError(
                    f"append to {self._path} failed: {exc}"
                ) from exc
            self._size = size
            return size

    def _write_all(self, data: bytes):
        view = memoryview(data)
        while view:
            written = self._file.write(view)
            view = view[written:]

    def _rollback(self):
        """Cut off any bytes a failed append left behind."""
        try:
            os.ftruncate(self._file.fileno(), self._size)
        except OSError as exc:
            logger.error("Could not roll back %s to %d bytes: %s",
                         self._path, self._size, exc)

    def close(self):
        """Close the file handle."""
        with self._lock:
            if self._file is not None:
                try:
                    self._file.close()
                except OSError as exc:
                    logger.warning("Closing %s failed: %s", self._path, exc)
                self._file = None
