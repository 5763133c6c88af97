"""Tests for the log sink and threshold policy."""

import os
import threading

import pytest

from logserver.errors import SinkWriteError
from logserver.sink import LogSink, ThresholdPolicy, encode_record


class TestThresholdPolicy:
    def test_zero_never_triggers(self):
        policy = ThresholdPolicy(0)
        assert policy.enabled is False
        assert policy.reached(10**9) is False

    def test_reached_at_limit(self):
        policy = ThresholdPolicy(50)
        assert policy.reached(49) is False
        assert policy.reached(50) is True
        assert policy.reached(90) is True

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            ThresholdPolicy(-1)

    def test_frozen(self):
        policy = ThresholdPolicy(10)
        with pytest.raises(AttributeError):
            policy.limit_bytes = 20


class TestEncodeRecord:
    def test_adds_terminator(self):
        assert encode_record("hello") == b"hello\n"

    def test_keeps_existing_terminator(self):
        assert encode_record(b"hello\n") == b"hello\n"

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            encode_record("")


class TestAppend:
    def test_creates_directory_and_file(self, tmp_path):
        path = str(tmp_path / "nested" / "dir" / "central.log")
        sink = LogSink(path)
        assert os.path.isfile(path)
        sink.close()

    def test_returns_size_after_append(self, tmp_path):
        sink = LogSink(str(tmp_path / "central.log"))
        assert sink.append("abc") == 4
        assert sink.append("defgh") == 10
        assert sink.size == 10
        sink.close()

    def test_content_is_one_line_per_record(self, tmp_path):
        path = str(tmp_path / "central.log")
        sink = LogSink(path)
        sink.append("first")
        sink.append("second")
        sink.close()

        with open(path) as f:
            assert f.read().splitlines() == ["first", "second"]

    def test_existing_file_size_is_picked_up(self, tmp_path):
        path = tmp_path / "central.log"
        path.write_bytes(b"x" * 25)
        sink = LogSink(str(path))
        assert sink.size == 25
        assert sink.append("y") == 27
        sink.close()

    def test_same_record_twice_is_two_lines(self, tmp_path):
        path = str(tmp_path / "central.log")
        sink = LogSink(path)
        sink.append("dup")
        sink.append("dup")
        sink.close()
        with open(path) as f:
            assert f.read() == "dup\ndup\n"


class TestAppendFailure:
    def test_append_after_close_raises(self, tmp_path):
        sink = LogSink(str(tmp_path / "central.log"))
        sink.close()
        assert sink.closed is True
        with pytest.raises(SinkWriteError):
            sink.append("late")

    def test_close_twice_is_safe(self, tmp_path):
        sink = LogSink(str(tmp_path / "central.log"))
        sink.close()
        sink.close()

    def test_os_error_wrapped_and_size_unchanged(self, tmp_path, monkeypatch):
        path = tmp_path / "central.log"
        sink = LogSink(str(path))
        sink.append("ok")
        monkeypatch.setattr(sink, "_file", _FullDisk(sink._file))
        with pytest.raises(SinkWriteError, match="No space left"):
            sink.append("lost")
        assert sink.size == 3
        assert path.read_bytes() == b"ok\n"
        sink.close()

    def test_failed_record_never_reaches_disk(self, tmp_path, monkeypatch):
        """A record cut short by a full disk is gone after the next append."""
        path = tmp_path / "central.log"
        sink = LogSink(str(path))
        sink.append("first")
        monkeypatch.setattr(sink, "_file", _FullDisk(sink._file, fail_after=7))
        with pytest.raises(SinkWriteError):
            sink.append("FAILED-RECORD")

        assert sink.append("good") == len(b"first\ngood\n")
        sink.close()
        assert path.read_bytes() == b"first\ngood\n"


class _FullDisk:
    """Wraps the sink's file. Writes `fail_after` bytes, then fails once."""

    def __init__(self, real, fail_after=0):
        self._real = real
        self._budget = fail_after
        self._failed = False

    def write(self, data):
        if self._failed:
            return self._real.write(data)
        if self._budget:
            written = self._real.write(bytes(data[:self._budget]))
            self._budget -= written
            return written
        self._failed = True
        raise OSError(28, "No space left on device")

    def fileno(self):
        return self._real.fileno()

    def close(self):
        self._real.close()


class TestConcurrentAppends:
    def test_final_size_is_sum_of_records(self, tmp_path):
        """8 threads x 100 records, no lost or interleaved writes."""
        path = str(tmp_path / "central.log")
        sink = LogSink(path)
        records = {
            t: [f"thread-{t}-record-{i}-" + "z" * (t * 3) for i in range(100)]
            for t in range(8)
        }
        sizes = []
        sizes_lock = threading.Lock()
        barrier = threading.Barrier(8)

        def writer(thread_id):
            barrier.wait()
            for rec in records[thread_id]:
                size = sink.append(rec)
                with sizes_lock:
                    sizes.append(size)

        threads = [threading.Thread(target=writer, args=(t,)) for t in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        sink.close()

        expected = sum(len(r) + 1 for recs in records.values() for r in recs)
        assert os.path.getsize(path) == expected
        # Every append saw a distinct size, and the largest is the final one
        assert len(set(sizes)) == 800
        assert max(sizes) == expected

        with open(path) as f:
            lines = f.read().splitlines()
        assert sorted(lines) == sorted(r for recs in records.values() for r in recs)
