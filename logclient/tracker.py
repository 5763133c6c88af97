"""Per-message stopwatch and aggregated latency statistics."""

import threading
import time


class PerformanceTracker:
    """Stopwatch for one request/response round trip."""

    def __init__(self):
        self._start = 0.0

    def start(self):
        self._start = time.monotonic()

    def elapsed_ms(self) -> float:
        return (time.monotonic() - self._start) * 1000


def percentile(data: list[float], p: float) -> float:
    """Linear-interpolated percentile of already sorted data."""
    if not data:
        return 0.0
    k = (len(data) - 1) * (p / 100.0)
    f = int(k)
    c = f + 1
    if c >= len(data):
        return data[-1]
    return data[f] + (k - f) * (data[c] - data[f])


class LatencyStats:
    """Thread-safe counters shared by all client workers."""

    def __init__(self):
        self._lock = threading.Lock()
        self._latencies: list[float] = []
        self._acknowledged = 0
        self._shutdown_notices = 0
        self._failed = 0
        self.start_time = 0.0
        self.end_time = 0.0

    def start(self):
        self.start_time = time.monotonic()

    def stop(self):
        self.end_time = time.monotonic()

    def record_reply(self, latency_ms: float, shutdown: bool):
        with self._lock:
            self._latencies.append(latency_ms)
            if shutdown:
                self._shutdown_notices += 1
            else:
                self._acknowledged += 1

    def record_failed(self):
        with self._lock:
            self._failed += 1

    def summary(self) -> dict:
        duration = max(self.end_time - self.start_time, 0.001)
        with self._lock:
            latencies = sorted(self._latencies)
            acknowledged = self._acknowledged
            shutdown_notices = self._shutdown_notices
            failed = self._failed

        replies = len(latencies)
        return {
            "total_sent": replies + failed,
            "total_ok": acknowledged,
            "total_shutdown": shutdown_notices,
            "total_failed": failed,
            "duration_secs": round(duration, 3),
            "actual_rps": replies / duration,
            "latency_avg_ms": round(sum(latencies) / replies, 3) if replies else 0.0,
            "latency_min_ms": round(latencies[0], 3) if replies else 0.0,
            "latency_max_ms": round(latencies[-1], 3) if replies else 0.0,
            "latency_p50_ms": round(percentile(latencies, 50), 3),
            "latency_p95_ms": round(percentile(latencies, 95), 3),
            "latency_p99_ms": round(percentile(latencies, 99), 3),
        }
