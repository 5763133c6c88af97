"""Runs a pool of client workers against the log server."""

import logging
import threading
from collections import Counter

from logclient.config import ClientConfig
from logclient.tracker import LatencyStats
from logclient.worker import ClientWorker, WorkerOutcome

logger = logging.getLogger(__name__)


class LoadGenerator:
    def __init__(self, config: ClientConfig):
        self.config = config
        self.stats = LatencyStats()
        self._stop_event = threading.Event()
        self.outcomes: dict[str, WorkerOutcome] = {}
        self._lock = threading.Lock()

    def stop(self):
        """Ask every worker to stop after its current message."""
        self._stop_event.set()

    def run(self) -> dict:
        """Run all workers to completion and return the summary."""
        workers = [
            ClientWorker(i + 1, self.config, self._stop_event, self.stats)
            for i in range(self.config.workers)
        ]
        threads = [
            threading.Thread(target=self._run_worker, args=(w,),
                             name=f"worker-{w.name}", daemon=True)
            for w in workers
        ]

        self.stats.start()
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.stats.stop()

        summary = self.stats.summary()
        counts = Counter(outcome.value for outcome in self.outcomes.values())
        summary["workers"] = len(workers)
        summary["outcomes"] = dict(counts)
        self._print_summary(summary)
        return summary

    def _run_worker(self, worker: ClientWorker):
        try:
            outcome = worker.run()
        except Exception:
            logger.exception("Worker %s crashed", worker.name)
            outcome = WorkerOutcome.STOPPED

        with self._lock:
            self.outcomes[worker.name] = outcome
        # One shutdown notice ends the whole run
        if outcome is WorkerOutcome.SHUTDOWN_RECEIVED:
            self._stop_event.set()

    def _print_summary(self, summary: dict):
        logger.info("=" * 60)
        logger.info("CLIENT RESULTS")
        logger.info("=" * 60)
        logger.info("  Workers:        %d", summary["workers"])
        logger.info("  Total Sent:     %d", summary["total_sent"])
        logger.info("  OK Replies:     %d", summary["total_ok"])
        logger.info("  Shutdowns:      %d", summary["total_shutdown"])
        logger.info("  Failed:         %d", summary["total_failed"])
        logger.info("  Duration:       %.3fs", summary["duration_secs"])
        logger.info("  Latency Avg:    %.3fms", summary["latency_avg_ms"])
        logger.info("  Latency P95:    %.3fms", summary["latency_p95_ms"])
        logger.info("  Outcomes:       %s", summary["outcomes"])
        logger.info("=" * 60)
