"""Observability: in-process pipeline counters and stage timings."""

import threading
import time
from contextlib import contextmanager
from typing import Any

import structlog

logger = structlog.get_logger().bind(source="observability")


class Metrics:
    """Counters and timers keyed by dotted names (`pipeline.ai.failed`).

    Updated from the event loop and from worker threads, so writes take a lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: dict[str, int] = {}
        self._timers: dict[str, list[float]] = {}

    def counter(self, name: str, value: int = 1):
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + value

    @contextmanager
    def timer(self, name: str):
        """Record the wall time of the block, whether it succeeds or raises."""
        start = time.monotonic()
        try:
            yield
        finally:
            elapsed = time.monotonic() - start
            with self._lock:
                self._timers.setdefault(name, []).append(elapsed)

    def count(self, name: str) -> int:
        return self._counters.get(name, 0)

    def summary(self) -> dict[str, Any]:
        with self._lock:
            counters = dict(self._counters)
            timers = {name: list(d) for name, d in self._timers.items()}
        return {
            "counters": counters,
            "timers": {
                name: {
                    "count": len(d),
                    "avg": round(sum(d) / len(d), 3),
                    "max": round(max(d), 3),
                }
                for name, d in timers.items()
                if d
            },
        }

    def reset(self):
        with self._lock:
            self._counters.clear()
            self._timers.clear()


metrics = Metrics()


def log_run_summary():
    """Log what the pipeline and reconciler did during this process."""
    summary = metrics.summary()
    if summary["counters"] or summary["timers"]:
        logger.info("run_summary", **summary)
