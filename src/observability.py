"""Observability: per-run counters, job timers and the run summary log event."""

import time
from contextlib import contextmanager
from typing import Any

import structlog

from sync.models import JobSummary

logger = structlog.get_logger(source="observability")

SUMMARY_COUNTERS = ("fetched", "mapped", "skipped", "created", "deleted", "unchanged")


class Metrics:
    """Process-wide counters and timers, keyed by dotted names (``created.github``)."""

    def __init__(self):
        self._counters: dict[str, int] = {}
        self._timers: dict[str, list[float]] = {}

    def counter(self, name: str, value: int = 1):
        self._counters[name] = self._counters.get(name, 0) + value

    def get(self, name: str) -> int:
        return self._counters.get(name, 0)

    @contextmanager
    def timer(self, name: str):
        """Time the enclosed block, recording its duration even if it raises."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._timers.setdefault(name, []).append(time.monotonic() - start)

    def record_job(self, summary: JobSummary):
        """Fold a job's counters into the totals and its own namespace."""
        for field_name in SUMMARY_COUNTERS:
            value = getattr(summary, field_name)
            if value:
                self.counter(field_name, value)
                self.counter(f"{field_name}.{summary.job}", value)
        if summary.errors:
            self.counter("errors", len(summary.errors))
            self.counter(f"errors.{summary.job}", len(summary.errors))

    def summary(self) -> dict[str, Any]:
        timer_summary = {}
        for name, durations in self._timers.items():
            timer_summary[name] = {
                "count": len(durations),
                "total": round(sum(durations), 3),
                "max": round(max(durations), 3),
            }
        return {
            "counters": dict(self._counters),
            "timers": timer_summary,
        }

    def reset(self):
        self._counters.clear()
        self._timers.clear()


metrics = Metrics()


def log_run_summary(jobs_run: int, jobs_failed: int):
    """Emit one ``run_summary`` event with the collected metrics."""
    logger.info("run_summary", jobs_run=jobs_run, jobs_failed=jobs_failed, **metrics.summary())
