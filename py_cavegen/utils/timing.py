"""Lightweight profiling for generation stages."""

import time

import structlog

logger = structlog.get_logger()


class Stopwatch:
    """
    Time consecutive stages of a pipeline.

    Each call to query logs the time since the previous query (or since the
    stopwatch started) and restarts the clock.
    """

    def __init__(self):
        self._start = time.perf_counter()
        self.total = 0.0

    def query(self, stage: str, **context) -> float:
        """Log the elapsed time for a stage and restart. Returns seconds elapsed."""
        now = time.perf_counter()
        elapsed = now - self._start
        self._start = now
        self.total += elapsed
        logger.debug("Stage complete", stage=stage, seconds=round(elapsed, 4), **context)
        return elapsed
