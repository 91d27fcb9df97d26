"""In-process job counters and stage timings.

The pipeline counts finished and failed jobs and times each stage. Nothing is
exported; tests and interactive sessions read `metrics.snapshot()`.
"""

from __future__ import annotations

import time
from collections import Counter, defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock
from typing import Any


class PipelineMetrics:
    def __init__(self) -> None:
        self._lock = Lock()
        self._counts: Counter[str] = Counter()
        self._durations: defaultdict[str, list[float]] = defaultdict(list)

    def inc(self, key: str, amount: int = 1) -> None:
        with self._lock:
            self._counts[key] += amount

    def count(self, key: str) -> int:
        with self._lock:
            return self._counts[key]

    @contextmanager
    def timed(self, stage: str) -> Iterator[None]:
        """Record the wall time of the block under `stage`, even when it raises."""
        t0 = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - t0
            with self._lock:
                self._durations[stage].append(elapsed)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": {k: v for k, v in self._counts.items() if v},
                "timings": {stage: list(d) for stage, d in self._durations.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counts = Counter()
            self._durations = defaultdict(list)


metrics = PipelineMetrics()
