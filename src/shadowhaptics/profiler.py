from __future__ import annotations
import time
from collections import deque
from contextlib import contextmanager

from .logging import get_logger

_profiler = None


def get_profiler():
    global _profiler
    if _profiler is None:
        _profiler = Profiler()
    return _profiler


class Profiler:
    """Wall-clock timings per named stage, smoothed with an EMA."""

    def __init__(self, ema_alpha=0.1, maxlen=100):
        self._samples = {}
        self._ema = {}
        self.ema_alpha = ema_alpha
        self.maxlen = maxlen
        self.logger = get_logger("Profiler")

    def _add(self, name: str, dt: float):
        self._samples.setdefault(name, deque(maxlen=self.maxlen)).append(dt)
        prev = self._ema.get(name)
        self._ema[name] = dt if prev is None else (
            self.ema_alpha * dt + (1.0 - self.ema_alpha) * prev
        )

    @contextmanager
    def record(self, name: str):
        start_t = time.perf_counter()
        try:
            yield
        finally:
            self._add(name, time.perf_counter() - start_t)

    def get_timings(self):
        return self._ema.copy()

    def last(self, name: str) -> float | None:
        samples = self._samples.get(name)
        return samples[-1] if samples else None

    def over_budget(self, name: str, budget: float) -> bool:
        """True when the smoothed time of `name` exceeds `budget` seconds."""
        t = self._ema.get(name)
        return t is not None and t > budget

    def log_stats(self):
        stats = [f"{k}: {v*1000:.2f}ms" for k, v in sorted(self._ema.items())]
        self.logger.info(" | ".join(stats))
