"""
Performance Monitoring
=======================

Loop rate and per-stage timing for the detection and render loops.
"""

import logging
import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Deque, Dict, Optional

logger = logging.getLogger(__name__)


class Timer:
    """
    High-precision timer for measuring code execution time.

    Example:
        >>> with Timer("inference") as t:
        ...     detector.detect(frame)
        >>> print(f"Took {t.elapsed_ms:.2f}ms")
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._start_time: Optional[float] = None
        self._end_time: Optional[float] = None
        self._elapsed: float = 0.0

    def start(self) -> "Timer":
        """Start the timer."""
        self._start_time = time.perf_counter()
        self._end_time = None
        return self

    def stop(self) -> float:
        """Stop the timer and return elapsed time in seconds."""
        self._end_time = time.perf_counter()
        if self._start_time is not None:
            self._elapsed = self._end_time - self._start_time
        return self._elapsed

    @property
    def elapsed(self) -> float:
        """Elapsed seconds; still counting if the timer has not stopped."""
        if self._start_time is None:
            return 0.0
        if self._end_time is None:
            return time.perf_counter() - self._start_time
        return self._elapsed

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False


@dataclass
class LoopMetrics:
    """Snapshot of one loop's timing."""
    rate_hz: float = 0.0
    tick_time_ms: float = 0.0
    total_ticks: int = 0
    overruns: int = 0


class PerformanceMonitor:
    """
    Rolling rate and per-stage timing for one periodic loop.

    The rate is measured between successive `tick()` calls, so it reflects
    how often the loop actually runs (detection may legitimately run slower
    than rendering).

    Example:
        >>> monitor = PerformanceMonitor("render", target_hz=60)
        >>> while running:
        ...     with monitor.measure("update"):
        ...         pipeline.render_tick()
        ...     monitor.tick()
    """

    def __init__(self, name: str = "loop", target_hz: float = 30.0, window_size: int = 30):
        self.name = name
        self.target_hz = target_hz
        self.window_size = window_size
        self._intervals: Deque[float] = deque(maxlen=window_size)
        self._stage_times: Dict[str, Deque[float]] = {}
        self._last_tick: Optional[float] = None
        self._total_ticks = 0
        self._overruns = 0
        self._lock = threading.Lock()

    def tick(self, now: Optional[float] = None) -> None:
        """Record one loop iteration."""
        now = time.perf_counter() if now is None else now
        with self._lock:
            if self._last_tick is not None:
                interval = now - self._last_tick
                self._intervals.append(interval)
                if self.target_hz > 0 and interval > 1.5 / self.target_hz:
                    self._overruns += 1
            self._last_tick = now
            self._total_ticks += 1

    @contextmanager
    def measure(self, stage: str):
        """Context manager to time a stage of the loop body."""
        timer = Timer(stage).start()
        try:
            yield timer
        finally:
            elapsed = timer.stop()
            with self._lock:
                if stage not in self._stage_times:
                    self._stage_times[stage] = deque(maxlen=self.window_size)
                self._stage_times[stage].append(elapsed)

    @property
    def rate_hz(self) -> float:
        """Rolling average iterations per second."""
        with self._lock:
            if not self._intervals:
                return 0.0
            avg = sum(self._intervals) / len(self._intervals)
            return 1.0 / avg if avg > 0 else 0.0

    def stage_time_ms(self, stage: str) -> float:
        """Average time for a stage in milliseconds."""
        with self._lock:
            times = self._stage_times.get(stage)
            if not times:
                return 0.0
            return (sum(times) / len(times)) * 1000

    def get_metrics(self, stage: Optional[str] = None) -> LoopMetrics:
        with self._lock:
            total, overruns = self._total_ticks, self._overruns
        return LoopMetrics(
            rate_hz=self.rate_hz,
            tick_time_ms=self.stage_time_ms(stage) if stage else 0.0,
            total_ticks=total,
            overruns=overruns,
        )

    def get_report(self) -> str:
        """One-line summary for logs."""
        metrics = self.get_metrics()
        stages = ", ".join(
            f"{stage}={self.stage_time_ms(stage):.2f}ms" for stage in sorted(self._stage_times)
        )
        return (f"{self.name}: {metrics.rate_hz:.1f}Hz (target {self.target_hz:.0f}), "
                f"ticks={metrics.total_ticks}, overruns={metrics.overruns}"
                + (f", {stages}" if stages else ""))
