"""Phase timing metrics."""

import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List


class MetricsCollector:
    """Collects wall-clock durations of the job phases."""

    def __init__(self):
        self._start_time = time.monotonic()
        self._timers: Dict[str, float] = {}
        self._metrics: Dict[str, List[Any]] = defaultdict(list)
        self._order: List[str] = []

    def start_timer(self, name: str) -> None:
        """Start a named timer."""
        self._timers[name] = time.monotonic()

    def stop_timer(self, name: str) -> float:
        """
        Stop a named timer and return elapsed time.

        Raises:
            KeyError: If timer was not started
        """
        if name not in self._timers:
            raise KeyError(f"Timer '{name}' was not started")

        elapsed = time.monotonic() - self._timers.pop(name)
        self.record_metric(f"{name}_duration", elapsed)
        if name not in self._order:
            self._order.append(name)
        return elapsed

    @contextmanager
    def timed(self, name: str) -> Iterator[None]:
        """Time the enclosed block, recording it even if it raises."""
        self.start_timer(name)
        try:
            yield
        finally:
            self.stop_timer(name)

    def record_metric(self, name: str, value: Any) -> None:
        self._metrics[name].append(value)

    def get_metric(self, name: str) -> list:
        return self._metrics.get(name, [])

    def elapsed_time(self) -> float:
        """Total elapsed time since initialization."""
        return time.monotonic() - self._start_time

    def get_summary(self) -> Dict[str, Any]:
        phases = {}
        for name in self._order:
            values = self._metrics.get(f"{name}_duration", [])
            if values:
                phases[name] = sum(values)
        return {
            "total_elapsed": self.elapsed_time(),
            "phases": phases,
        }

    def summary_lines(self) -> List[str]:
        summary = self.get_summary()
        lines = [f"{name}: {seconds:.1f}s" for name, seconds in summary["phases"].items()]
        lines.append(f"total: {summary['total_elapsed']:.1f}s")
        return lines
