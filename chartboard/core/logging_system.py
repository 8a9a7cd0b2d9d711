"""
Operation metrics for the dashboard

Counters for remote settings loads and timers for chart fetches, with one
log line per timed operation on the ``chartboard.operations`` logger.
"""

import logging
import time
import threading
from typing import Dict, List, Optional
from contextlib import contextmanager
from collections import defaultdict, deque


class MetricsCollector:
    """Tagged counters and timers, safe to update from worker threads"""

    def __init__(self, timer_window: int = 1000):
        self.timer_window = timer_window
        self.counters: Dict[str, float] = defaultdict(float)
        self.timers: Dict[str, deque] = {}
        self.lock = threading.Lock()

    def increment_counter(self, name: str, value: float = 1.0, tags: Optional[Dict[str, str]] = None):
        with self.lock:
            self.counters[self._make_key(name, tags)] += value

    def record_timer(self, name: str, duration_ms: float, tags: Optional[Dict[str, str]] = None):
        """Record a duration; only the latest ``timer_window`` values are kept."""
        key = self._make_key(name, tags)
        with self.lock:
            if key not in self.timers:
                self.timers[key] = deque(maxlen=self.timer_window)
            self.timers[key].append(duration_ms)

    def get_counter_value(self, name: str, tags: Optional[Dict[str, str]] = None) -> float:
        return self.counters.get(self._make_key(name, tags), 0.0)

    def get_timer_stats(self, name: str, tags: Optional[Dict[str, str]] = None) -> Dict[str, float]:
        with self.lock:
            values: List[float] = sorted(self.timers.get(self._make_key(name, tags), ()))
        if not values:
            return {"count": 0, "min": 0, "max": 0, "avg": 0, "p95": 0}

        count = len(values)
        return {
            "count": count,
            "min": values[0],
            "max": values[-1],
            "avg": sum(values) / count,
            "p95": values[min(int(count * 0.95), count - 1)]
        }

    def reset(self):
        with self.lock:
            self.counters.clear()
            self.timers.clear()

    def _make_key(self, name: str, tags: Optional[Dict[str, str]] = None) -> str:
        if not tags:
            return name
        tag_str = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
        return f"{name}:{tag_str}"


class PerformanceMonitor:
    """Times operations into a MetricsCollector and logs their outcome"""

    def __init__(self, metrics: MetricsCollector, logger: Optional[logging.Logger] = None):
        self.metrics = metrics
        self.logger = logger or logging.getLogger("chartboard.operations")

    @contextmanager
    def timer(self, operation: str, component: str = "unknown", **tags):
        """Time the enclosed block, which may contain awaits.

        Success records ``<component>.<operation>.duration``; an exception
        increments ``<component>.<operation>.errors`` and is re-raised.
        """
        start = time.perf_counter()
        prefix = f"[{component}:{operation}]"
        try:
            yield
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            self.metrics.increment_counter(
                f"{component}.{operation}.errors",
                tags={**tags, "error_type": type(e).__name__}
            )
            self.logger.warning(
                f"{prefix} failed after {duration_ms:.1f} ms: {e}",
                extra={"duration_ms": duration_ms, "tags": tags, "status": "error"}
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        self.metrics.record_timer(f"{component}.{operation}.duration", duration_ms, tags)
        self.logger.debug(
            f"{prefix} completed in {duration_ms:.1f} ms",
            extra={"duration_ms": duration_ms, "tags": tags, "status": "success"}
        )


class LoggingSystem:
    """Pairs a metrics collector with the monitor that feeds it"""

    def __init__(self, timer_window: int = 1000):
        self.metrics = MetricsCollector(timer_window=timer_window)
        self.monitor = PerformanceMonitor(self.metrics)

    def get_metrics(self) -> MetricsCollector:
        return self.metrics

    def get_monitor(self) -> PerformanceMonitor:
        return self.monitor


# Process-wide instance used when no collaborator is injected
logging_system = LoggingSystem()


def get_metrics() -> MetricsCollector:
    return logging_system.get_metrics()


def get_monitor() -> PerformanceMonitor:
    return logging_system.get_monitor()
