"""
Rolling performance tracker.

Keeps two fixed-capacity FIFO windows, one of metrics samples and one of
optimization logs, reports averages and quality trend over them, and
mirrors both windows to a key-value store after every change. Storage is
best-effort: failures are logged and never reach the caller.
"""

import json
import logging
import time
from collections import deque
from typing import Optional, Union

from .models import OptimizationLog, PerformanceMetrics, Trend
from .storage import InMemoryStore, KeyValueStore

logger = logging.getLogger(__name__)

METRICS_KEY = "performance_metrics"
LOGS_KEY = "optimization_logs"
MAX_HISTORY = 100


def _now_ms() -> float:
    return time.time() * 1000


class PerformanceTracker:
    """
    Record metrics samples and optimization logs over rolling windows.

    Not thread-safe; a single orchestrator is expected to drive it.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        max_history: int = MAX_HISTORY,
        trend_window: int = 5,
        trend_threshold: float = 2.0,
    ):
        """
        Initialize the tracker.

        Args:
            store: Key-value store mirrored after every change. Defaults to
                an in-memory store.
            max_history: Capacity of each window.
            trend_window: Samples per group compared by the trend check.
            trend_threshold: Mean-difference needed for a non-stable trend.
        """
        if max_history < 1:
            raise ValueError(f"max_history must be >= 1, got {max_history}")
        self.store = store if store is not None else InMemoryStore()
        self.max_history = max_history
        self.trend_window = trend_window
        self.trend_threshold = trend_threshold
        self._metrics: deque[PerformanceMetrics] = deque(maxlen=max_history)
        self._logs: deque[OptimizationLog] = deque(maxlen=max_history)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_metrics(self, metrics: PerformanceMetrics) -> None:
        """Append a metrics sample, evicting the oldest past capacity."""
        if metrics.timestamp is None:
            metrics = PerformanceMetrics(
                optimization_speed=metrics.optimization_speed,
                content_quality_score=metrics.content_quality_score,
                internal_link_density=metrics.internal_link_density,
                semantic_richness=metrics.semantic_richness,
                aeo_score=metrics.aeo_score,
                timestamp=_now_ms(),
            )
        self._metrics.append(metrics)
        self.persist()

    def record_optimization(self, log: OptimizationLog) -> None:
        """Append an optimization log entry, evicting the oldest past capacity."""
        self._logs.append(log)
        self.persist()

    def record(self, entry: Union[PerformanceMetrics, OptimizationLog]) -> None:
        """Record a metrics sample or a log entry."""
        if isinstance(entry, PerformanceMetrics):
            self.record_metrics(entry)
        elif isinstance(entry, OptimizationLog):
            self.record_optimization(entry)
        else:
            raise TypeError(f"Cannot record {type(entry).__name__}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def metrics(self) -> list[PerformanceMetrics]:
        return list(self._metrics)

    @property
    def logs(self) -> list[OptimizationLog]:
        return list(self._logs)

    def get_recent_metrics(self, count: int = 10) -> list[PerformanceMetrics]:
        if count <= 0:
            return []
        return list(self._metrics)[-count:]

    def get_recent_logs(self, count: int = 20) -> list[OptimizationLog]:
        if count <= 0:
            return []
        return list(self._logs)[-count:]

    def get_average_metrics(self) -> Optional[PerformanceMetrics]:
        """Mean of every retained sample, None when the window is empty."""
        if not self._metrics:
            return None

        count = len(self._metrics)
        return PerformanceMetrics(
            optimization_speed=sum(m.optimization_speed for m in self._metrics) / count,
            content_quality_score=sum(m.content_quality_score for m in self._metrics) / count,
            internal_link_density=sum(m.internal_link_density for m in self._metrics) / count,
            semantic_richness=sum(m.semantic_richness for m in self._metrics) / count,
            aeo_score=sum(m.aeo_score for m in self._metrics) / count,
            timestamp=self._metrics[-1].timestamp,
        )

    def get_performance_trend(self) -> Trend:
        """
        Compare mean quality of the newest samples with the group before.

        Needs at least ``trend_window`` samples and a non-empty older group,
        otherwise the trend is stable.
        """
        window = self.trend_window
        samples = list(self._metrics)
        if len(samples) < window:
            return Trend.STABLE

        recent = samples[-window:]
        older = samples[-2 * window:-window]
        if not older:
            return Trend.STABLE

        recent_avg = sum(m.content_quality_score for m in recent) / len(recent)
        older_avg = sum(m.content_quality_score for m in older) / len(older)
        diff = recent_avg - older_avg

        if diff > self.trend_threshold:
            return Trend.IMPROVING
        if diff < -self.trend_threshold:
            return Trend.DECLINING
        return Trend.STABLE

    def get_total_optimizations(self) -> int:
        return len(self._logs)

    def get_average_improvement(self) -> float:
        """Mean of (after - before) over retained logs, 0 when empty."""
        if not self._logs:
            return 0.0
        return sum(log.improvement for log in self._logs) / len(self._logs)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def persist(self) -> bool:
        """
        Write both windows to the store.

        Returns:
            True on success, False if the store failed (the error is logged).
        """
        try:
            self.store.set(METRICS_KEY, json.dumps([m.to_dict() for m in self._metrics]))
            self.store.set(LOGS_KEY, json.dumps([log.to_dict() for log in self._logs]))
        except Exception as e:
            logger.error(f"Failed to save performance data: {e}")
            return False
        return True

    def restore(self) -> bool:
        """
        Load both windows from the store, replacing the in-memory ones.

        Missing keys read as empty windows. Malformed records are skipped.

        Returns:
            True on success, False if the store failed (the error is logged).
        """
        try:
            metrics_data = self.store.get(METRICS_KEY)
            logs_data = self.store.get(LOGS_KEY)
            metrics = self._parse_records(metrics_data, PerformanceMetrics.from_dict, METRICS_KEY)
            logs = self._parse_records(logs_data, OptimizationLog.from_dict, LOGS_KEY)
        except Exception as e:
            logger.error(f"Failed to load performance data: {e}")
            return False

        self._metrics = deque(metrics, maxlen=self.max_history)
        self._logs = deque(logs, maxlen=self.max_history)
        return True

    @staticmethod
    def _parse_records(blob: Optional[str], parse, key: str) -> list:
        if not blob:
            return []

        raw = json.loads(blob)
        if not isinstance(raw, list):
            raise ValueError(f"{key} must hold a list, got {type(raw).__name__}")

        records = []
        for item in raw:
            try:
                records.append(parse(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed {key} record: {e}")
        return records

    def clear(self) -> None:
        """Empty both windows and remove them from the store."""
        self._metrics.clear()
        self._logs.clear()
        try:
            self.store.delete(METRICS_KEY)
            self.store.delete(LOGS_KEY)
        except Exception as e:
            logger.error(f"Failed to clear performance data: {e}")
