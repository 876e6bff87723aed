"""
Metrics Collection for dynconf

Thread-safe counters, gauges and histograms for refresh cycles, change
notifications and flag evaluations.
"""

import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any, Dict, List, Optional, Union


class MetricType(Enum):
    """Types of metrics supported"""
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


@dataclass
class MetricValue:
    """A metric reading with its labels"""
    value: Union[int, float, Dict[str, Any]]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    labels: Dict[str, str] = field(default_factory=dict)


def _label_key(labels: Optional[Dict[str, str]] = None) -> str:
    if not labels:
        return ""
    return "|".join(f"{k}={v}" for k, v in sorted(labels.items()))


class Metric(ABC):
    """Abstract base class for all metrics"""

    def __init__(self, name: str, description: str, labels: Optional[List[str]] = None):
        self.name = name
        self.description = description
        self.labels = labels or []
        self._lock = Lock()

    @abstractmethod
    def get_value(self, labels: Optional[Dict[str, str]] = None) -> MetricValue:
        pass

    @abstractmethod
    def get_type(self) -> MetricType:
        pass


class Counter(Metric):
    """Counter metric that only increases"""

    def __init__(self, name: str, description: str, labels: Optional[List[str]] = None):
        super().__init__(name, description, labels)
        self._values: Dict[str, float] = defaultdict(float)

    def increment(self, amount: float = 1.0, labels: Optional[Dict[str, str]] = None) -> None:
        if amount < 0:
            raise ValueError("Counter can only be incremented with positive values")
        key = _label_key(labels)
        with self._lock:
            self._values[key] += amount

    def get_value(self, labels: Optional[Dict[str, str]] = None) -> MetricValue:
        key = _label_key(labels)
        with self._lock:
            value = self._values.get(key, 0.0)
        return MetricValue(value=value, labels=labels or {})

    def get_type(self) -> MetricType:
        return MetricType.COUNTER


class Gauge(Metric):
    """Gauge metric that can increase or decrease"""

    def __init__(self, name: str, description: str, labels: Optional[List[str]] = None):
        super().__init__(name, description, labels)
        self._values: Dict[str, float] = defaultdict(float)

    def set(self, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        key = _label_key(labels)
        with self._lock:
            self._values[key] = value

    def get_value(self, labels: Optional[Dict[str, str]] = None) -> MetricValue:
        key = _label_key(labels)
        with self._lock:
            value = self._values.get(key, 0.0)
        return MetricValue(value=value, labels=labels or {})

    def get_type(self) -> MetricType:
        return MetricType.GAUGE


class Histogram(Metric):
    """Histogram metric for tracking value distributions"""

    DEFAULT_BUCKETS = [0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float('inf')]

    def __init__(self, name: str, description: str, buckets: Optional[List[float]] = None, labels: Optional[List[str]] = None):
        super().__init__(name, description, labels)
        self.buckets = buckets or list(self.DEFAULT_BUCKETS)
        self._bucket_counts: Dict[str, Dict[float, int]] = defaultdict(lambda: defaultdict(int))
        self._sums: Dict[str, float] = defaultdict(float)
        self._counts: Dict[str, int] = defaultdict(int)

    def observe(self, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        key = _label_key(labels)
        with self._lock:
            self._sums[key] += value
            self._counts[key] += 1
            for bucket in self.buckets:
                if value <= bucket:
                    self._bucket_counts[key][bucket] += 1

    def time(self, labels: Optional[Dict[str, str]] = None) -> 'Timer':
        return Timer(self, labels)

    def get_value(self, labels: Optional[Dict[str, str]] = None) -> MetricValue:
        key = _label_key(labels)
        with self._lock:
            value = {
                'count': self._counts.get(key, 0),
                'sum': self._sums.get(key, 0.0),
                'buckets': dict(self._bucket_counts.get(key, {}))
            }
        return MetricValue(value=value, labels=labels or {})

    def get_type(self) -> MetricType:
        return MetricType.HISTOGRAM


class Timer:
    """Context manager for timing operations into a histogram"""

    def __init__(self, histogram: Histogram, labels: Optional[Dict[str, str]] = None):
        self.histogram = histogram
        self.labels = labels
        self.start_time: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            self.histogram.observe(time.perf_counter() - self.start_time, self.labels)


class MetricsCollector:
    """Registry of named metrics; metrics are created on first use."""

    def __init__(self):
        self._metrics: Dict[str, Metric] = {}
        self._lock = Lock()

    def _get_or_create(self, name: str, factory) -> Metric:
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = factory()
                self._metrics[name] = metric
            return metric

    def counter(self, name: str, description: str = "", labels: Optional[List[str]] = None) -> Counter:
        return self._get_or_create(name, lambda: Counter(name, description, labels))

    def gauge(self, name: str, description: str = "", labels: Optional[List[str]] = None) -> Gauge:
        return self._get_or_create(name, lambda: Gauge(name, description, labels))

    def histogram(self, name: str, description: str = "", buckets: Optional[List[float]] = None) -> Histogram:
        return self._get_or_create(name, lambda: Histogram(name, description, buckets))

    def get_metric(self, name: str) -> Optional[Metric]:
        with self._lock:
            return self._metrics.get(name)

    def get_all_metrics(self) -> Dict[str, Metric]:
        with self._lock:
            return dict(self._metrics)

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()


# Names shared by the components that record them
REFRESH_TOTAL = "config_refresh_total"
REFRESH_DURATION = "config_refresh_duration_seconds"
CHANGES_TOTAL = "config_changes_total"
LISTENER_FAILURES_TOTAL = "config_listener_failures_total"
LISTENERS_REGISTERED = "config_listeners_registered"
FLAG_EVALUATIONS_TOTAL = "feature_flag_evaluations_total"


_metrics_collector: Optional[MetricsCollector] = None
_collector_lock = Lock()


def get_metrics_collector() -> MetricsCollector:
    """Get the process-wide default collector"""
    global _metrics_collector
    with _collector_lock:
        if _metrics_collector is None:
            _metrics_collector = MetricsCollector()
        return _metrics_collector
