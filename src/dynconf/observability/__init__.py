"""
Observability - structured logging and metrics for dynconf components.
"""

from .logging import (
    DynconfLogger, LogLevel, LogFormatter, LogHandler, JSONLogFormatter,
    HumanReadableFormatter, ConsoleLogHandler, FileLogHandler, MemoryLogHandler,
    get_logger, configure_default_logging, get_refresh_id
)
from .metrics import (
    MetricsCollector, MetricType, Counter, Gauge, Histogram, get_metrics_collector
)

__all__ = [
    "DynconfLogger",
    "LogLevel",
    "LogFormatter",
    "LogHandler",
    "JSONLogFormatter",
    "HumanReadableFormatter",
    "ConsoleLogHandler",
    "FileLogHandler",
    "MemoryLogHandler",
    "get_logger",
    "configure_default_logging",
    "get_refresh_id",
    "MetricsCollector",
    "MetricType",
    "Counter",
    "Gauge",
    "Histogram",
    "get_metrics_collector",
]
