"""
Core dynamic configuration class.
"""

import threading
from typing import Dict, List, Optional, Sequence

from ..exceptions import ConfigurationError
from ..observability.logging import DynconfLogger, get_logger
from ..observability.metrics import (
    CHANGES_TOTAL, REFRESH_DURATION, REFRESH_TOTAL, MetricsCollector, get_metrics_collector
)
from .composite import CompositeConfigurationSource
from .events import ConfigurationChangeEvent, diff_snapshots
from .notifier import ChangeListener, ChangeNotifier, ListenerRegistration
from .results import RefreshResult
from .scheduler import Interval, RefreshScheduler
from .sources import ConfigurationSource


class DynamicConfiguration(ConfigurationSource):
    """
    Configuration with priority-ordered sources, change notification and
    optional auto-refresh.

    Reads go straight to the composite of sources. Each refresh cycle
    snapshots the resolved configuration, refreshes every source, diffs the
    two snapshots and notifies listeners of every changed key. At most one
    cycle runs at a time per instance.

    Example:
        config = DynamicConfiguration([env_source, yaml_source])
        config.add_listener("pool.size", lambda e: pool.resize(int(e.new_value)))
        config.enable_auto_refresh(30)
    """

    def __init__(
        self,
        sources: Sequence[ConfigurationSource],
        name: Optional[str] = None,
        initial_refresh: bool = False,
        logger: Optional[DynconfLogger] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self._composite = CompositeConfigurationSource(sources, name)
        self._logger = logger or get_logger("dynconf.refresh")
        self._metrics = metrics or get_metrics_collector()
        self._notifier = ChangeNotifier(metrics=self._metrics)
        self._cycle_lock = threading.Lock()
        self._cycle_thread: Optional[int] = None
        self._scheduler = RefreshScheduler(
            self._refresh_cycle,
            cycle_lock=self._cycle_lock,
            name=f"config-refresh-{self._composite.name}",
        )
        self._last_result: Optional[RefreshResult] = None

        if initial_refresh:
            result = self._composite.refresh()
            if not result.success:
                self._logger.warning(
                    "Initial configuration load incomplete",
                    extra={"errors": list(result.errors), "failed_sources": list(result.failed_sources)},
                )
        self._snapshot: Dict[str, str] = self._composite.snapshot()

    @property
    def name(self) -> str:
        return self._composite.name

    @property
    def sources(self):
        return self._composite.sources

    @property
    def last_refresh_result(self) -> Optional[RefreshResult]:
        return self._last_result

    # Reads

    def get_string(self, key: str) -> Optional[str]:
        return self._composite.get_string(key)

    def get_int(self, key: str) -> Optional[int]:
        return self._composite.get_int(key)

    def get_long(self, key: str) -> Optional[int]:
        return self._composite.get_long(key)

    def get_double(self, key: str) -> Optional[float]:
        return self._composite.get_double(key)

    def get_boolean(self, key: str) -> Optional[bool]:
        return self._composite.get_boolean(key)

    def get_properties(self, prefix: str) -> Dict[str, str]:
        return self._composite.get_properties(prefix)

    def contains_key(self, key: str) -> bool:
        return self._composite.contains_key(key)

    def snapshot(self) -> Dict[str, str]:
        return self._composite.snapshot()

    # Refresh

    def refresh(self) -> RefreshResult:
        """
        Refresh all sources and notify listeners of the resulting changes.

        Waits for a scheduled cycle that is already running. The returned
        result carries the change events; on failure some sources may be
        stale while others were updated, and changes from the updated ones
        are still delivered.

        Raises:
            ConfigurationError: If called by a listener of the cycle that is
                currently delivering events on this thread
        """
        if self._cycle_thread == threading.get_ident():
            raise ConfigurationError(
                "Configuration refresh requested from within a running refresh cycle",
                source_name=self.name,
                error_code="CONFIG_REFRESH_REENTRANT",
            )
        with self._cycle_lock:
            return self._refresh_cycle()

    def _refresh_cycle(self) -> RefreshResult:
        self._cycle_thread = threading.get_ident()
        try:
            return self._run_cycle()
        finally:
            self._cycle_thread = None

    def _run_cycle(self) -> RefreshResult:
        with self._logger.refresh_context() as refresh_id:
            previous = self._snapshot

            with self._metrics.histogram(REFRESH_DURATION, "Refresh cycle duration").time():
                result = self._composite.refresh()
                current = self._composite.snapshot()
                events = diff_snapshots(previous, current, self.name, self._composite.origin_of)
            self._snapshot = current

            self._metrics.counter(REFRESH_TOTAL, "Refresh cycles").increment(
                labels={"status": "success" if result.success else "failure"}
            )

            if result.success:
                self._logger.debug(
                    f"Configuration refreshed with {len(events)} change(s)",
                    extra={"configuration": self.name, "changes": len(events)},
                )
            else:
                self._logger.warning(
                    "Configuration refresh failed for some sources",
                    extra={
                        "configuration": self.name,
                        "failed_sources": list(result.failed_sources),
                        "errors": list(result.errors),
                        "changes": len(events),
                    },
                )

            self._notify(events)
            result = result.with_changes(events)
            self._last_result = result
            self._logger.debug("Refresh cycle complete", extra={"refresh_id": refresh_id})
            return result

    def _notify(self, events: List[ConfigurationChangeEvent]) -> None:
        for event in events:
            self._metrics.counter(CHANGES_TOTAL, "Detected configuration changes").increment(
                labels={"change_type": event.change_type.name}
            )
            self._notifier.dispatch(event)

    # Listeners

    def add_listener(self, key_or_handler, handler: Optional[ChangeListener] = None) -> ListenerRegistration:
        """Register a per-key listener ``(key, handler)`` or a wildcard listener ``(handler)``."""
        return self._notifier.add_listener(key_or_handler, handler)

    def remove_listener(self, registration: ListenerRegistration) -> bool:
        return self._notifier.remove_listener(registration)

    # Auto-refresh

    def enable_auto_refresh(self, interval: Interval) -> None:
        """
        Start refreshing every ``interval`` (seconds or timedelta).

        Calling this while auto-refresh is enabled changes the interval of the
        running task instead of starting another one.
        """
        self._scheduler.start(interval)

    def disable_auto_refresh(self) -> None:
        self._scheduler.stop()

    def is_auto_refresh_enabled(self) -> bool:
        return self._scheduler.is_running()

    @property
    def refresh_interval(self) -> Optional[float]:
        return self._scheduler.interval

    # Lifecycle

    def close(self) -> None:
        self._scheduler.stop()
        self._notifier.clear()

    def __enter__(self) -> 'DynamicConfiguration':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
