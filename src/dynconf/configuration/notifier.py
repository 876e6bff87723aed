"""
Change listener registry and guarded dispatch.
"""

import threading
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional, Tuple

from ..observability.logging import DynconfLogger, get_logger
from ..observability.metrics import (
    LISTENER_FAILURES_TOTAL, LISTENERS_REGISTERED, MetricsCollector, get_metrics_collector
)
from .events import ConfigurationChangeEvent

ChangeListener = Callable[[ConfigurationChangeEvent], None]


@dataclass(eq=False)
class ListenerRegistration:
    """Handle returned by add_listener; call remove() to unregister."""
    handler: ChangeListener
    key: Optional[str] = None
    registration_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    _notifier: Optional['ChangeNotifier'] = field(default=None, repr=False)

    @property
    def is_wildcard(self) -> bool:
        return self.key is None

    @property
    def is_active(self) -> bool:
        return self._notifier is not None and self._notifier.is_registered(self)

    def remove(self) -> bool:
        if self._notifier is None:
            return False
        return self._notifier.remove_listener(self)

    def __enter__(self) -> 'ListenerRegistration':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.remove()


class ChangeNotifier:
    """
    Dispatches change events to per-key listeners, then wildcard listeners,
    in registration order within each group.

    Registration lists are replaced copy-on-write, so dispatch iterates a
    stable tuple while other threads add or remove listeners. A failing
    listener is logged and counted; delivery continues with the next one.
    """

    def __init__(self, logger: Optional[DynconfLogger] = None, metrics: Optional[MetricsCollector] = None):
        self._lock = threading.Lock()
        self._key_listeners: Dict[str, Tuple[ListenerRegistration, ...]] = {}
        self._wildcard_listeners: Tuple[ListenerRegistration, ...] = ()
        self._logger = logger or get_logger("dynconf.notifier")
        self._metrics = metrics or get_metrics_collector()

    def add_listener(self, key_or_handler, handler: Optional[ChangeListener] = None) -> ListenerRegistration:
        """
        Register a listener.

        ``add_listener("db.url", fn)`` listens to one key;
        ``add_listener(fn)`` listens to every change.
        """
        if handler is None:
            if not callable(key_or_handler):
                raise TypeError("Wildcard listener must be callable")
            registration = ListenerRegistration(handler=key_or_handler, _notifier=self)
            with self._lock:
                self._wildcard_listeners = self._wildcard_listeners + (registration,)
                self._record_count()
            return registration

        if not isinstance(key_or_handler, str) or not key_or_handler:
            raise ValueError("Listener key must be a non-empty string")
        if not callable(handler):
            raise TypeError("Listener must be callable")

        registration = ListenerRegistration(handler=handler, key=key_or_handler, _notifier=self)
        with self._lock:
            current = self._key_listeners.get(key_or_handler, ())
            self._key_listeners[key_or_handler] = current + (registration,)
            self._record_count()
        return registration

    def remove_listener(self, registration: ListenerRegistration) -> bool:
        with self._lock:
            if registration.key is None:
                if registration not in self._wildcard_listeners:
                    return False
                self._wildcard_listeners = tuple(r for r in self._wildcard_listeners if r is not registration)
                self._record_count()
                return True

            current = self._key_listeners.get(registration.key, ())
            if registration not in current:
                return False
            remaining = tuple(r for r in current if r is not registration)
            if remaining:
                self._key_listeners[registration.key] = remaining
            else:
                del self._key_listeners[registration.key]
            self._record_count()
            return True

    def is_registered(self, registration: ListenerRegistration) -> bool:
        if registration.key is None:
            return registration in self._wildcard_listeners
        return registration in self._key_listeners.get(registration.key, ())

    def listener_count(self) -> int:
        return len(self._wildcard_listeners) + sum(len(v) for v in self._key_listeners.values())

    def _record_count(self) -> None:
        self._metrics.gauge(LISTENERS_REGISTERED, "Registered change listeners").set(self.listener_count())

    def clear(self) -> None:
        with self._lock:
            self._key_listeners = {}
            self._wildcard_listeners = ()
            self._record_count()

    def dispatch(self, event: ConfigurationChangeEvent) -> int:
        """Deliver one event; returns the number of listeners that failed."""
        failures = 0
        recipients = self._key_listeners.get(event.key, ()) + self._wildcard_listeners
        for registration in recipients:
            try:
                registration.handler(event)
            except Exception as e:
                failures += 1
                self._metrics.counter(LISTENER_FAILURES_TOTAL, "Change listeners that raised").increment()
                self._logger.error(
                    f"Configuration change listener failed for key {event.key}",
                    extra={
                        "key": event.key,
                        "change_type": event.change_type.name,
                        "registration_id": registration.registration_id,
                    },
                    exc_info=e,
                )
        return failures

    def dispatch_all(self, events: Iterable[ConfigurationChangeEvent]) -> int:
        return sum(self.dispatch(event) for event in events)
