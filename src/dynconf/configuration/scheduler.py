"""
Background scheduler running the refresh-and-notify cycle at a fixed interval.
"""

import threading
from datetime import timedelta
from typing import Callable, Optional, Union

from ..observability.logging import DynconfLogger, get_logger

Interval = Union[int, float, timedelta]


def to_seconds(interval: Interval) -> float:
    seconds = interval.total_seconds() if isinstance(interval, timedelta) else float(interval)
    if seconds <= 0:
        raise ValueError(f"Refresh interval must be positive, got {interval!r}")
    return seconds


class RefreshScheduler:
    """
    Runs ``task`` every ``interval`` seconds on one daemon thread.

    ``start`` while running only changes the interval (applied from the next
    tick). ``stop`` guarantees no tick starts after it returns; a tick that is
    already running is allowed to finish. Ticks are serialized with manual
    refreshes through ``cycle_lock``: a tick that finds the lock held is skipped.
    """

    def __init__(
        self,
        task: Callable[[], object],
        cycle_lock: Optional[threading.Lock] = None,
        name: str = "config-refresh",
        logger: Optional[DynconfLogger] = None,
    ):
        self._task = task
        self._cycle_lock = cycle_lock or threading.Lock()
        self._name = name
        self._logger = logger or get_logger("dynconf.scheduler")
        self._lifecycle_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._interval: Optional[float] = None
        self.ticks_run = 0
        self.ticks_skipped = 0

    @property
    def interval(self) -> Optional[float]:
        return self._interval

    def is_running(self) -> bool:
        with self._lifecycle_lock:
            return self._thread is not None and self._stop_event is not None and not self._stop_event.is_set()

    def start(self, interval: Interval) -> None:
        seconds = to_seconds(interval)
        with self._lifecycle_lock:
            self._interval = seconds
            if self._thread is not None and not self._stop_event.is_set():
                self._logger.info(f"Auto-refresh interval changed to {seconds}s", extra={"scheduler": self._name})
                return

            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop_event,),
                name=self._name,
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            thread.start()
        self._logger.info(f"Auto-refresh enabled every {seconds}s", extra={"scheduler": self._name})

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        with self._lifecycle_lock:
            thread, stop_event = self._thread, self._stop_event
            if thread is None:
                return
            stop_event.set()
            self._thread = None
            self._stop_event = None
            self._interval = None

        if thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._logger.info("Auto-refresh disabled", extra={"scheduler": self._name})

    def _run(self, stop_event: threading.Event) -> None:
        while True:
            interval = self._interval
            if interval is None or stop_event.wait(interval):
                return
            self._tick(stop_event)

    def _tick(self, stop_event: threading.Event) -> None:
        if not self._cycle_lock.acquire(blocking=False):
            self.ticks_skipped += 1
            self._logger.debug("Refresh still running, skipping tick", extra={"scheduler": self._name})
            return
        try:
            # stop() sets the event under the lifecycle lock, so checking it
            # under the same lock decides whether this cycle may start
            with self._lifecycle_lock:
                if stop_event.is_set():
                    return
            self.ticks_run += 1
            self._task()
        except Exception as e:
            self._logger.error("Scheduled configuration refresh failed", extra={"scheduler": self._name}, exc_info=e)
        finally:
            self._cycle_lock.release()
