"""
Tests for scheduled refresh.
"""

import threading
import time
from datetime import timedelta

import pytest

from dynconf.configuration import DynamicConfiguration, InMemoryConfigurationSource, RefreshScheduler
from dynconf.configuration.scheduler import to_seconds


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class TestIntervals:
    """Test interval normalisation."""

    def test_numbers_and_timedeltas(self):
        assert to_seconds(2) == 2.0
        assert to_seconds(timedelta(milliseconds=500)) == 0.5

    @pytest.mark.parametrize("interval", [0, -1, timedelta(0)])
    def test_non_positive_rejected(self, interval):
        with pytest.raises(ValueError):
            to_seconds(interval)


class TestRefreshScheduler:
    """Test the background refresh loop."""

    def test_runs_task_periodically(self):
        calls = []
        scheduler = RefreshScheduler(lambda: calls.append(1))
        scheduler.start(0.01)
        try:
            assert wait_for(lambda: len(calls) >= 3)
        finally:
            scheduler.stop()
        assert not scheduler.is_running()

    def test_start_twice_changes_interval(self):
        scheduler = RefreshScheduler(lambda: None)
        scheduler.start(10)
        try:
            worker = scheduler._thread
            scheduler.start(5)
            assert scheduler.interval == 5.0
            assert scheduler._thread is worker
        finally:
            scheduler.stop()

    def test_no_tick_after_stop_returns(self):
        calls = []
        scheduler = RefreshScheduler(lambda: calls.append(1))
        scheduler.start(0.005)
        wait_for(lambda: calls)
        scheduler.stop()

        count = len(calls)
        time.sleep(0.05)
        assert len(calls) == count

    def test_stop_when_not_running_is_noop(self):
        scheduler = RefreshScheduler(lambda: None)
        scheduler.stop()
        assert scheduler.interval is None

    def test_tick_skipped_while_cycle_lock_held(self):
        """A tick never overlaps a refresh already in progress."""
        lock = threading.Lock()
        calls = []
        scheduler = RefreshScheduler(lambda: calls.append(1), cycle_lock=lock)
        with lock:
            scheduler.start(0.005)
            assert wait_for(lambda: scheduler.ticks_skipped >= 2)
            assert calls == []
        scheduler.stop()

    def test_task_failure_keeps_scheduler_alive(self, log_capture):
        attempts = []

        def failing_task():
            attempts.append(1)
            raise RuntimeError("refresh exploded")

        scheduler = RefreshScheduler(failing_task)
        scheduler.start(0.005)
        try:
            assert wait_for(lambda: len(attempts) >= 2)
        finally:
            scheduler.stop()
        assert log_capture.has_record_with_message("Scheduled configuration refresh failed")


class TestAutoRefresh:
    """Test auto-refresh on DynamicConfiguration."""

    def test_changes_delivered_by_scheduler(self, metrics):
        source = InMemoryConfigurationSource({"a": "1"}, name="mem")
        received = []
        with DynamicConfiguration([source], metrics=metrics) as configuration:
            configuration.add_listener("a", received.append)
            configuration.enable_auto_refresh(timedelta(milliseconds=10))
            assert configuration.is_auto_refresh_enabled()
            assert configuration.refresh_interval == 0.01

            source.set_property("a", "2")
            assert wait_for(lambda: received)
            configuration.disable_auto_refresh()
            assert not configuration.is_auto_refresh_enabled()

        assert len(received) == 1
        assert received[0].new_value == "2"

    def test_close_stops_auto_refresh(self, metrics):
        configuration = DynamicConfiguration([InMemoryConfigurationSource()], metrics=metrics)
        configuration.enable_auto_refresh(1)
        configuration.close()
        assert not configuration.is_auto_refresh_enabled()

    def test_invalid_interval(self, dynamic_configuration):
        with pytest.raises(ValueError):
            dynamic_configuration.enable_auto_refresh(0)

    def test_listener_can_disable_auto_refresh(self, metrics):
        """Stopping from inside a scheduled cycle does not deadlock."""
        source = InMemoryConfigurationSource({"a": "1"})
        with DynamicConfiguration([source], metrics=metrics) as configuration:
            configuration.add_listener("a", lambda e: configuration.disable_auto_refresh())
            configuration.enable_auto_refresh(0.01)
            source.set_property("a", "2")
            assert wait_for(lambda: not configuration.is_auto_refresh_enabled())

    def test_listener_calling_refresh_keeps_scheduler_running(self, metrics):
        source = InMemoryConfigurationSource({"a": "1"})
        received = []
        with DynamicConfiguration([source], metrics=metrics) as configuration:
            def refresh_again(event):
                received.append(event.new_value)
                configuration.refresh()

            configuration.add_listener("a", refresh_again)
            configuration.enable_auto_refresh(0.01)

            source.set_property("a", "2")
            assert wait_for(lambda: "2" in received)
            source.set_property("a", "3")
            assert wait_for(lambda: "3" in received)
            assert configuration.is_auto_refresh_enabled()
