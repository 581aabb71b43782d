"""
Frame Scheduler Tests
=====================

Tests for the single-slot admission gate.
"""

import threading

import pytest

from pose_overlay.errors import SchedulerStateError
from pose_overlay.stream.scheduler import FrameScheduler, SchedulerState


class TestBusyGate:
    """At most one estimation in flight."""

    def test_initially_idle(self):
        """Verify a new scheduler is idle."""
        scheduler = FrameScheduler()
        assert scheduler.state == SchedulerState.IDLE
        assert scheduler.should_process(0.0)

    def test_busy_rejects(self):
        """Verify frames are rejected while busy."""
        scheduler = FrameScheduler()

        assert scheduler.try_acquire(0.0)
        assert scheduler.state == SchedulerState.BUSY
        assert not scheduler.try_acquire(1.0)
        assert not scheduler.should_process(1.0)

        scheduler.end_work()
        assert scheduler.try_acquire(2.0)

        metrics = scheduler.metrics()
        assert metrics["accepted"] == 2
        assert metrics["completed"] == 1
        assert metrics["dropped_busy"] == 1

    def test_should_process_has_no_side_effects(self):
        """Verify should_process does not change state."""
        scheduler = FrameScheduler()
        assert scheduler.should_process(0.0)
        assert scheduler.should_process(0.0)
        assert scheduler.state == SchedulerState.IDLE
        assert scheduler.last_accepted is None

    def test_begin_work_while_busy_raises(self):
        """Verify begin_work while busy raises."""
        scheduler = FrameScheduler()
        scheduler.begin_work(0.0)
        with pytest.raises(SchedulerStateError):
            scheduler.begin_work(1.0)

    def test_end_work_while_idle_is_noop(self):
        """Verify end_work while idle does nothing."""
        scheduler = FrameScheduler()
        scheduler.end_work()
        assert scheduler.state == SchedulerState.IDLE
        assert scheduler.metrics()["completed"] == 0

    def test_concurrent_acquire_single_winner(self):
        """Verify one thread wins concurrent acquisition."""
        scheduler = FrameScheduler()
        barrier = threading.Barrier(8)
        results = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            accepted = scheduler.try_acquire(0.0)
            with lock:
                results.append(accepted)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert scheduler.metrics()["dropped_busy"] == 7


class TestThrottle:
    """Minimum interval between accepted frames."""

    def test_timeline(self):
        """Verify throttled admissions over a timeline."""
        scheduler = FrameScheduler(min_interval=0.1)

        assert scheduler.try_acquire(0.000)
        scheduler.end_work()
        assert not scheduler.try_acquire(0.010)
        assert not scheduler.try_acquire(0.050)
        assert scheduler.try_acquire(0.100)

        metrics = scheduler.metrics()
        assert metrics["accepted"] == 2
        assert metrics["dropped_throttled"] == 2
        assert scheduler.last_accepted == 0.100

    def test_zero_interval_disables_throttle(self):
        """Verify a zero interval admits every idle frame."""
        scheduler = FrameScheduler()
        assert scheduler.try_acquire(0.0)
        scheduler.end_work()
        assert scheduler.try_acquire(0.0)

    def test_negative_interval_rejected(self):
        """Verify a negative interval is rejected."""
        with pytest.raises(ValueError):
            FrameScheduler(min_interval=-0.5)


class TestStop:
    """Teardown behavior."""

    def test_stop_rejects_everything(self):
        """Verify a stopped scheduler admits nothing."""
        scheduler = FrameScheduler()
        scheduler.stop()

        assert scheduler.stopped
        assert not scheduler.should_process(0.0)
        assert not scheduler.try_acquire(0.0)
        assert scheduler.metrics()["dropped_stopped"] == 1

        with pytest.raises(SchedulerStateError):
            scheduler.begin_work(0.0)

    def test_in_flight_work_completes_after_stop(self):
        """Verify in-flight work can finish after stop."""
        scheduler = FrameScheduler()
        assert scheduler.try_acquire(0.0)
        scheduler.stop()
        scheduler.end_work()
        assert scheduler.state == SchedulerState.IDLE

    def test_reset_reopens(self):
        """Verify reset admits frames again."""
        scheduler = FrameScheduler(min_interval=10.0)
        assert scheduler.try_acquire(0.0)
        scheduler.end_work()
        scheduler.stop()

        scheduler.reset()

        assert not scheduler.stopped
        assert scheduler.last_accepted is None
        assert scheduler.try_acquire(1.0)
