"""
Frame Scheduler
===============

Single-slot admission control in front of the estimation engine.

This module provides the FrameScheduler class, which decides for every
incoming camera frame whether it may be submitted for estimation.

Design Rules:
    - At most ONE estimation call outstanding at any time
    - No queueing: rejected frames are dropped and counted
    - Optional minimum interval between accepted frames (throttle)
    - All state guarded by a lock; camera callbacks may re-enter
    - Decisions are O(1) and never block on estimation

State Machine:
    IDLE --accept--> BUSY --end_work--> IDLE
    stop() makes every later decision a drop.
"""

import logging
import threading
from enum import Enum
from typing import Optional

from pose_overlay.errors import SchedulerStateError


logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    """Scheduler slot state."""

    IDLE = "idle"
    BUSY = "busy"


class FrameScheduler:
    """
    Busy-flag plus throttle gate for estimation work.

    Times are seconds on a monotonic clock supplied by the caller.

    Attributes:
        min_interval: Minimum seconds between accepted frames (0 = off)
        state: Current slot state
        stopped: Whether the session stopped accepting frames

    Example:
        scheduler = FrameScheduler(min_interval=0.1)

        if scheduler.try_acquire(time.monotonic()):
            try:
                poses = await engine.estimate(image)
            finally:
                scheduler.end_work()
    """

    def __init__(self, min_interval: float = 0.0) -> None:
        """
        Initialize frame scheduler.

        Args:
            min_interval: Minimum seconds between accepted frames.
                Must be >= 0. 0 disables throttling.
        """
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")

        self._min_interval = min_interval
        self._lock = threading.Lock()
        self._state = SchedulerState.IDLE
        self._stopped = False
        self._last_accepted: Optional[float] = None

        self._accepted: int = 0
        self._completed: int = 0
        self._dropped_busy: int = 0
        self._dropped_throttled: int = 0
        self._dropped_stopped: int = 0

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return self._state

    @property
    def stopped(self) -> bool:
        with self._lock:
            return self._stopped

    @property
    def last_accepted(self) -> Optional[float]:
        with self._lock:
            return self._last_accepted

    def _admissible(self, now: float) -> bool:
        """Check admission without side effects. Caller holds the lock."""
        if self._stopped:
            return False
        if self._state == SchedulerState.BUSY:
            return False
        if self._min_interval > 0 and self._last_accepted is not None:
            if now - self._last_accepted < self._min_interval:
                return False
        return True

    def _count_drop(self) -> None:
        """Attribute a rejected frame to its reason. Caller holds the lock."""
        if self._stopped:
            self._dropped_stopped += 1
        elif self._state == SchedulerState.BUSY:
            self._dropped_busy += 1
        else:
            self._dropped_throttled += 1

    def should_process(self, now: float) -> bool:
        """
        Decide whether a frame arriving at `now` may be processed.

        Does not change the slot state; callers that act on the answer
        from several threads should use try_acquire() instead.

        Args:
            now: Frame arrival time in seconds

        Returns:
            False while BUSY, after stop(), or inside the throttle window
        """
        with self._lock:
            return self._admissible(now)

    def begin_work(self, now: float) -> None:
        """
        Transition IDLE -> BUSY and record `now` as the last accepted time.

        Raises:
            SchedulerStateError: If already BUSY or stopped
        """
        with self._lock:
            if self._stopped:
                raise SchedulerStateError("Scheduler is stopped")
            if self._state == SchedulerState.BUSY:
                raise SchedulerStateError("Estimation already in flight")
            self._state = SchedulerState.BUSY
            self._last_accepted = now
            self._accepted += 1

    def try_acquire(self, now: float) -> bool:
        """
        Atomically decide and claim the slot for a frame.

        Args:
            now: Frame arrival time in seconds

        Returns:
            True if the frame was accepted (state is now BUSY),
            False if it was dropped.
        """
        with self._lock:
            if not self._admissible(now):
                self._count_drop()
                return False
            self._state = SchedulerState.BUSY
            self._last_accepted = now
            self._accepted += 1
            return True

    def end_work(self) -> None:
        """
        Transition BUSY -> IDLE after estimation succeeded or failed.

        Calling it while IDLE is a no-op.
        """
        with self._lock:
            if self._state != SchedulerState.BUSY:
                logger.warning("end_work() called while scheduler is idle")
                return
            self._state = SchedulerState.IDLE
            self._completed += 1

    def stop(self) -> None:
        """Stop accepting frames. In-flight work may still complete."""
        with self._lock:
            self._stopped = True
        logger.info("FrameScheduler stopped accepting frames")

    def reset(self) -> None:
        """Re-open the scheduler for a new camera stream."""
        with self._lock:
            self._stopped = False
            self._last_accepted = None

    def metrics(self) -> dict:
        """
        Get scheduler metrics for observability.

        Returns:
            Dict with state, accepted/completed counts and drops per reason
        """
        with self._lock:
            return {
                "state": self._state.value,
                "stopped": self._stopped,
                "min_interval": self._min_interval,
                "accepted": self._accepted,
                "completed": self._completed,
                "dropped_busy": self._dropped_busy,
                "dropped_throttled": self._dropped_throttled,
                "dropped_stopped": self._dropped_stopped,
            }
