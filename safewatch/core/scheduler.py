"""Cooperative delayed-task scheduling.

Every timed component (escalation checks, the journey inactivity checker,
pre-alarm and "I feel unsafe" countdowns) schedules its next wake-up through a
``TaskScheduler`` and keeps the returned ``ScheduledTask`` as a cancellation
token. The scheduler is also the single clock those components read, so tests
can drive them with virtual time.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle for one pending callback.

    Once ``cancel()`` returns, the callback is guaranteed not to start, even if
    the backend timer still fires.
    """

    def __init__(self, callback: Callable[[], None], name: str = "task") -> None:
        self.callback = callback
        self.name = name
        self._lock = threading.Lock()
        self._cancelled = False
        self._started = False
        self._release: Callable[[], None] | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._cancelled or self._started

    def cancel(self) -> bool:
        """Cancel the task. Returns False if it already ran or was cancelled."""
        with self._lock:
            if self._started or self._cancelled:
                return False
            self._cancelled = True
            release = self._release
        if release is not None:
            release()
        return True

    def bind_release(self, release: Callable[[], None]) -> None:
        """Attach the backend hook that drops the underlying timer."""
        with self._lock:
            self._release = release

    def run(self) -> None:
        with self._lock:
            if self._cancelled or self._started:
                return
            self._started = True
        self.callback()


class TaskScheduler(ABC):
    """Clock plus delayed-callback queue."""

    @abstractmethod
    def now(self) -> datetime:
        """Current timezone-aware UTC time."""

    @abstractmethod
    def schedule(self, delay_seconds: float, callback: Callable[[], None], name: str = "task") -> ScheduledTask:
        """Run ``callback`` once after ``delay_seconds``. Safe to call from any thread."""

    @abstractmethod
    def shutdown(self) -> None:
        """Cancel everything still pending."""


class AsyncioTaskScheduler(TaskScheduler):
    """Arms timers on an asyncio loop and runs callbacks in its default executor.

    Callbacks do blocking database work, so they never run on the loop thread.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._pending: set[ScheduledTask] = set()
        self._lock = threading.Lock()
        self._closed = False

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def schedule(self, delay_seconds: float, callback: Callable[[], None], name: str = "task") -> ScheduledTask:
        task = ScheduledTask(callback, name)
        delay = max(0.0, float(delay_seconds))
        with self._lock:
            if self._closed:
                task.cancel()
                return task
            self._pending.add(task)

        def arm() -> None:
            if task.cancelled:
                return
            handle = self._loop.call_later(delay, self._dispatch, task)
            task.bind_release(lambda: self._loop.call_soon_threadsafe(handle.cancel))

        self._loop.call_soon_threadsafe(arm)
        return task

    def _dispatch(self, task: ScheduledTask) -> None:
        if task.cancelled:
            self._forget(task)
            return
        self._loop.run_in_executor(None, self._run, task)

    def _run(self, task: ScheduledTask) -> None:
        try:
            task.run()
        except Exception:
            logger.exception("Scheduled task %s failed", task.name)
        finally:
            self._forget(task)

    def _forget(self, task: ScheduledTask) -> None:
        with self._lock:
            self._pending.discard(task)

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
            pending = list(self._pending)
            self._pending.clear()
        for task in pending:
            task.cancel()
        logger.info("Task scheduler stopped (%s pending tasks cancelled)", len(pending))


class Ticker:
    """Periodic callback built from self-rescheduling one-shot tasks.

    ``stop()`` bumps a generation counter, so a tick that is already running
    cannot re-arm a chain that was stopped (or stopped and restarted).
    """

    def __init__(self, scheduler: TaskScheduler, interval_seconds: float, callback: Callable[[], None], name: str) -> None:
        self._scheduler = scheduler
        self._interval = interval_seconds
        self._callback = callback
        self._name = name
        self._lock = threading.Lock()
        self._generation = 0
        self._active = False
        self._task: ScheduledTask | None = None

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        with self._lock:
            if self._active:
                return
            self._active = True
            self._generation += 1
            self._arm(self._generation)

    def stop(self) -> None:
        with self._lock:
            self._active = False
            self._generation += 1
            task, self._task = self._task, None
        if task is not None:
            task.cancel()

    def _arm(self, generation: int) -> None:
        self._task = self._scheduler.schedule(
            self._interval, lambda: self._fire(generation), name=self._name
        )

    def _fire(self, generation: int) -> None:
        with self._lock:
            if not self._active or generation != self._generation:
                return
        try:
            self._callback()
        finally:
            with self._lock:
                if self._active and generation == self._generation:
                    self._arm(generation)


class Countdown:
    """Second-resolution countdown that calls ``on_expire`` when it reaches zero.

    If ``on_expire`` raises, the countdown stays at zero and tries again on the
    next tick until it succeeds or is cancelled.
    """

    def __init__(
        self,
        scheduler: TaskScheduler,
        seconds: int,
        on_expire: Callable[[], None],
        name: str,
    ) -> None:
        self.seconds = seconds
        self._on_expire = on_expire
        self._name = name
        self._lock = threading.Lock()
        self._remaining: int | None = None
        self._ticker = Ticker(scheduler, 1, self._tick, name=name)

    @property
    def remaining(self) -> int | None:
        return self._remaining

    @property
    def active(self) -> bool:
        return self._ticker.active

    def start(self) -> None:
        """Start, or restart from the full duration."""
        self._ticker.stop()
        with self._lock:
            self._remaining = self.seconds
        self._ticker.start()

    def cancel(self) -> None:
        self._ticker.stop()
        with self._lock:
            self._remaining = None

    def _tick(self) -> None:
        with self._lock:
            if self._remaining is None:
                return
            self._remaining = max(0, self._remaining - 1)
            expired = self._remaining == 0
        if not expired:
            return
        try:
            self._on_expire()
        except Exception:
            logger.exception("Countdown %s expired but its action failed; retrying in 1s", self._name)
            return
        self._ticker.stop()
