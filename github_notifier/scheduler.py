"""Poll gating and paced delivery of pending notifications."""

import asyncio
import heapq
import itertools
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from .constants import DISPLAY_INTERVAL
from .messages import NotificationsDisplayed
from .models import NotificationRecord
from .store import NotificationStore

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def should_fetch_now(last_check_time: int, poll_interval_minutes: int, now: int) -> bool:
    """
    Determine if a fetch cycle is due.

    Logic:
    - A fetch is due once at least ``poll_interval_minutes`` have passed since
      ``last_check_time``.
    - A ``last_check_time`` of 0 (never checked) is always due.

    Args:
        last_check_time: Start of the last completed cycle, epoch millis.
        poll_interval_minutes: Configured poll interval.
        now: Current time, epoch millis.

    Returns:
        True if the poll timer should start a fetch.
    """
    return now - last_check_time >= poll_interval_minutes * 60 * 1000


class TaskScheduler(ABC):
    """Runs callables after a delay in milliseconds."""

    @abstractmethod
    def call_later(self, delay_ms: int, fn: Callable[[], None]) -> None:
        pass


class AsyncioTaskScheduler(TaskScheduler):
    """Schedules callbacks on an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._pending = set()

    def call_later(self, delay_ms, fn):
        loop = self._loop or asyncio.get_running_loop()
        token = object()

        def run() -> None:
            self._pending.discard(token)
            fn()

        self._pending.add(token)
        loop.call_later(delay_ms / 1000, run)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self, poll_seconds: float = 0.05) -> None:
        """Wait until every scheduled callback has run."""
        while self._pending:
            await asyncio.sleep(poll_seconds)


class ManualTaskScheduler(TaskScheduler):
    """
    Deterministic scheduler driven by ``advance``.

    Tasks run in due-time order, ties in scheduling order.
    """

    def __init__(self):
        self.now = 0
        self._queue: List[Tuple[int, int, Callable[[], None]]] = []
        self._counter = itertools.count()
        self.scheduled: List[int] = []  # delays as requested, for inspection

    def call_later(self, delay_ms, fn):
        self.scheduled.append(delay_ms)
        heapq.heappush(self._queue, (self.now + delay_ms, next(self._counter), fn))

    @property
    def pending(self) -> int:
        return len(self._queue)

    def advance(self, ms: int) -> None:
        target = self.now + ms
        while self._queue and self._queue[0][0] <= target:
            due, _, fn = heapq.heappop(self._queue)
            self.now = due
            fn()
        self.now = target

    def run_all(self) -> None:
        while self._queue:
            self.advance(self._queue[0][0] - self.now)


class DisplayScheduler:
    """
    Drains pending notifications from the store at a fixed cadence.

    On every store change with pending notifications, item k is scheduled for
    display after ``k * interval_ms`` and the whole batch is immediately marked
    as displayed, without waiting for the delays to elapse.
    """

    def __init__(
        self,
        store: NotificationStore,
        show: Callable[[NotificationRecord], object],
        task_scheduler: TaskScheduler,
        interval_ms: int = DISPLAY_INTERVAL,
    ):
        self.store = store
        self.show = show
        self.task_scheduler = task_scheduler
        self.interval_ms = interval_ms
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_state_change)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _display(self, record: NotificationRecord) -> None:
        try:
            self.show(record)
        except Exception as e:
            logger.error(f"Failed to display notification {record.id}: {e}", exc_info=True)

    def _on_state_change(self) -> None:
        notifications = self.store.get_state().notifications
        if not notifications:
            return

        delay = 0
        for record in notifications:
            self.task_scheduler.call_later(delay, lambda r=record: self._display(r))
            delay += self.interval_ms

        logger.info(f"Scheduled {len(notifications)} notification(s) for display")
        self.store.dispatch(NotificationsDisplayed(tuple(n.id for n in notifications)))
