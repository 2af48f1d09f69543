"""Application context: owns the store and wires fetching to display."""

import asyncio
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Mapping, Optional, Set

from .config import AppConfig
from .constants import STORE_TIME_INTERVAL
from .display import DisplaySurface, create_display_surface, show_notification
from .fetcher import NotificationFetcher, make_on_dismiss
from .github_client import GitHubClient
from .messages import ResetState
from .reducer import restore_state
from .scheduler import (
    AsyncioTaskScheduler,
    DisplayScheduler,
    TaskScheduler,
    now_ms,
    should_fetch_now,
)
from .store import NotificationStore

logger = logging.getLogger(__name__)


class NotifierApp:
    """
    Everything one running notifier needs, constructed once at startup.

    ``activate`` restores state and subscribes the display scheduler; the
    command methods and ``tick`` start fetch cycles as asyncio tasks, so they
    must be called from within a running event loop.
    """

    def __init__(
        self,
        config: AppConfig,
        client: Optional[GitHubClient] = None,
        display: Optional[DisplaySurface] = None,
        task_scheduler: Optional[TaskScheduler] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.config = config
        self.client = client or GitHubClient(config.github)
        self.display = display or create_display_surface(
            config.display.method, config.display.twilio
        )
        self.task_scheduler = task_scheduler or AsyncioTaskScheduler()
        self.clock = clock

        self.store: Optional[NotificationStore] = None
        self.fetcher: Optional[NotificationFetcher] = None
        self.display_scheduler: Optional[DisplayScheduler] = None
        self._fetch_tasks: Set[asyncio.Task] = set()
        self._poll_task: Optional[asyncio.Task] = None

    def activate(self, previous_state: Optional[Mapping[str, Any]] = None) -> None:
        """Restore state and start listening for pending notifications."""
        state = restore_state(previous_state)
        if state.notifications:
            # Dismiss callbacks are not persisted; give restored records new ones
            logger.info(f"Restored {len(state.notifications)} pending notification(s)")
            state = replace(state, notifications=tuple(
                replace(n, on_dismiss=make_on_dismiss(self.client, self.config.polling, n.id))
                for n in state.notifications
            ))

        self.store = NotificationStore(state)
        self.fetcher = NotificationFetcher(
            self.store, self.client, self.display, self.config, clock=self.clock
        )

        self.display_scheduler = DisplayScheduler(
            self.store,
            lambda record: show_notification(self.display, record),
            self.task_scheduler,
        )
        self.display_scheduler.start()

    def deactivate(self) -> None:
        """Stop polling and displaying. In-flight fetch cycles still complete."""
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        if self.display_scheduler is not None:
            self.display_scheduler.stop()

    def serialize(self) -> Dict[str, Any]:
        """Persistable snapshot of the state, without the token-prompt flag."""
        state = self.store.get_state()
        return {
            "last_check_time": state.last_check_time,
            "notifications": [n.to_dict() for n in state.notifications],
        }

    def _spawn_fetch(self) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.fetcher.fetch())
        self._fetch_tasks.add(task)
        task.add_done_callback(self._on_fetch_done)
        return task

    def _on_fetch_done(self, task: asyncio.Task) -> None:
        self._fetch_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Fetch cycle crashed", exc_info=task.exception())

    def check_for_notifications(self) -> asyncio.Task:
        """Command: run one fetch cycle now."""
        return self._spawn_fetch()

    def get_all_unread_notifications(self) -> asyncio.Task:
        """Command: forget everything and fetch all unread notifications."""
        logger.info("Resetting state to fetch all unread notifications")
        self.store.dispatch(ResetState())
        return self._spawn_fetch()

    def tick(self) -> Optional[asyncio.Task]:
        """Poll timer body: start a fetch if the poll interval has elapsed."""
        last_check_time = self.store.get_state().last_check_time
        if should_fetch_now(last_check_time, self.config.polling.poll_interval_minutes, self.clock()):
            return self._spawn_fetch()
        return None

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(STORE_TIME_INTERVAL / 1000)
            self.tick()

    async def run_forever(self, reset: bool = False) -> None:
        """Fetch once immediately, then keep polling until cancelled."""
        if reset:
            self.get_all_unread_notifications()
        else:
            self.check_for_notifications()
        self._poll_task = asyncio.get_running_loop().create_task(self._poll_loop())
        try:
            await self._poll_task
        except asyncio.CancelledError:
            logger.info("Polling stopped")

    async def wait_idle(self) -> None:
        """Wait for in-flight fetch cycles and scheduled display effects."""
        while self._fetch_tasks:
            await asyncio.gather(*list(self._fetch_tasks), return_exceptions=True)
        drain = getattr(self.task_scheduler, "drain", None)
        if drain is not None:
            await drain()
