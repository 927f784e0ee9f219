"""Manual, startup, and periodic sync triggers.

WHY: Syncs start three ways: the user asks, a timer fires while auto-sync
is on, or the app has just started. All three must end up in the same
SyncOrchestrator.run_sync() call, and the timer must follow the user's
autoSync and interval settings as they change.

HOW: start() schedules a one-shot startup task that sleeps STARTUP_DELAY_S,
and (when auto_sync is on) a timer task that sleeps sync_interval minutes
between ticks. Each startup or timer tick launches the cycle as its own
asyncio task, so cancelling a timer never cancels a cycle mid-flight. The
scheduler subscribes to the SettingsStore and rebuilds the timer whenever
auto_sync or sync_interval change.

RULES:
- Startup and scheduled syncs use notify_user=False; manual uses True
- Rescheduling only ever cancels sleeping timer tasks, never cycle tasks
- stop() cancels timers and waits for any in-flight cycle to finish
- A cycle task that dies with an unexpected exception is logged, not lost
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from klarity_sync.config import STARTUP_DELAY_S, SettingsStore
from klarity_sync.sync.orchestrator import SyncOrchestrator, SyncResult, SyncTrigger

logger = logging.getLogger(__name__)

_RESCHEDULE_FIELDS = frozenset({"auto_sync", "sync_interval"})


class SyncScheduler:
    """Owns the startup and periodic timers for one orchestrator.

    Must be started and stopped from inside a running event loop.
    ``seconds_per_minute`` exists so tests can shrink the interval unit.
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        settings_store: SettingsStore,
        startup_delay: float = STARTUP_DELAY_S,
        seconds_per_minute: float = 60.0,
    ) -> None:
        self._orchestrator = orchestrator
        self._store = settings_store
        self._startup_delay = startup_delay
        self._seconds_per_minute = seconds_per_minute
        self._startup_task: Optional[asyncio.Task] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._cycle_tasks: Set[asyncio.Task] = set()
        self._started = False

    @property
    def timer_active(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    def start(self) -> None:
        """Schedule the startup sync and, if enabled, the periodic timer."""
        if self._started:
            return
        self._started = True
        self._store.subscribe(self._on_settings_changed)
        self._startup_task = asyncio.ensure_future(self._startup())
        self.reschedule()

    async def stop(self) -> None:
        """Cancel timers, then wait for in-flight cycles to finish."""
        if not self._started:
            return
        self._started = False
        self._store.unsubscribe(self._on_settings_changed)

        for task in (self._startup_task, self._timer_task):
            if task is not None and not task.done():
                task.cancel()
        self._startup_task = None
        self._clear_timer()

        if self._cycle_tasks:
            await asyncio.gather(*list(self._cycle_tasks), return_exceptions=True)

    def reschedule(self) -> None:
        """Rebuild the periodic timer from the current settings."""
        self._clear_timer()
        settings = self._store.snapshot()
        if not settings.auto_sync:
            logger.info("Auto sync is off")
            return

        interval_s = settings.sync_interval * self._seconds_per_minute
        logger.info("Auto sync every %d minute(s)", settings.sync_interval)
        self._timer_task = asyncio.ensure_future(self._timer_loop(interval_s))

    async def trigger_manual(self) -> SyncResult:
        """Run a user-requested sync and return its result."""
        return await self._orchestrator.run_sync(notify_user=True, trigger=SyncTrigger.MANUAL)

    async def run_forever(self) -> None:
        """Start, then block until cancelled; always stops cleanly."""
        self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _startup(self) -> None:
        await asyncio.sleep(self._startup_delay)
        self._spawn_cycle(SyncTrigger.STARTUP)

    async def _timer_loop(self, interval_s: float) -> None:
        while True:
            await asyncio.sleep(interval_s)
            self._spawn_cycle(SyncTrigger.SCHEDULED)

    def _spawn_cycle(self, trigger: SyncTrigger) -> asyncio.Task:
        task = asyncio.ensure_future(
            self._orchestrator.run_sync(notify_user=False, trigger=trigger)
        )
        self._cycle_tasks.add(task)
        task.add_done_callback(self._cycle_done)
        return task

    def _cycle_done(self, task: asyncio.Task) -> None:
        self._cycle_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Sync task crashed", exc_info=exc)

    def _clear_timer(self) -> None:
        if self._timer_task is not None:
            if not self._timer_task.done():
                self._timer_task.cancel()
            self._timer_task = None

    def _on_settings_changed(self, changed: Set[str]) -> None:
        if self._started and changed & _RESCHEDULE_FIELDS:
            logger.debug("Timer settings changed, rescheduling")
            self.reschedule()
