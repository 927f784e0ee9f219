"""The sync cycle: fetch, render, write, record.

WHY: Manual, scheduled, and startup syncs must all behave the same way:
one fetch, every note written in server order, per-note failures tolerated,
and lastSyncTime advanced only when the fetch itself worked. This module is
the one place that sequence lives.

HOW: SyncOrchestrator.run_sync() takes a settings snapshot, asks the client
factory for a KlarityClient, fetches the NoteSet, then renders and writes
each note through the VaultWriter (in a worker thread, one at a time).
Progress and outcomes go to the StatusSink. A boolean in-flight flag makes
overlapping triggers return a SKIPPED result instead of starting a second
cycle.

RULES:
- No API key → NOT_CONFIGURED, no network call
- Any fetch-side KlaritySyncError → FAILED, no writes, lastSyncTime unchanged
- WriteError on one note → logged, noticed, counted, cycle continues
- After the loop lastSyncTime is set to now (UTC, ISO-8601) and persisted,
  even when some notes failed
- Summary text is "<processed>/<total> notes synced."; shown as a notice when
  notify_user, otherwise as status text that clears after STATUS_CLEAR_DELAY_S
- Notes are processed strictly in the order received, never in parallel
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from klarity_sync.api.client import KlarityClient
from klarity_sync.config import STATUS_CLEAR_DELAY_S, SettingsStore
from klarity_sync.core.filenames import note_filename
from klarity_sync.core.template import render_note
from klarity_sync.errors import KlaritySyncError, WriteError
from klarity_sync.sync.status import StatusSink
from klarity_sync.vault.writer import VaultWriter, join_vault_path

logger = logging.getLogger(__name__)

MSG_NO_API_KEY = "Please set your Klarity API key in settings"
MSG_SYNCING = "Syncing with Klarity..."
MSG_STARTING = "Starting Klarity sync..."
MSG_FAILED = "Failed to sync with Klarity"


class SyncStatus(str, enum.Enum):
    """How a run_sync() call ended.

    - completed: the fetch worked and every note was attempted
    - failed: the fetch failed; nothing was written
    - not_configured: no API key; nothing was attempted
    - skipped: another cycle was already running
    """

    COMPLETED = "completed"
    FAILED = "failed"
    NOT_CONFIGURED = "not_configured"
    SKIPPED = "skipped"


class SyncTrigger(str, enum.Enum):
    """What started a cycle."""

    MANUAL = "manual"
    SCHEDULED = "scheduled"
    STARTUP = "startup"


@dataclass
class SyncResult:
    """Outcome of one run_sync() call.

    Attributes:
        status: How the call ended.
        trigger: What started it.
        processed: Notes written successfully.
        failed: Notes whose write failed.
        total: Notes returned by the fetch.
        error: The classified fetch error when status is FAILED.
        message: The user-visible summary or failure text.
        written: Vault-relative paths written, in order.
        started_at: When the call started (UTC).
        finished_at: When the call returned (UTC).
    """

    status: SyncStatus
    trigger: SyncTrigger
    processed: int = 0
    failed: int = 0
    total: int = 0
    error: Optional[KlaritySyncError] = None
    message: str = ""
    written: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


ClientFactory = Callable[[str], KlarityClient]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


class SyncOrchestrator:
    """Runs sync cycles against one vault and one settings store.

    WHY: The scheduler and the CLI need a single awaitable entry point that
    does the whole cycle and reports what happened.

    HOW: Collaborators are injected: the settings store, the vault writer,
    the status sink, and a factory that builds a KlarityClient for an API
    key (tests pass one backed by httpx.MockTransport).

    RULES:
    - run_sync() never raises for classified errors; it returns a SyncResult
    - Only one cycle runs at a time; the check-and-set of the in-flight
      flag happens with no await in between
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        writer: VaultWriter,
        status_sink: StatusSink,
        client_factory: Optional[ClientFactory] = None,
        clock: Callable[[], datetime] = _utc_now,
        status_clear_delay: float = STATUS_CLEAR_DELAY_S,
    ) -> None:
        self._store = settings_store
        self._writer = writer
        self._sink = status_sink
        self._client_factory = client_factory or KlarityClient
        self._clock = clock
        self._status_clear_delay = status_clear_delay
        self._running = False
        self._clear_handle: Optional[asyncio.TimerHandle] = None

    @property
    def running(self) -> bool:
        """True while a cycle is in flight."""
        return self._running

    async def run_sync(
        self,
        notify_user: bool = True,
        trigger: SyncTrigger = SyncTrigger.MANUAL,
    ) -> SyncResult:
        """Run one sync cycle, or skip it if one is already running.

        Args:
            notify_user: Show start and summary as notices rather than only
                         transient status text.
            trigger: What started this cycle, for logging and the result.

        Returns:
            The SyncResult describing what happened.
        """
        if self._running:
            logger.info("Sync (%s) skipped: a sync is already running", trigger.value)
            now = self._clock()
            return SyncResult(
                status=SyncStatus.SKIPPED,
                trigger=trigger,
                message="A Klarity sync is already running.",
                started_at=now,
                finished_at=now,
            )

        self._running = True
        try:
            return await self._run_cycle(notify_user, trigger)
        finally:
            self._running = False

    async def _run_cycle(self, notify_user: bool, trigger: SyncTrigger) -> SyncResult:
        result = SyncResult(status=SyncStatus.COMPLETED, trigger=trigger, started_at=self._clock())
        settings = self._store.snapshot()

        # Step 1: guard
        if not settings.api_key.strip():
            logger.warning("Sync (%s) not started: no API key configured", trigger.value)
            self._sink.notice(MSG_NO_API_KEY)
            result.status = SyncStatus.NOT_CONFIGURED
            result.message = MSG_NO_API_KEY
            result.finished_at = self._clock()
            return result

        # Step 2: announce
        logger.info("Sync (%s) started", trigger.value)
        self._cancel_status_clear()
        self._sink.set_status(MSG_SYNCING)
        if notify_user:
            self._sink.notice(MSG_STARTING)

        # Step 3: fetch
        try:
            async with self._client_factory(settings.api_key) as client:
                note_set = await client.fetch_notes()
        except KlaritySyncError as e:
            logger.error("Sync (%s) failed: %s: %s", trigger.value, type(e).__name__, e.message)
            message = "{}: {}".format(MSG_FAILED, e.message)
            self._sink.set_status(message)
            self._sink.notice(message)
            self._schedule_status_clear()
            result.status = SyncStatus.FAILED
            result.error = e
            result.message = message
            result.finished_at = self._clock()
            return result

        # Step 4: render and write, in order
        result.total = len(note_set)
        for note in note_set:
            path = join_vault_path(settings.sync_directory, note_filename(note.title))
            content = render_note(settings.note_template, note)
            try:
                outcome = await asyncio.to_thread(self._writer.write, path, content)
            except WriteError as e:
                result.failed += 1
                logger.warning("Could not write note %s to %s: %s", note.id, path, e.message)
                self._sink.notice('Klarity: could not save "{}": {}'.format(note.title, e.message))
                continue

            result.processed += 1
            result.written.append(path)
            logger.debug("Note %s %s at %s", note.id, outcome.value, path)
            self._sink.set_status("{} {}/{}".format(MSG_SYNCING, result.processed, result.total))

        # Step 5: record the sync, even with per-note failures
        finished = self._clock()
        try:
            self._store.update(last_sync_time=format_timestamp(finished))
        except OSError:
            logger.exception("Could not persist lastSyncTime to %s", self._store.path)
            self._sink.notice("Klarity: notes synced but settings could not be saved")

        # Step 6: summary
        result.message = "{}/{} notes synced.".format(result.processed, result.total)
        logger.info(
            "Sync (%s) finished: %s %d failed",
            trigger.value,
            result.message,
            result.failed,
        )
        self._sink.set_status(result.message)
        if notify_user:
            self._sink.notice(result.message)
        self._schedule_status_clear()

        result.finished_at = finished
        return result

    def _schedule_status_clear(self) -> None:
        """Clear the status text after the delay, unless a new cycle starts first."""
        self._cancel_status_clear()
        loop = asyncio.get_running_loop()
        self._clear_handle = loop.call_later(self._status_clear_delay, self._sink.clear_status)

    def _cancel_status_clear(self) -> None:
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_handle = None
