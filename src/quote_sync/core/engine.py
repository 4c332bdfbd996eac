"""
Sync Engine - orchestrates push, pull and merge cycles.

Coordinates all components:
- Local state (record store, dirty set, conflict log)
- Remote client for push and pull
- Merge engine for reconciliation
- Periodic scheduling with a no-overlap guard
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from quote_sync.core.merge import MergeEngine, MergeResult
from quote_sync.core.models import Record
from quote_sync.core.state import LocalState
from quote_sync.errors import QuoteSyncError
from quote_sync.utils.logger import get_logger

if TYPE_CHECKING:
    from quote_sync.connectors.remote import RemoteClient

DEFAULT_INTERVAL_SECONDS = 30.0

logger = get_logger(__name__)


class SyncPhase(str, Enum):
    """Where the engine is in its cycle."""

    IDLE = "idle"
    PUSHING = "pushing"
    PULLING = "pulling"
    MERGING = "merging"
    FAILED = "failed"


class SyncOutcome(str, Enum):
    """How a cycle ended."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class Severity(str, Enum):
    """Severity passed to the status callback."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class SyncReport:
    """Statistics for one sync cycle."""

    outcome: SyncOutcome = SyncOutcome.SUCCESS
    pushed: int = 0
    created: int = 0
    pulled: int = 0
    added: int = 0
    updated: int = 0
    confirmed: int = 0
    conflicts: int = 0
    error: str | None = None
    failed_phase: SyncPhase | None = None
    start_time: float = 0.0
    end_time: float = 0.0
    errors: list[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        """Duration in seconds."""
        if self.end_time and self.start_time:
            return self.end_time - self.start_time
        if self.start_time:
            return time.time() - self.start_time
        return 0.0

    @property
    def ok(self) -> bool:
        return self.outcome == SyncOutcome.SUCCESS

    @property
    def has_conflicts(self) -> bool:
        return self.conflicts > 0

    def log_fields(self) -> dict[str, Any]:
        """Counts attached to the end-of-cycle log line."""
        return {
            "outcome": self.outcome.value,
            "failed_phase": self.failed_phase.value if self.failed_phase else None,
            "pushed": self.pushed,
            "created": self.created,
            "pulled": self.pulled,
            "added": self.added,
            "updated": self.updated,
            "confirmed": self.confirmed,
            "conflicts": self.conflicts,
            "duration_seconds": round(self.duration_seconds, 3),
        }

    def apply_merge(self, merge: MergeResult) -> None:
        self.pulled = merge.pulled
        self.added = merge.added
        self.updated = merge.updated
        self.confirmed = merge.confirmed
        self.conflicts = merge.conflicts


# Status callback: (message, severity, has_conflicts)
StatusCallback = Callable[[str, Severity, bool], None]


class SyncEngine:
    """
    Runs push -> pull -> merge cycles against one remote collection.

    At most one cycle runs at a time: a cycle requested while another is in
    flight (manual trigger or timer tick) is skipped, not queued.

    Example:
        state = LocalState.open(settings.state_dir)
        async with create_remote_client(settings) as remote:
            engine = SyncEngine(state, remote, on_status=print_status)

            # One cycle
            report = await engine.run_sync_cycle()

            # Or every 30 seconds until stopped
            engine.start_periodic_sync()
    """

    def __init__(
        self,
        state: LocalState,
        remote: RemoteClient,
        on_status: StatusCallback | None = None,
        pull_limit: int | None = None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        """
        Initialize sync engine.

        Args:
            state: Local state context
            remote: Remote collection client
            on_status: Optional status callback
            pull_limit: Items per pull (defaults to the remote config)
            interval_seconds: Period of start_periodic_sync()
        """
        self.state = state
        self.remote = remote
        self.merger = MergeEngine(state)
        self.on_status = on_status
        self.pull_limit = pull_limit or remote.config.pull_limit
        self.interval_seconds = interval_seconds

        self._phase = SyncPhase.IDLE
        self._in_progress = False
        self._timer_task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None
        self.cycles_run = 0
        self.cycles_skipped = 0
        self.last_report: SyncReport | None = None

    @property
    def phase(self) -> SyncPhase:
        return self._phase

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    @property
    def is_running_periodically(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    def _notify(self, message: str, severity: Severity, has_conflicts: bool = False) -> None:
        if self.on_status is None:
            return
        try:
            self.on_status(message, severity, has_conflicts)
        except Exception:
            logger.exception("Status callback failed")

    async def run_sync_cycle(self) -> SyncReport:
        """
        Run one push -> pull -> merge cycle.

        Any failure aborts the rest of the cycle and is reported as
        retryable; records already confirmed by a push stay confirmed.

        Returns:
            SyncReport; outcome SKIPPED if another cycle was in flight
        """
        # Checked and set before the first await, so no other task can interleave
        if self._in_progress:
            self.cycles_skipped += 1
            logger.info("Sync already in progress, skipping this request")
            return SyncReport(outcome=SyncOutcome.SKIPPED)

        self._in_progress = True
        report = SyncReport(start_time=time.time())

        try:
            republished = await self._push_pending(report)

            self._phase = SyncPhase.PULLING
            pulled = await self.remote.pull(self.pull_limit)

            self._phase = SyncPhase.MERGING
            report.apply_merge(self.merger.merge(pulled))
            self._settle_republished(republished, pulled)

            self.state.last_sync.touch()
            self.cycles_run += 1

        except QuoteSyncError as e:
            report.outcome = SyncOutcome.FAILED
            report.failed_phase = self._phase
            report.error = str(e)
            report.errors.append(f"{self._phase.value}: {e}")
            self._phase = SyncPhase.FAILED
            logger.warning("Sync failed while %s: %s", report.failed_phase.value, e)
            self._notify(f"Sync failed (will retry): {e}", Severity.ERROR)

        finally:
            report.end_time = time.time()
            self._phase = SyncPhase.IDLE
            self._in_progress = False
            self.last_report = report

        logger.info("Sync cycle %s", report.outcome.value, extra={"fields": report.log_fields()})
        if report.ok:
            self._report_success(report)
        return report

    async def _push_pending(self, report: SyncReport) -> list[tuple[Record, tuple[str, str]]]:
        """
        Push every never-synced or dirty record, one at a time.

        A record that gains a remote id is confirmed and leaves the dirty
        set. Edits to already-published records stay dirty until the merge
        confirms or supersedes them. Store and dirty set are saved even when
        a push fails part-way, so confirmed creations are not sent twice.

        Returns:
            Already-published records that were re-sent, with the content sent
        """
        self._phase = SyncPhase.PUSHING
        republished: list[tuple[Record, tuple[str, str]]] = []
        pending = self.state.pending_push()
        if not pending:
            return republished

        logger.debug("Pushing %d records", len(pending))
        try:
            for record in pending:
                sent = record.content()
                result = await self.remote.push(record)
                report.pushed += 1
                if result.created:
                    report.created += 1
                    self.state.dirty.unmark(record.id)
                else:
                    republished.append((record, sent))
        finally:
            if report.pushed:
                self.state.save_records()
        return republished

    def _settle_republished(
        self,
        republished: list[tuple[Record, tuple[str, str]]],
        pulled: list[Record],
    ) -> None:
        """
        Clear re-sent edits the pulled batch could not confirm.

        Records whose remote id was in the batch were already resolved by the
        merge. The rest were accepted by the remote and leave the dirty set,
        unless they were edited again while the cycle was running.
        """
        pulled_ids = {record.remote_id for record in pulled}
        settled = 0
        for record, sent in republished:
            if record.remote_id in pulled_ids or not self.state.dirty.is_dirty(record.id):
                continue
            if record.content() != sent:
                continue
            self.state.dirty.unmark(record.id)
            settled += 1
        if settled:
            logger.debug("Cleared %d re-sent records outside the pulled batch", settled)
            self.state.dirty.save()

    def _report_success(self, report: SyncReport) -> None:
        if report.has_conflicts:
            noun = "conflict" if report.conflicts == 1 else "conflicts"
            self._notify(
                f"Synced with server; {report.conflicts} {noun} resolved "
                f"(server copy kept, local copy saved for review)",
                Severity.WARNING,
                has_conflicts=True,
            )
        else:
            self._notify("Synced with server", Severity.SUCCESS)

    # =========================================================================
    # Scheduling
    # =========================================================================

    async def run_forever(self, max_cycles: int | None = None) -> None:
        """
        Run a cycle now and then every `interval_seconds` until stopped.

        Args:
            max_cycles: Stop after this many timer ticks (None = until stop())
        """
        if self._stop_event is None:
            self._stop_event = asyncio.Event()
        stop_event = self._stop_event
        ticks = 0
        while max_cycles is None or ticks < max_cycles:
            ticks += 1
            await self.run_sync_cycle()
            if max_cycles is not None and ticks >= max_cycles:
                break
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue
            break

    def start_periodic_sync(self) -> asyncio.Task[None]:
        """
        Start periodic syncing in a background task.

        Must be called from a running event loop. Calling it again while the
        timer is active returns the existing task.
        """
        if self.is_running_periodically:
            return self._timer_task  # type: ignore[return-value]
        self._stop_event = asyncio.Event()
        self._timer_task = asyncio.create_task(self.run_forever())
        return self._timer_task

    async def stop(self) -> None:
        """Stop the periodic timer, letting a cycle already in flight finish."""
        task = self._timer_task
        self._timer_task = None
        if self._stop_event is not None:
            self._stop_event.set()
        if task is not None and not task.done():
            await task
