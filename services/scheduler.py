"""
Disruption check scheduler.

Runs the fetch -> diff -> dispatch -> commit cycle on a fixed period and on
external triggers (manual/admin call, app-foreground event).

Guarantees:
- at most one cycle in flight; a trigger arriving while busy is skipped, not queued
- the first successful fetch only seeds the state store (no dispatch), so a
  restart never mass-notifies the disruptions that were already active
- on fetch failure nothing is committed and nothing is dispatched
- commit happens only after every dispatch attempt of the cycle has finished
- each disruption id is dispatched at most once per process lifetime
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional, Set

from config.settings import settings
from core import change_detector
from core.errors import FetchError
from core.topic_router import TopicRouter
from models.disruption import Disruption
from models.dispatch import CycleReport, CycleStatus, SchedulerState
from services.feed_client import FeedClient
from services.notification_dispatcher import NotificationDispatcher
from services.state_store import DisruptionStateStore

logger = logging.getLogger(__name__)


class DisruptionScheduler:
    def __init__(
        self,
        feed: FeedClient,
        store: DisruptionStateStore,
        router: TopicRouter,
        dispatcher: NotificationDispatcher,
        interval_sec: float | None = None,
    ):
        self.feed = feed
        self.store = store
        self.router = router
        self.dispatcher = dispatcher
        self.interval_sec = interval_sec if interval_sec is not None else settings.POLL_INTERVAL_SEC
        self.state = SchedulerState.IDLE
        self.last_report: Optional[CycleReport] = None
        self._busy = False
        self._dispatched: Set[int] = set()
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self._busy

    async def seed(self, trigger: str = "seed") -> CycleReport:
        """Fetch-only initialization pass: commit the current feed without dispatching."""
        return await self.run_cycle(trigger=trigger, seed_only=True)

    async def run_cycle(self, trigger: str = "manual", force: bool = False, seed_only: bool = False) -> CycleReport:
        """
        Run one cycle and return its report. Never raises.

        force=True is a diagnostic opt-in: every notification-worthy disruption in
        the fetch is dispatched, bypassing the diff and the already-notified set.
        """
        if self._busy:
            logger.info("Cycle already in flight; ignoring trigger=%s", trigger)
            return CycleReport(trigger=trigger, status=CycleStatus.SKIPPED, forced=force,
                               finished_at=datetime.now(timezone.utc))

        self._busy = True
        report = CycleReport(trigger=trigger, status=CycleStatus.FAILED, forced=force)
        try:
            await self._run(report, force=force, seed_only=seed_only)
        except Exception as e:
            logger.exception("Unexpected error in disruption cycle (trigger=%s): %s", trigger, e)
            report.status = CycleStatus.FAILED
            report.error = str(e) or type(e).__name__
        finally:
            report.finished_at = datetime.now(timezone.utc)
            self.state = SchedulerState.IDLE
            self.last_report = report
            self._busy = False
        return report

    async def _run(self, report: CycleReport, force: bool, seed_only: bool):
        self.state = SchedulerState.FETCHING
        try:
            current = await self.feed.fetch()
        except FetchError as e:
            self.state = SchedulerState.FAILED
            logger.error("Error checking for disruptions (trigger=%s): %s", report.trigger, e)
            report.status = CycleStatus.FAILED
            report.error = str(e)
            return
        report.fetched = len(current)

        if not force and (seed_only or not self.store.is_seeded):
            self.state = SchedulerState.COMMITTING
            await self.store.commit(current)
            logger.info("Seeded disruption state with %d disruptions; nothing dispatched", len(current))
            report.status = CycleStatus.SEEDED
            return

        self.state = SchedulerState.DIFFING
        previous = self.store.current()
        new = self._new_disruptions(previous, current, force)
        report.new_disruptions = [d.id for d in new]
        report.removed_disruptions = change_detector.removed(previous, current)
        logger.info("Found %d new disruptions", len(new))
        if report.removed_disruptions:
            logger.info("Disruptions no longer active: %s", report.removed_disruptions)

        self.state = SchedulerState.DISPATCHING
        for disruption in new:
            topics = self.router.topics_for(disruption)
            self._dispatched.add(disruption.id)
            report.reports.append(await self.dispatcher.dispatch(disruption, topics))

        self.state = SchedulerState.COMMITTING
        await self.store.commit(current)
        report.status = CycleStatus.COMPLETED

    def _new_disruptions(self, previous, current: List[Disruption], force: bool) -> List[Disruption]:
        if force:
            worthy = {}
            for d in current:
                if d.notification_worthy:
                    worthy[d.id] = d
            return list(worthy.values())
        detected = change_detector.detect(previous, current)
        already = [d.id for d in detected if d.id in self._dispatched]
        if already:
            logger.info("Skipping disruptions already notified in this process: %s", already)
        return [d for d in detected if d.id not in self._dispatched]

    # ---------------- periodic loop ----------------
    async def _loop(self):
        while self._running:
            await self.run_cycle(trigger="timer")
            await asyncio.sleep(self.interval_sec)

    def start(self):
        """Start the periodic task. The first tick seeds the store."""
        if self._task is not None and not self._task.done():
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Disruption scheduler started (interval=%ss)", self.interval_sec)

    async def stop(self):
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Disruption scheduler stopped")

    def status(self) -> dict:
        return {
            "state": self.state.value,
            "running": self._task is not None and not self._task.done(),
            "busy": self._busy,
            "seeded": self.store.is_seeded,
            "snapshot_size": len(self.store.current()),
            "interval_sec": self.interval_sec,
            "last_cycle": self.last_report.summary() if self.last_report else None,
        }
