# services/state_store.py
import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional

from models.disruption import Disruption, Snapshot

logger = logging.getLogger(__name__)

AuditSink = Callable[[Snapshot], Awaitable[bool]]


class DisruptionStateStore:
    """
    Holds the single live snapshot.

    Reads return the current immutable Snapshot and never block; commits are
    serialized and swap the reference in one assignment. An optional audit sink
    receives each committed snapshot (durable copy); its failures are logged only.
    """

    def __init__(self, audit: Optional[AuditSink] = None):
        self._snapshot = Snapshot()
        self._seeded = False
        self._lock = asyncio.Lock()
        self._audit = audit
        self.commits = 0

    def current(self) -> Snapshot:
        return self._snapshot

    @property
    def is_seeded(self) -> bool:
        return self._seeded

    async def commit(self, disruptions: Iterable[Disruption]) -> Snapshot:
        snapshot = Snapshot.of(disruptions)
        async with self._lock:
            self._snapshot = snapshot
            self._seeded = True
            self.commits += 1
        logger.info("Committed snapshot with %d disruptions", len(snapshot))

        if self._audit is not None:
            try:
                stored = await self._audit(snapshot)
                if not stored:
                    logger.warning("Snapshot audit copy was not stored")
            except Exception as e:
                logger.error("Snapshot audit copy failed: %s", e)
        return snapshot
