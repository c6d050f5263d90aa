# models/dispatch.py
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TopicPublishResult(BaseModel):
    topic: str
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class DispatchReport(BaseModel):
    """Per-topic outcome of publishing one disruption."""
    disruption_id: int
    results: List[TopicPublishResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[str]:
        return [r.topic for r in self.results if r.success]

    @property
    def failed(self) -> List[str]:
        return [r.topic for r in self.results if not r.success]

    @property
    def ok(self) -> bool:
        return bool(self.results) and not self.failed


class CycleStatus(str, Enum):
    COMPLETED = "completed"
    SEEDED = "seeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class SchedulerState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    DIFFING = "diffing"
    DISPATCHING = "dispatching"
    COMMITTING = "committing"
    FAILED = "failed"


class CycleReport(BaseModel):
    trigger: str
    status: CycleStatus
    forced: bool = False
    fetched: int = 0
    new_disruptions: List[int] = Field(default_factory=list)
    removed_disruptions: List[int] = Field(default_factory=list)
    reports: List[DispatchReport] = Field(default_factory=list)
    error: Optional[str] = None
    started_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None

    def summary(self) -> dict:
        """Compact per-disruption view for the manual trigger endpoint."""
        return {
            "trigger": self.trigger,
            "status": self.status.value,
            "forced": self.forced,
            "fetched": self.fetched,
            "new_disruptions": self.new_disruptions,
            "removed_disruptions": self.removed_disruptions,
            "error": self.error,
            "dispatches": [
                {
                    "disruption_id": r.disruption_id,
                    "success": r.ok,
                    "succeeded": r.succeeded,
                    "failed": r.failed,
                }
                for r in self.reports
            ],
        }
