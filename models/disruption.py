# models/disruption.py
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PriorityLevel(str, Enum):
    SERVICE_SUSPENSION = "service_suspension"
    SERVICE_DISRUPTION = "service_disruption"
    STATION_CLOSURE = "station_closure"
    FACILITIES_OUT_OF_USE = "facilities_out_of_use"
    IMPROVEMENT_WORKS = "improvement_works"
    FOR_INFORMATION_ONLY = "for_information_only"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def color(self) -> str:
        """Hex colour hint used by the Android notification block."""
        return _COLORS.get(self, "#808080")


_DISPLAY_NAMES = {
    PriorityLevel.SERVICE_SUSPENSION: "Service Suspended",
    PriorityLevel.SERVICE_DISRUPTION: "Service Disruption",
    PriorityLevel.STATION_CLOSURE: "Station Closed",
    PriorityLevel.FACILITIES_OUT_OF_USE: "Facilities Unavailable",
    PriorityLevel.IMPROVEMENT_WORKS: "Improvement Works",
    PriorityLevel.FOR_INFORMATION_ONLY: "Information",
    PriorityLevel.OTHER: "Other",
}

_COLORS = {
    PriorityLevel.SERVICE_SUSPENSION: "#FF0000",
    PriorityLevel.SERVICE_DISRUPTION: "#FFA500",
    PriorityLevel.STATION_CLOSURE: "#FF0000",
    PriorityLevel.FACILITIES_OUT_OF_USE: "#FFFF00",
    PriorityLevel.IMPROVEMENT_WORKS: "#0000FF",
}


class Disruption(BaseModel):
    """
    One active service event as reported by the upstream feed.

    Field names match the snake_case wire format. Instances are frozen:
    a disruption is never mutated after it has been decoded.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    created_at: str = ""
    title: str = ""
    content: str = ""
    priority_level: PriorityLevel = PriorityLevel.OTHER
    all_routes: bool = False
    all_stations: bool = False
    impacted_routes: Tuple[str, ...] = ()
    impacted_stations: Tuple[str, ...] = ()
    impacted_facilities: Tuple[str, ...] = ()
    order: int = 0

    # optional feed fields, informational only
    important: Optional[bool] = None
    version: Optional[int] = None
    topics: Optional[str] = None
    guid: Optional[str] = None
    active: Optional[bool] = None
    additional_info_title: Optional[str] = None
    additional_info_url: Optional[str] = None

    @field_validator("priority_level", mode="before")
    @classmethod
    def _unknown_priority_is_other(cls, value):
        try:
            return PriorityLevel(value)
        except ValueError:
            return PriorityLevel.OTHER

    @field_validator("impacted_routes", "impacted_stations", "impacted_facilities", mode="before")
    @classmethod
    def _null_list_is_empty(cls, value):
        return () if value is None else value

    @property
    def notification_worthy(self) -> bool:
        return self.priority_level != PriorityLevel.FOR_INFORMATION_ONLY


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Snapshot(BaseModel):
    """The full disruption set observed at the end of the most recent cycle."""
    model_config = ConfigDict(frozen=True)

    disruptions: Dict[int, Disruption] = Field(default_factory=dict)
    taken_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def of(cls, disruptions: Iterable[Disruption]) -> "Snapshot":
        # duplicate ids in one fetch: last one wins
        return cls(disruptions={d.id: d for d in disruptions})

    @property
    def ids(self) -> set[int]:
        return set(self.disruptions)

    def notification_worthy_ids(self) -> set[int]:
        return {d.id for d in self.disruptions.values() if d.notification_worthy}

    def ordered(self) -> List[Disruption]:
        return sorted(self.disruptions.values(), key=lambda d: (d.order, d.id))

    def __len__(self) -> int:
        return len(self.disruptions)
