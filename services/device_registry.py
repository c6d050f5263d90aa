from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Device(BaseModel):
    token: str
    device: str = "unknown"
    app_version: str = "unknown"
    topics: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class DeviceRegistry:
    """In-memory registry of device push tokens and their topic subscriptions."""

    def __init__(self, default_topics: Iterable[str] = ()):
        self.default_topics = list(default_topics)
        self.devices: Dict[str, Device] = {}

    def register(self, token: str, device: str | None = None, app_version: str | None = None,
                 topics: Optional[Iterable[str]] = None) -> Device:
        """
        Register (or refresh) a device token.
        Re-registering keeps created_at and replaces the rest, like a merge-set.
        """
        if not token:
            raise ValueError("Device token is required")
        chosen = list(topics) if topics is not None else list(self.default_topics)
        existing = self.devices.get(token)
        record = Device(
            token=token,
            device=device or "unknown",
            app_version=app_version or "unknown",
            topics=chosen,
            created_at=existing.created_at if existing else _utcnow(),
        )
        self.devices[token] = record
        logger.info("Registered device token=%s... topics=%s", token[:8], chosen)
        return record

    def unregister(self, token: str) -> bool:
        if token in self.devices:
            del self.devices[token]
            return True
        return False

    def get(self, token: str) -> Optional[Device]:
        return self.devices.get(token)

    def list_devices(self) -> List[Device]:
        return list(self.devices.values())

    def subscribers(self, topic: str) -> List[str]:
        return [d.token for d in self.devices.values() if topic in d.topics]
