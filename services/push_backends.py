"""
Push backends the notification dispatcher publishes through.

- ConsolePushBackend: logs each publish (dev only); reports subscriber counts
  from the device registry
- LocalNotificationBackend: the on-device local-notification surface; one
  pending request per disruption, keyed "disruption-<id>"
- RabbitMQPushBackend (infra.rabbitmq_client): topic exchange for a push gateway
"""
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from services.device_registry import DeviceRegistry

logger = logging.getLogger(__name__)


class PushBackend(ABC):
    @abstractmethod
    async def publish(self, topic: str, message: Dict[str, Any]) -> str:
        """Publish one message to a topic. Returns a message id; raises on failure."""
        raise NotImplementedError()

    @abstractmethod
    async def send_to_token(self, token: str, message: Dict[str, Any]) -> str:
        """Send one message directly to a device token."""
        raise NotImplementedError()

    async def close(self):
        return None


class ConsolePushBackend(PushBackend):
    def __init__(self, registry: Optional[DeviceRegistry] = None):
        self.registry = registry
        self.sent: List[Dict[str, Any]] = []

    async def publish(self, topic: str, message: Dict[str, Any]) -> str:
        message_id = f"console-{uuid.uuid4()}"
        subscribers = len(self.registry.subscribers(topic)) if self.registry else 0
        notification = message.get("notification", {})
        logger.info(
            "[PUSH] topic=%s subscribers=%d title=%s body=%s",
            topic, subscribers, notification.get("title"), notification.get("body"),
        )
        self.sent.append({"topic": topic, "message_id": message_id, "message": message})
        return message_id

    async def send_to_token(self, token: str, message: Dict[str, Any]) -> str:
        message_id = f"console-{uuid.uuid4()}"
        logger.info("[PUSH] token=%s... message=%s", token[:8], message.get("notification"))
        self.sent.append({"token": token, "message_id": message_id, "message": message})
        return message_id

    def recent(self, limit: int = 20):
        return self.sent[-limit:]


class LocalNotificationBackend(PushBackend):
    """
    Local-notification path for a process that observes the feed itself.

    The topic is irrelevant on a single device: one request per disruption is
    kept, and re-adding the same identifier replaces the pending request.
    """

    CATEGORY = "DISRUPTION"

    def __init__(self):
        self.pending: Dict[str, Dict[str, Any]] = {}

    async def publish(self, topic: str, message: Dict[str, Any]) -> str:
        data = message.get("data", {})
        identifier = f"disruption-{data.get('disruptionId', uuid.uuid4())}"
        notification = message.get("notification", {})
        self.pending[identifier] = {
            "identifier": identifier,
            "title": notification.get("title"),
            "subtitle": notification.get("subtitle"),
            "body": notification.get("body"),
            "category": self.CATEGORY,
            "user_info": data,
            "scheduled_at": datetime.now(timezone.utc).isoformat(),
        }
        logger.info("Scheduled local notification %s", identifier)
        return identifier

    async def send_to_token(self, token: str, message: Dict[str, Any]) -> str:
        identifier = str(uuid.uuid4())
        notification = message.get("notification", {})
        self.pending[identifier] = {
            "identifier": identifier,
            "title": notification.get("title"),
            "subtitle": notification.get("subtitle"),
            "body": notification.get("body"),
            "category": None,
            "user_info": message.get("data", {}),
            "scheduled_at": datetime.now(timezone.utc).isoformat(),
        }
        return identifier


def build_backend(kind: str, registry: Optional[DeviceRegistry] = None) -> PushBackend:
    """Create the push backend selected by settings.PUSH_BACKEND."""
    kind = (kind or "console").lower()
    if kind == "rabbitmq":
        from infra.rabbitmq_client import RabbitMQPushBackend
        return RabbitMQPushBackend()
    if kind == "local":
        return LocalNotificationBackend()
    if kind != "console":
        logger.warning("Unknown PUSH_BACKEND=%s, using console", kind)
    return ConsolePushBackend(registry)
