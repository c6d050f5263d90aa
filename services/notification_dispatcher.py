# services/notification_dispatcher.py
import asyncio
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from config.settings import settings
from core.errors import PublishError
from models.disruption import Disruption
from models.dispatch import DispatchReport, TopicPublishResult
from services.push_backends import PushBackend

logger = logging.getLogger(__name__)


def build_message(disruption: Disruption, title: str | None = None) -> Dict[str, Any]:
    """
    Push message for one disruption. The data block carries disruptionId so a
    tapped notification can be routed to the disruption's detail view.
    """
    return {
        "notification": {
            "title": title or settings.NOTIFICATION_TITLE,
            "subtitle": disruption.title,
            "body": disruption.content or disruption.title,
        },
        "data": {
            "disruptionId": str(disruption.id),
            "priorityLevel": disruption.priority_level.value,
            "title": disruption.title,
            "content": disruption.content,
            "createdAt": disruption.created_at,
            "impactedRoutes": ",".join(disruption.impacted_routes),
        },
        "android": {
            "notification": {
                "icon": "ic_stat_metro",
                "color": disruption.priority_level.color,
            }
        },
        "apns": {"payload": {"aps": {"sound": "default"}}},
    }


def disruption_id_from_payload(data: Mapping[str, Any]) -> Optional[int]:
    """Return the disruption id carried in a delivered notification's data block."""
    raw = data.get("disruptionId")
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning("Notification payload has malformed disruptionId=%r", raw)
        return None


class NotificationDispatcher:
    """
    Publishes one message per resolved topic.

    Topics are published concurrently and independently; a failed or timed-out
    topic is recorded in the report and never prevents the others.
    """

    def __init__(self, backend: PushBackend, timeout: float | None = None, title: str | None = None):
        self.backend = backend
        self.timeout = timeout if timeout is not None else settings.PUBLISH_TIMEOUT_SEC
        self.title = title or settings.NOTIFICATION_TITLE

    async def _publish_one(self, topic: str, message: Dict[str, Any]) -> TopicPublishResult:
        try:
            message_id = await asyncio.wait_for(self.backend.publish(topic, message), timeout=self.timeout)
            logger.info("Sent disruption %s to topic %s (%s)", message["data"]["disruptionId"], topic, message_id)
            return TopicPublishResult(topic=topic, success=True, message_id=str(message_id))
        except asyncio.TimeoutError:
            err = PublishError(topic, f"timed out after {self.timeout}s")
        except Exception as e:
            err = PublishError(topic, str(e) or type(e).__name__)
        logger.error("Error sending disruption %s: %s", message["data"]["disruptionId"], err)
        return TopicPublishResult(topic=topic, success=False, error=str(err))

    async def dispatch(self, disruption: Disruption, topics: Iterable[str]) -> DispatchReport:
        message = build_message(disruption, self.title)
        topics = list(dict.fromkeys(topics))
        logger.info("Sending notification for disruption %s to %s", disruption.id, topics)
        results = await asyncio.gather(*(self._publish_one(t, message) for t in topics))
        return DispatchReport(disruption_id=disruption.id, results=list(results))

    async def send_test(self, token: str) -> str:
        message = {
            "notification": {
                "title": "Test Notification",
                "subtitle": self.title,
                "body": "This is a test notification to confirm push notifications are working correctly.",
            },
        }
        return await asyncio.wait_for(self.backend.send_to_token(token, message), timeout=self.timeout)
