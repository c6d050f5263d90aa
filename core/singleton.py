# core/singleton.py
"""
Process-wide pipeline wiring.

One state store, one scheduler; hosts (the FastAPI app, tests) reach them
through get_scheduler()/get_registry() so they can be overridden.
"""
from config.settings import settings
from core.topic_router import default_router
from services.device_registry import DeviceRegistry
from services.feed_client import FeedClient
from services.notification_dispatcher import NotificationDispatcher
from services.push_backends import build_backend
from services.scheduler import DisruptionScheduler
from services.state_store import DisruptionStateStore

topic_router = default_router()
device_registry = DeviceRegistry(default_topics=topic_router.all_topics)
push_backend = build_backend(settings.PUSH_BACKEND, registry=device_registry)

snapshot_mirror = None
if settings.SNAPSHOT_AUDIT_ENABLED:
    from infra.redis_client import SnapshotMirror
    snapshot_mirror = SnapshotMirror()

state_store = DisruptionStateStore(audit=snapshot_mirror.store if snapshot_mirror else None)
notification_dispatcher = NotificationDispatcher(push_backend)
disruption_scheduler = DisruptionScheduler(
    feed=FeedClient(),
    store=state_store,
    router=topic_router,
    dispatcher=notification_dispatcher,
)


def get_scheduler() -> DisruptionScheduler:
    return disruption_scheduler


def get_registry() -> DeviceRegistry:
    return device_registry


__all__ = [
    "topic_router",
    "device_registry",
    "push_backend",
    "snapshot_mirror",
    "state_store",
    "notification_dispatcher",
    "disruption_scheduler",
    "get_scheduler",
    "get_registry",
]
