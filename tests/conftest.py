import asyncio
import os
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# Ensure project root is on sys.path so `services.*` imports work
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

# The periodic task must not hit the real feed during tests
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("PUSH_BACKEND", "console")

# Explicitly enable pytest-asyncio plugin for async tests/fixtures
pytest_plugins = ("pytest_asyncio",)

from core.errors import FetchError
from core.topic_router import TopicRouter
from models.disruption import Disruption
from services.device_registry import DeviceRegistry
from services.notification_dispatcher import NotificationDispatcher
from services.push_backends import PushBackend
from services.scheduler import DisruptionScheduler
from services.state_store import DisruptionStateStore


def make_disruption(id: int, priority_level: str = "service_disruption", **kwargs) -> Disruption:
    payload = {
        "id": id,
        "created_at": "2025-03-24T08:00:00Z",
        "title": f"Disruption {id}",
        "content": f"Details for disruption {id}",
        "priority_level": priority_level,
        "all_routes": False,
        "all_stations": False,
        "impacted_routes": ["green_line"],
        "impacted_stations": [],
        "impacted_facilities": ["train_service"],
        "order": id,
    }
    payload.update(kwargs)
    return Disruption.model_validate(payload)


class FakeFeed:
    """Feed double: returns the configured disruptions or raises FetchError."""

    def __init__(self, disruptions: List[Disruption] | None = None, delay: float = 0.0):
        self.disruptions = list(disruptions or [])
        self.fail = False
        self.delay = delay
        self.calls = 0

    async def fetch(self) -> List[Disruption]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise FetchError("feed unavailable")
        return list(self.disruptions)


class RecordingBackend(PushBackend):
    """Push backend double recording every publish; topics in `failing` raise."""

    def __init__(self, failing=(), hanging=()):
        self.failing = set(failing)
        self.hanging = set(hanging)
        self.published: List[Dict[str, Any]] = []
        self.direct: List[Dict[str, Any]] = []

    async def publish(self, topic: str, message: Dict[str, Any]) -> str:
        if topic in self.hanging:
            await asyncio.sleep(60)
        if topic in self.failing:
            raise RuntimeError(f"backend rejected {topic}")
        self.published.append({"topic": topic, "message": message})
        return f"msg-{len(self.published)}"

    async def send_to_token(self, token: str, message: Dict[str, Any]) -> str:
        self.direct.append({"token": token, "message": message})
        return f"direct-{len(self.direct)}"

    def dispatched_ids(self) -> List[int]:
        return sorted({int(p["message"]["data"]["disruptionId"]) for p in self.published})


@pytest.fixture()
def router():
    return TopicRouter("metro_disruptions", ["green_line", "yellow_line"])


@pytest.fixture()
def feed():
    return FakeFeed()


@pytest.fixture()
def backend():
    return RecordingBackend()


@pytest.fixture()
def store():
    return DisruptionStateStore()


@pytest.fixture()
def scheduler(feed, store, router, backend):
    dispatcher = NotificationDispatcher(backend, timeout=0.5, title="Metro Status Update")
    return DisruptionScheduler(feed=feed, store=store, router=router, dispatcher=dispatcher, interval_sec=3600)


@pytest_asyncio.fixture()
async def api_client(scheduler):
    """Async test client for the relay app, wired to the test scheduler."""
    from main import app
    from core.singleton import get_registry, get_scheduler

    registry = DeviceRegistry(default_topics=["metro_disruptions", "green_line", "yellow_line"])
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    app.dependency_overrides[get_registry] = lambda: registry
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()
