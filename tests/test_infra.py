import json

import pytest

from infra.rabbitmq_client import RabbitMQPushBackend
from infra.redis_client import SnapshotMirror
from models.disruption import Snapshot

from conftest import make_disruption


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    async def get(self, key):
        return self.data.get(key)

    async def aclose(self):
        pass


class FakeExchange:
    def __init__(self):
        self.published = []

    async def publish(self, message, routing_key):
        self.published.append((routing_key, json.loads(message.body)))


class FakeConnection:
    is_closed = False

    async def close(self):
        self.is_closed = True


@pytest.mark.asyncio
async def test_snapshot_mirror_round_trip():
    fake = FakeRedis()
    mirror = SnapshotMirror(key="test:snapshot", ttl=60, client=fake)

    stored = await mirror.store(Snapshot.of([make_disruption(2, order=2), make_disruption(1, order=1)]))
    loaded = await mirror.load()

    assert stored is True
    assert fake.ttls["test:snapshot"] == 60
    assert [d["id"] for d in loaded["disruptions"]] == [1, 2]


@pytest.mark.asyncio
async def test_snapshot_mirror_ignores_corrupt_value():
    fake = FakeRedis()
    fake.data["test:snapshot"] = "{not json"
    mirror = SnapshotMirror(key="test:snapshot", client=fake)
    assert await mirror.load() is None


@pytest.mark.asyncio
async def test_rabbitmq_backend_routes_by_topic():
    backend = RabbitMQPushBackend(url="amqp://unused/", exchange_name="push")
    exchange = FakeExchange()
    backend._connection = FakeConnection()
    backend._exchange = exchange

    message_id = await backend.publish("green_line", {"data": {"disruptionId": "1"}})
    await backend.send_to_token("tok", {"notification": {"title": "Test"}})

    assert message_id
    assert exchange.published[0][0] == "green_line"
    assert exchange.published[0][1]["topic"] == "green_line"
    assert exchange.published[1][0] == "device.tok"
