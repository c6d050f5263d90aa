"""
Redis snapshot mirror.

Purpose:
- Keep a durable audit copy of the latest committed disruption snapshot so
  operators can inspect it after a restart
- Never part of the diff: the in-process state store stays authoritative

Usage:
- mirror = SnapshotMirror(); store = DisruptionStateStore(audit=mirror.store)
"""
import json
import logging
from typing import Optional

import redis.asyncio as redis

from config.settings import settings
from models.disruption import Snapshot

logger = logging.getLogger(__name__)


class SnapshotMirror:
    """Async Redis wrapper storing the latest snapshot as JSON with a TTL."""

    def __init__(self, url: str | None = None, key: str | None = None, ttl: int | None = None,
                 client: Optional[redis.Redis] = None):
        self.url = url or settings.REDIS_URL
        self.key = key or settings.SNAPSHOT_AUDIT_KEY
        self.ttl = ttl if ttl is not None else settings.SNAPSHOT_AUDIT_TTL_SEC
        self.redis: Optional[redis.Redis] = client

    def _client(self) -> Optional[redis.Redis]:
        """
        Lazily create the Redis client.
        Returns None on failure so callers can carry on without the mirror.
        """
        if self.redis is None:
            try:
                self.redis = redis.Redis.from_url(self.url, encoding="utf-8", decode_responses=True)
                logger.info("Created Redis client for %s", self.url)
            except Exception as e:
                logger.error("Failed to create Redis client: %s", e)
                self.redis = None
        return self.redis

    async def store(self, snapshot: Snapshot) -> bool:
        """SETEX the snapshot. Returns True on success, False on any failure."""
        client = self._client()
        if client is None:
            return False
        value = json.dumps({
            "taken_at": snapshot.taken_at.isoformat(),
            "disruptions": [d.model_dump(mode="json") for d in snapshot.ordered()],
        })
        try:
            await client.setex(self.key, self.ttl, value)
            return True
        except Exception as e:
            logger.error("Redis SETEX error for %s: %s", self.key, e)
            return False

    async def load(self) -> Optional[dict]:
        client = self._client()
        if client is None:
            return None
        try:
            value = await client.get(self.key)
        except Exception as e:
            logger.error("Redis GET error for %s: %s", self.key, e)
            return None
        if not value:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning("Corrupt snapshot mirror under %s", self.key)
            return None

    async def close(self):
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
