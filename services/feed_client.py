"""
Disruptions feed client.

Provides:
- FeedClient.fetch(): one GET against the configured disruptions endpoint,
  decoded into Disruption models.

Any transport error, timeout, non-2xx status or decode failure is raised as
FetchError; nothing else escapes. No retries here: the scheduler simply tries
again on its next tick.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from config.settings import settings
from core.errors import FetchError
from models.disruption import Disruption

logger = logging.getLogger(__name__)


class FeedClient:
    def __init__(
        self,
        url: str | None = None,
        params: Dict[str, str] | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.FEED_URL
        self.params = params if params is not None else settings.feed_params()
        self.timeout = timeout if timeout is not None else settings.FEED_TIMEOUT_SEC
        self._transport = transport

    async def fetch(self) -> List[Disruption]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(self.url, params=self.params)
        except httpx.TimeoutException as e:
            logger.error("Feed request to %s timed out: %s", self.url, e)
            raise FetchError(f"feed request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.error("Feed request to %s failed: %s", self.url, e)
            raise FetchError(f"feed request failed: {e}") from e

        if not (200 <= resp.status_code < 300):
            logger.error("Feed %s returned %s", self.url, resp.status_code)
            raise FetchError(f"feed returned HTTP {resp.status_code}", status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            logger.error("Feed returned invalid JSON: %s", e)
            raise FetchError("feed returned invalid JSON") from e

        return self._decode(data)

    @staticmethod
    def _decode(data: Any) -> List[Disruption]:
        if not isinstance(data, list):
            raise FetchError(f"expected a JSON array, got {type(data).__name__}")
        try:
            disruptions = [Disruption.model_validate(item) for item in data]
        except ValidationError as e:
            logger.error("Feed payload failed validation: %s", e)
            raise FetchError("feed payload failed validation") from e
        logger.info("Fetched %d disruptions", len(disruptions))
        return disruptions


feed_client = FeedClient()
