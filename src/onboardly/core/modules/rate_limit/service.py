from datetime import UTC, datetime
from functools import partial
from typing import Any

import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from onboardly import utils
from onboardly.core.core import Service
from onboardly.core.modules.rate_limit.models import RateLimitCheck, RateLimitCounter
from onboardly.errors import RateLimitExceeded

logger = structlog.get_logger(__name__)


class RateLimitService(Service):
    """Counts requests per (route, identifier) in fixed windows shared by all workers."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("rate_limits")

    async def on_start(self) -> None:
        """Create indexes on startup."""
        await self._collection.create_index([("key", 1), ("window_start", 1)], unique=True)
        await self._collection.create_index([("expires_at", 1)], expireAfterSeconds=0)

    async def hit(self, identifier: str, route: str) -> int:
        """Atomically count one request and return the hits in the current window.

        Raises:
            RateLimitExceeded: If the count goes over the configured maximum
        """
        max_requests = self.core.config.rate_limit_max_requests
        if max_requests <= 0:
            return 0

        window = self.core.config.rate_limit_window_seconds
        window_start = int(utils.now().timestamp()) // window * window
        counter = RateLimitCounter(
            key=f"{route}:{identifier}",
            window_start=window_start,
            expires_at=datetime.fromtimestamp(window_start + window, UTC),
        )
        doc = await self._collection.find_one_and_update(
            {"key": counter.key, "window_start": counter.window_start},
            {"$inc": {"hits": 1}, "$setOnInsert": {"expires_at": counter.expires_at}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

        hits = int(doc["hits"])
        if hits > max_requests:
            logger.warning("rate_limit_exceeded", route=route, hits=hits)
            raise RateLimitExceeded
        return hits

    def limiter(self, route: str) -> RateLimitCheck:
        """Bind the counter to a route, for operations that take a rate-limit capability."""
        return partial(self._check, route=route)

    async def _check(self, identifier: str, route: str) -> None:
        await self.hit(identifier, route)
