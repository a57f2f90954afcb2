import asyncio
import contextlib
from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from onboardly import utils
from onboardly.core.core import Service
from onboardly.core.modules.sweeper.models import CleanupResult

logger = structlog.get_logger(__name__)


class SweeperService(Service):
    """Removes stale magic links and sessions, on demand and on a background schedule."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._task: asyncio.Task[None] | None = None

    async def cleanup(self) -> CleanupResult:
        """Delete expired or redeemed magic links and expired sessions."""
        moment = utils.now()
        deleted_links = await self.core.services.magic_link.delete_stale(moment)
        deleted_sessions = await self.core.services.session.delete_expired(moment)
        result = CleanupResult(deleted_magic_links=deleted_links, deleted_sessions=deleted_sessions)
        logger.info("cleanup_completed", **result.model_dump())
        return result

    async def _run_periodically(self, interval: int) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.cleanup()
            except Exception:
                logger.exception("cleanup_failed")

    async def on_start(self) -> None:
        """Start the background sweep when an interval is configured."""
        interval = self.core.config.cleanup_interval_seconds
        if interval > 0:
            self._task = asyncio.create_task(self._run_periodically(interval))
            logger.debug("sweeper_started", interval_seconds=interval)

    async def on_stop(self) -> None:
        """Cancel the background sweep."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
