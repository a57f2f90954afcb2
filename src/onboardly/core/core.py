from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from onboardly.config import Config

if TYPE_CHECKING:
    from onboardly.core.modules.access.service import AccessService
    from onboardly.core.modules.credential.service import CredentialService
    from onboardly.core.modules.magic_link.service import MagicLinkService
    from onboardly.core.modules.rate_limit.service import RateLimitService
    from onboardly.core.modules.session.service import SessionService
    from onboardly.core.modules.sweeper.service import SweeperService
    from onboardly.core.modules.tenant.service import TenantService
    from onboardly.core.modules.user.service import UserService

# (attribute, "module:Class"), in startup order. Tenant and user indexes must exist
# before the bootstrap admin is created; the sweeper starts last and stops first.
SERVICE_REGISTRY = [
    ("tenant", "onboardly.core.modules.tenant.service:TenantService"),
    ("user", "onboardly.core.modules.user.service:UserService"),
    ("session", "onboardly.core.modules.session.service:SessionService"),
    ("credential", "onboardly.core.modules.credential.service:CredentialService"),
    ("magic_link", "onboardly.core.modules.magic_link.service:MagicLinkService"),
    ("rate_limit", "onboardly.core.modules.rate_limit.service:RateLimitService"),
    ("access", "onboardly.core.modules.access.service:AccessService"),
    ("sweeper", "onboardly.core.modules.sweeper.service:SweeperService"),
]


class Service:
    """A unit of domain logic sharing the database; peers are reached through `self.core.services`."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self.database = database
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Hook for index creation and background work."""

    async def on_stop(self) -> None:
        """Hook for releasing what on_start acquired."""

    @property
    def core(self) -> Core:
        if self._core is None:
            raise RuntimeError("Service is not attached to a core")
        return self._core

    def attach(self, core: Core) -> None:
        self._core = core


def _load_service(target: str) -> type[Service]:
    module_path, class_name = target.split(":")
    service_class: type[Service] = getattr(importlib.import_module(module_path), class_name)
    return service_class


class Services:
    """All services of one core, reachable as attributes."""

    tenant: TenantService
    user: UserService
    session: SessionService
    credential: CredentialService
    magic_link: MagicLinkService
    rate_limit: RateLimitService
    access: AccessService
    sweeper: SweeperService

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self._ordered: list[Service] = []
        for name, target in SERVICE_REGISTRY:
            service = _load_service(target)(database)
            setattr(self, name, service)
            self._ordered.append(service)

    def attach(self, core: Core) -> None:
        for service in self._ordered:
            service.attach(core)

    async def start_all(self) -> None:
        for service in self._ordered:
            await service.on_start()

    async def stop_all(self) -> None:
        for service in reversed(self._ordered):
            await service.on_stop()


class Core:
    """Holds the configuration, the database handle and the services."""

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]] | None
    database: AsyncDatabase[dict[str, Any]]
    services: Services

    def __init__(self, config: Config, database: AsyncDatabase[dict[str, Any]] | None = None) -> None:
        """Connect to MongoDB, or use a database handed in by the caller.

        A handed-in database belongs to the caller and is not closed on shutdown.
        """
        self.config = config
        self.mongo_client = None
        if database is None:
            self.mongo_client = AsyncMongoClient(config.database_url, uuidRepresentation="standard", tz_aware=True)
            database = self.mongo_client.get_database(urlparse(config.database_url).path.lstrip("/"))
        self.database = database
        self.services = Services(database)
        self.services.attach(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.services.start_all()

    async def on_stop(self) -> None:
        await self.services.stop_all()
        if self.mongo_client is not None:
            await self.mongo_client.aclose()
