from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from onboardly import utils
from onboardly.core.core import Service
from onboardly.core.modules.tenant.models import Tenant
from onboardly.errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


class TenantService(Service):
    """Manages tenants and their cascading removal."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("tenants")

    async def on_start(self) -> None:
        """Create indexes on startup."""
        await self._collection.create_index([("domain", 1)], unique=True)

    async def get_tenant(self, tenant_id: UUID) -> Tenant:
        doc = await self._collection.find_one({"_id": tenant_id})
        if doc is None:
            raise NotFoundError(f"Tenant '{tenant_id}' not found")
        return Tenant.model_validate(doc)

    async def get_tenant_by_domain(self, domain: str) -> Tenant:
        doc = await self._collection.find_one({"domain": domain.strip().lower()})
        if doc is None:
            raise NotFoundError(f"Tenant '{domain}' not found")
        return Tenant.model_validate(doc)

    async def has_domain(self, domain: str) -> bool:
        return await self._collection.count_documents({"domain": domain.strip().lower()}, limit=1) > 0

    async def create_tenant(self, name: str, domain: str) -> Tenant:
        """Create a tenant with a unique, normalized domain."""
        domain = domain.strip().lower()
        if not name.strip():
            raise ValidationError("Tenant name cannot be empty")
        if not utils.is_domain(domain):
            raise ValidationError(f"Invalid domain format: '{domain}'")

        tenant = Tenant(name=name.strip(), domain=domain)
        try:
            await self._collection.insert_one(tenant.to_mongo())
        except DuplicateKeyError:
            raise ValidationError(f"Tenant with domain '{domain}' already exists") from None
        logger.info("tenant_created", tenant_id=str(tenant.id), domain=domain)
        return tenant

    async def delete_tenant(self, tenant_id: UUID) -> None:
        """Delete a tenant together with its users and their credentials."""
        await self.get_tenant(tenant_id)
        deleted_users = await self.core.services.user.delete_users_by_tenant(tenant_id)
        await self._collection.delete_one({"_id": tenant_id})
        logger.info("tenant_deleted", tenant_id=str(tenant_id), deleted_users=deleted_users)

