from typing import Any
from uuid import UUID

import structlog
from pymongo import DESCENDING
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from onboardly import utils
from onboardly.core.core import Service
from onboardly.core.modules.user.models import Role, User, UserUpdate
from onboardly.core.modules.user.validators import validate_role_assignment, validate_user_email
from onboardly.errors import NotFoundError, PrincipalNotFound, ValidationError

logger = structlog.get_logger(__name__)


class UserService(Service):
    """Manages principals. Reads go to the database every time, nothing is cached."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("users")

    async def get_user(self, user_id: UUID) -> User:
        """Get user by ID."""
        doc = await self._collection.find_one({"_id": user_id})
        if doc is None:
            raise NotFoundError(f"User '{user_id}' not found")
        return User.model_validate(doc)

    async def get_user_by_email(self, email: str) -> User:
        """Get user by email (case-insensitive)."""
        doc = await self._collection.find_one({"email": utils.normalize_email(email)})
        if doc is None:
            raise PrincipalNotFound
        return User.model_validate(doc)

    async def has_email(self, email: str) -> bool:
        """Check if an email is already registered in any tenant."""
        return await self._collection.count_documents({"email": utils.normalize_email(email)}, limit=1) > 0

    async def find_user(self, user_id: UUID, query: dict[str, Any]) -> User | None:
        """Get user by ID restricted by an additional filter, None if nothing matches."""
        doc = await self._collection.find_one({**query, "_id": user_id})
        return User.model_validate(doc) if doc is not None else None

    async def find_user_by_email(self, email: str, query: dict[str, Any]) -> User | None:
        """Get user by normalized email restricted by an additional filter, None if nothing matches."""
        doc = await self._collection.find_one({**query, "email": utils.normalize_email(email)})
        return User.model_validate(doc) if doc is not None else None

    async def list_users(self, query: dict[str, Any]) -> list[User]:
        """List users matching a filter, newest first."""
        return await User.list_cursor(self._collection.find(query).sort("created_at", DESCENDING))

    async def count_users(self, query: dict[str, Any]) -> int:
        return await self._collection.count_documents(query)

    async def create_user(self, tenant_id: UUID, email: str, role: Role, team_id: str | None = None) -> User:
        """Create a principal after checking the tenant and the role/team rules."""
        email = validate_user_email(email)
        validate_role_assignment(role, team_id)
        await self.core.services.tenant.get_tenant(tenant_id)

        user = User(tenant_id=tenant_id, email=email, role=role, team_id=team_id)
        try:
            await self._collection.insert_one(user.to_mongo())
        except DuplicateKeyError:
            raise ValidationError(f"User '{email}' already exists") from None
        logger.info("user_created", user_id=str(user.id), tenant_id=str(tenant_id), role=role)
        return user

    async def update_user(self, user_id: UUID, changes: UserUpdate) -> User:
        """Apply a partial update; role rules are checked on the merged result."""
        user = await self.get_user(user_id)
        provided = changes.model_fields_set

        role = changes.role if "role" in provided and changes.role is not None else user.role
        team_id = changes.team_id if "team_id" in provided else user.team_id
        validate_role_assignment(role, team_id)

        update: dict[str, Any] = {"role": role, "team_id": team_id}
        if "email" in provided and changes.email is not None:
            update["email"] = validate_user_email(changes.email)

        try:
            await self._collection.update_one({"_id": user_id}, {"$set": update})
        except DuplicateKeyError:
            raise ValidationError(f"User '{update['email']}' already exists") from None
        logger.info("user_updated", user_id=str(user_id), fields=sorted(provided))
        return await self.get_user(user_id)

    async def delete_user(self, user_id: UUID) -> None:
        """Delete a user together with its magic links and sessions."""
        await self.get_user(user_id)
        await self.core.services.magic_link.delete_links_by_users([user_id])
        await self.core.services.session.revoke_all_by_users([user_id])
        await self._collection.delete_one({"_id": user_id})
        logger.info("user_deleted", user_id=str(user_id))

    async def delete_users_by_tenant(self, tenant_id: UUID) -> int:
        """Delete every user of a tenant and their credentials, return count of deleted users."""
        user_ids = [doc["_id"] async for doc in self._collection.find({"tenant_id": tenant_id}, {"_id": 1})]
        if not user_ids:
            return 0
        await self.core.services.magic_link.delete_links_by_users(user_ids)
        await self.core.services.session.revoke_all_by_users(user_ids)
        result = await self._collection.delete_many({"tenant_id": tenant_id})
        return result.deleted_count

    async def ensure_bootstrap_admin(self) -> None:
        """Create the configured first tenant and its admin if they do not exist."""
        config = self.core.config
        if not config.bootstrap_domain or not config.bootstrap_admin_email:
            return

        tenants = self.core.services.tenant
        if await tenants.has_domain(config.bootstrap_domain):
            tenant = await tenants.get_tenant_by_domain(config.bootstrap_domain)
        else:
            tenant = await tenants.create_tenant(config.bootstrap_tenant_name or config.bootstrap_domain, config.bootstrap_domain)

        if not await self.has_email(config.bootstrap_admin_email):
            await self.create_user(tenant.id, config.bootstrap_admin_email, Role.TENANT_ADMIN)

    async def on_start(self) -> None:
        """Initialize indexes and bootstrap admin."""
        await self._collection.create_index([("email", 1)], unique=True)
        await self._collection.create_index([("tenant_id", 1), ("team_id", 1)])
        await self.ensure_bootstrap_admin()
        logger.debug("user_service_started")
