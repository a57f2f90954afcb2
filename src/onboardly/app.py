from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any
from uuid import UUID

from pymongo.asynchronous.database import AsyncDatabase

from onboardly.config import Config
from onboardly.core.core import Core
from onboardly.core.modules.access.policy import Action, authorize_create, authorize_update, build_scope, scope_to_query
from onboardly.core.modules.credential.models import AccessCredential, AccessToken
from onboardly.core.modules.magic_link.models import IssuedMagicLink, Redemption
from onboardly.core.modules.session.models import RefreshToken
from onboardly.core.modules.sweeper.models import CleanupResult
from onboardly.core.modules.tenant.models import TenantView
from onboardly.core.modules.user.models import PrincipalContext, Role, UserUpdate, UserView
from onboardly.errors import ValidationError

MAGIC_LINK_ROUTE = "magic_link"


class App:
    """Facade for all application operations, validates permissions before delegating to Core."""

    def __init__(self, config: Config, database: AsyncDatabase[dict[str, Any]] | None = None) -> None:
        self._core = Core(config, database)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # === Authentication ===
    async def request_magic_link(self, email: str) -> IssuedMagicLink:
        """Issue a magic link for an email (public, rate limited per email)."""
        limiter = self._core.services.rate_limit.limiter(MAGIC_LINK_ROUTE)
        return await self._core.services.magic_link.request_link(email, rate_limit=limiter)

    async def redeem_magic_link(self, token: str) -> Redemption:
        """Redeem a magic link and open a session (public)."""
        return await self._core.services.magic_link.redeem(token)

    async def validate_session(self, refresh_token: RefreshToken) -> PrincipalContext:
        """Resolve a refresh token to its principal context."""
        return await self._core.services.session.validate(refresh_token)

    async def get_session_context(self, refresh_token: RefreshToken | None) -> PrincipalContext | None:
        """Resolve a refresh token if possible, None otherwise (never raises)."""
        return await self._core.services.access.try_session_context(refresh_token)

    async def refresh_access(self, refresh_token: RefreshToken) -> AccessCredential:
        """Mint a new access token from a valid session."""
        context = await self._core.services.session.validate(refresh_token)
        return self._core.services.credential.issue(context)

    async def logout(self, refresh_token: RefreshToken | None, access_token: AccessToken | None = None) -> None:
        """Revoke the session and deny the presented access token; both are optional and idempotent."""
        if refresh_token:
            await self._core.services.session.revoke(refresh_token)
        if access_token:
            await self._core.services.credential.revoke(access_token)

    async def revoke_all_sessions(self, access_token: AccessToken, user_id: UUID) -> int:
        """Force logout of a user of the caller's tenant (tenant admin only)."""
        context = await self._core.services.access.ensure_can(access_token, Action.REVOKE_SESSIONS)
        user = await self._core.services.access.resolve_user(context, user_id, Action.REVOKE_SESSIONS)
        return await self._core.services.session.revoke_all(user.id)

    async def cleanup_expired(self, access_token: AccessToken) -> CleanupResult:
        """Run the expiry sweep now (tenant admin only)."""
        await self._core.services.access.ensure_can(access_token, Action.CLEANUP)
        return await self._core.services.sweeper.cleanup()

    async def get_current_principal(self, access_token: AccessToken) -> PrincipalContext:
        """Verify an access token and return the principal it identifies."""
        return await self._core.services.access.ensure_authenticated(access_token)

    async def get_current_user(self, access_token: AccessToken) -> UserView:
        """Get current authenticated user profile."""
        context = await self._core.services.access.ensure_authenticated(access_token)
        user = await self._core.services.access.resolve_user(context, context.user_id, Action.READ)
        return UserView.from_domain(user)

    async def get_current_tenant(self, access_token: AccessToken) -> TenantView:
        """Get the tenant of the authenticated user."""
        context = await self._core.services.access.ensure_authenticated(access_token)
        tenant = await self._core.services.tenant.get_tenant(context.tenant_id)
        return TenantView.from_domain(tenant)

    # === Users ===
    async def list_users(self, access_token: AccessToken, role: Role | None = None) -> list[UserView]:
        """List users visible to the caller (admins: tenant, managers: team)."""
        context = await self._core.services.access.ensure_can(access_token, Action.LIST)
        query = scope_to_query(build_scope(context))
        if role is not None:
            query["role"] = role
        users = await self._core.services.user.list_users(query)
        return [UserView.from_domain(user) for user in users]

    async def get_user(self, access_token: AccessToken, user_id: UUID) -> UserView:
        """Get a user inside the caller's scope."""
        context = await self._core.services.access.ensure_authenticated(access_token)
        user = await self._core.services.access.resolve_user(context, user_id, Action.READ)
        return UserView.from_domain(user)

    async def get_user_by_email(self, access_token: AccessToken, email: str) -> UserView:
        """Find a user by email inside the caller's scope (tenant admins and managers)."""
        context = await self._core.services.access.ensure_can(access_token, Action.LIST)
        user = await self._core.services.access.resolve_user_by_email(context, email, Action.READ)
        return UserView.from_domain(user)

    async def create_user(self, access_token: AccessToken, email: str, role: Role, team_id: str | None = None) -> UserView:
        """Create a user of any role in the caller's tenant (tenant admin only)."""
        context = await self._core.services.access.ensure_authenticated(access_token)
        authorize_create(context, context.tenant_id)
        user = await self._core.services.user.create_user(context.tenant_id, email, role, team_id)
        return UserView.from_domain(user)

    async def update_user(self, access_token: AccessToken, user_id: UUID, changes: UserUpdate) -> UserView:
        """Update a user inside the caller's scope; only admins change roles and teams."""
        context = await self._core.services.access.ensure_authenticated(access_token)
        user = await self._core.services.access.resolve_user(context, user_id, Action.UPDATE)
        authorize_update(context, user, changes)
        updated = await self._core.services.user.update_user(user.id, changes)
        return UserView.from_domain(updated)

    async def delete_user(self, access_token: AccessToken, user_id: UUID) -> None:
        """Delete a user and its credentials (tenant admin only, cannot delete self)."""
        context = await self._core.services.access.ensure_can(access_token, Action.DELETE)
        user = await self._core.services.access.resolve_user(context, user_id, Action.DELETE)

        if user.id == context.user_id:
            raise ValidationError("Cannot delete yourself")

        await self._core.services.user.delete_user(user.id)
