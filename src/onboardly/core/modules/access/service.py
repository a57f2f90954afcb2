from uuid import UUID

import structlog

from onboardly.core.core import Service
from onboardly.core.modules.access.policy import Action, authorize, build_scope, scope_to_query
from onboardly.core.modules.credential.models import AccessToken
from onboardly.core.modules.session.models import RefreshToken
from onboardly.core.modules.user.models import PrincipalContext, User
from onboardly.errors import AccessDeniedError, UserError

logger = structlog.get_logger(__name__)


class AccessService(Service):
    async def ensure_authenticated(self, access_token: AccessToken) -> PrincipalContext:
        """Ensure the access token is valid and return the principal it identifies."""
        return await self.core.services.credential.verify(access_token)

    async def ensure_can(self, access_token: AccessToken, action: Action) -> PrincipalContext:
        """Ensure the authenticated principal's role allows the action."""
        context = await self.ensure_authenticated(access_token)
        authorize(context, action)
        return context

    async def resolve_user(self, context: PrincipalContext, user_id: UUID, action: Action) -> User:
        """Load a user through the principal's scope and check the action on it.

        Users outside the scope and users that do not exist both raise AccessDeniedError.
        """
        user = await self.core.services.user.find_user(user_id, scope_to_query(build_scope(context)))
        if user is None:
            raise AccessDeniedError
        authorize(context, action, user)
        return user

    async def resolve_user_by_email(self, context: PrincipalContext, email: str, action: Action) -> User:
        """Email counterpart of resolve_user, with the same scope and denial rules."""
        user = await self.core.services.user.find_user_by_email(email, scope_to_query(build_scope(context)))
        if user is None:
            raise AccessDeniedError
        authorize(context, action, user)
        return user

    async def try_session_context(self, refresh_token: RefreshToken | None) -> PrincipalContext | None:
        """Best-effort session lookup: any failure yields an anonymous (None) context."""
        if not refresh_token:
            return None
        try:
            return await self.core.services.session.validate(refresh_token)
        except UserError:
            return None
        except Exception:
            logger.warning("optional_session_lookup_failed", exc_info=True)
            return None
