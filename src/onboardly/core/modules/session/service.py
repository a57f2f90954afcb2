from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from onboardly import utils
from onboardly.core.core import Service
from onboardly.core.modules.session.models import IssuedSession, RefreshToken, Session
from onboardly.core.modules.user.models import PrincipalContext, User
from onboardly.core.tokens import hash_secret, issue_secret
from onboardly.errors import InvalidSession, SessionExpired

logger = structlog.get_logger(__name__)


class SessionService(Service):
    """Service for managing refresh sessions."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("sessions")

    async def on_start(self) -> None:
        """Create indexes on startup."""
        # Unique index for token_hash (for validation lookups)
        await self._collection.create_index([("token_hash", 1)], unique=True)
        # Single index for user_id (for revoking all sessions of a user)
        await self._collection.create_index([("user_id", 1)])
        # TTL index as a backstop for the sweeper
        await self._collection.create_index([("expires_at", 1)], expireAfterSeconds=0)

    async def create_session(self, user: User) -> IssuedSession:
        """Create a session for a user and return the plaintext refresh token."""
        issued = issue_secret()
        expires_at = utils.now() + timedelta(days=self.core.config.session_ttl_days)
        session = Session(
            user_id=user.id,
            token_hash=issued.digest,
            role=user.role,
            tenant_id=user.tenant_id,
            team_id=user.team_id,
            expires_at=expires_at,
        )
        await self._collection.insert_one(session.to_mongo())
        logger.info("session_created", user_id=str(user.id), session_id=str(session.id))
        return IssuedSession(token=RefreshToken(issued.secret), expires_at=expires_at, context=session.to_context())

    async def validate(self, token: RefreshToken) -> PrincipalContext:
        """Resolve a refresh token to the principal context it was issued for.

        An expired session is deleted on the spot.
        """
        doc = await self._collection.find_one({"token_hash": hash_secret(token)})
        if doc is None:
            raise InvalidSession

        session = Session.model_validate(doc)
        if session.expires_at <= utils.now():
            await self._collection.delete_one({"_id": session.id})
            logger.info("session_expired", user_id=str(session.user_id), session_id=str(session.id))
            raise SessionExpired

        return session.to_context()

    async def is_valid(self, token: RefreshToken) -> bool:
        try:
            await self.validate(token)
        except (InvalidSession, SessionExpired):
            return False
        return True

    async def revoke(self, token: RefreshToken) -> None:
        """Invalidate a session by removing it from the database. No-op for unknown tokens."""
        result = await self._collection.delete_one({"token_hash": hash_secret(token)})
        if result.deleted_count:
            logger.info("session_revoked")

    async def revoke_all(self, user_id: UUID) -> int:
        """Remove every session of a user and return how many were removed."""
        return await self.revoke_all_by_users([user_id])

    async def revoke_all_by_users(self, user_ids: list[UUID]) -> int:
        result = await self._collection.delete_many({"user_id": {"$in": user_ids}})
        if result.deleted_count:
            logger.info("sessions_revoked", user_count=len(user_ids), deleted=result.deleted_count)
        return result.deleted_count

    async def delete_expired(self, now: datetime) -> int:
        """Delete sessions expired at the given moment and return count of deleted sessions."""
        result = await self._collection.delete_many({"expires_at": {"$lte": now}})
        return result.deleted_count
