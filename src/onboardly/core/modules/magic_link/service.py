from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from onboardly import utils
from onboardly.core.core import Service
from onboardly.core.modules.magic_link.models import IssuedMagicLink, MagicLink, Redemption
from onboardly.core.modules.rate_limit.models import RateLimitCheck
from onboardly.core.tokens import hash_secret, is_token_format, issue_secret
from onboardly.errors import InvalidToken, TokenAlreadyUsed, TokenExpired, ValidationError

logger = structlog.get_logger(__name__)


class MagicLinkService(Service):
    """Issues and redeems passwordless login links."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("magic_links")

    async def on_start(self) -> None:
        """Create indexes on startup."""
        await self._collection.create_index([("token_hash", 1)], unique=True)
        await self._collection.create_index([("user_id", 1), ("redeemed_at", 1)])

    async def request_link(self, email: str, rate_limit: RateLimitCheck | None = None) -> IssuedMagicLink:
        """Issue a new link for the user registered under an email.

        Any unredeemed link of that user is deleted first, so at most one link is usable at a time.
        """
        email = utils.normalize_email(email)
        if rate_limit is not None:
            await rate_limit(email)

        user = await self.core.services.user.get_user_by_email(email)

        await self._collection.delete_many({"user_id": user.id, "redeemed_at": None})

        issued = issue_secret()
        link = MagicLink(
            user_id=user.id,
            token_hash=issued.digest,
            expires_at=utils.now() + timedelta(hours=self.core.config.magic_link_ttl_hours),
        )
        await self._collection.insert_one(link.to_mongo())
        logger.info("magic_link_issued", user_id=str(user.id), link_id=str(link.id))
        return IssuedMagicLink(link_id=link.id, user_id=user.id, token=issued.secret, expires_at=link.expires_at)

    async def redeem(self, token: str) -> Redemption:
        """Consume a link and open a session for its owner.

        Marking the link redeemed is a single conditional update, so of two concurrent
        redemptions of the same token at most one succeeds.
        """
        if not is_token_format(token):
            raise ValidationError("Invalid token format")

        token_hash = hash_secret(token)
        redeemed_at = utils.now()
        doc = await self._collection.find_one_and_update(
            {"token_hash": token_hash, "redeemed_at": None, "expires_at": {"$gt": redeemed_at}},
            {"$set": {"redeemed_at": redeemed_at}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise await self._redeem_failure(token_hash, redeemed_at)

        link = MagicLink.model_validate(doc)
        user = await self.core.services.user.get_user(link.user_id)
        session = await self.core.services.session.create_session(user)
        access = self.core.services.credential.issue(session.context)
        logger.info("magic_link_redeemed", user_id=str(user.id), link_id=str(link.id))
        return Redemption(user=user, session=session, access=access)

    async def _redeem_failure(self, token_hash: str, moment: datetime) -> Exception:
        """Explain why a token could not be redeemed."""
        doc = await self._collection.find_one({"token_hash": token_hash})
        if doc is None:
            return InvalidToken()

        link = MagicLink.model_validate(doc)
        if moment >= link.expires_at:
            logger.info("magic_link_expired", link_id=str(link.id))
            return TokenExpired()
        if link.redeemed_at is not None:
            logger.warning("magic_link_replayed", link_id=str(link.id))
            return TokenAlreadyUsed()
        # Matched neither condition: the link changed between the two reads
        return InvalidToken()

    async def delete_links_by_users(self, user_ids: list[UUID]) -> int:
        """Delete every link of the given users and return count of deleted links."""
        result = await self._collection.delete_many({"user_id": {"$in": user_ids}})
        return result.deleted_count

    async def delete_stale(self, now: datetime) -> int:
        """Delete links that are expired or already redeemed, return count of deleted links."""
        result = await self._collection.delete_many(
            {"$or": [{"expires_at": {"$lte": now}}, {"redeemed_at": {"$ne": None}}]}
        )
        return result.deleted_count
