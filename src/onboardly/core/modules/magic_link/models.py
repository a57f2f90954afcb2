"""Single-use magic links."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from onboardly.core.db import MongoModel
from onboardly.core.modules.credential.models import AccessCredential
from onboardly.core.modules.session.models import IssuedSession
from onboardly.core.modules.user.models import User
from onboardly.utils import now


class MagicLink(MongoModel):
    """Login link sent by email, redeemable once.

    Indexed on token_hash - unique, (user_id, redeemed_at).
    """

    user_id: UUID
    token_hash: str
    redeemed_at: datetime | None = None
    expires_at: datetime
    created_at: datetime = Field(default_factory=now)


class IssuedMagicLink(BaseModel):
    """A newly requested link; the plaintext token must go out through the delivery channel."""

    link_id: UUID
    user_id: UUID
    token: str
    expires_at: datetime


class Redemption(BaseModel):
    """Result of redeeming a magic link: who logged in and the credentials they received."""

    user: User
    session: IssuedSession
    access: AccessCredential
