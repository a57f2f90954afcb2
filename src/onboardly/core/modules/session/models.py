"""Session management models."""

from datetime import datetime
from typing import NewType
from uuid import UUID

from pydantic import BaseModel, Field

from onboardly.core.db import MongoModel
from onboardly.core.modules.user.models import PrincipalContext, Role
from onboardly.utils import now

RefreshToken = NewType("RefreshToken", str)


class Session(MongoModel):
    """Long-lived refresh session.

    The role, tenant and team are a snapshot of the user taken when the session was created.
    Indexed on token_hash - unique, user_id, expires_at (TTL).
    """

    user_id: UUID
    token_hash: str
    role: Role
    tenant_id: UUID
    team_id: str | None = None
    expires_at: datetime
    created_at: datetime = Field(default_factory=now)

    def to_context(self) -> PrincipalContext:
        return PrincipalContext(user_id=self.user_id, role=self.role, tenant_id=self.tenant_id, team_id=self.team_id)


class IssuedSession(BaseModel):
    """A freshly created session; the only place the plaintext refresh token appears."""

    token: RefreshToken
    expires_at: datetime
    context: PrincipalContext
