"""Short-lived signed access credentials."""

from datetime import datetime
from typing import NewType

from pydantic import BaseModel, Field

from onboardly.core.db import MongoModel

AccessToken = NewType("AccessToken", str)


class AccessCredential(BaseModel):
    """Signed access token handed to the client."""

    token: AccessToken = Field(..., description="Signed JWT to send as a Bearer token")
    expires_at: datetime = Field(..., description="Moment the token stops being accepted")
    jti: str = Field(..., description="Unique token identifier")


class RevokedCredential(MongoModel):
    """Denylist entry for an access token revoked before its natural expiry.

    Indexed on jti - unique, expires_at (TTL).
    """

    jti: str
    expires_at: datetime
