from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import jwt
import structlog
from pydantic import ValidationError as PydanticValidationError
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from onboardly import utils
from onboardly.core.core import Service
from onboardly.core.modules.credential.models import AccessCredential, AccessToken, RevokedCredential
from onboardly.core.modules.user.models import PrincipalContext
from onboardly.errors import CredentialExpired, CredentialInvalid

logger = structlog.get_logger(__name__)

REQUIRED_CLAIMS = ["sub", "role", "tenant_id", "exp", "iat", "iss", "aud", "jti"]


class CredentialService(Service):
    """Issues and verifies stateless access tokens signed with the server key.

    Tokens carry the principal context and live for a few minutes. They are
    not stored; the only server-side state is a denylist of revoked token ids.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("revoked_credentials")

    async def on_start(self) -> None:
        """Create indexes on startup."""
        await self._collection.create_index([("jti", 1)], unique=True)
        # Denylist entries are useless once the token itself has expired
        await self._collection.create_index([("expires_at", 1)], expireAfterSeconds=0)

    def issue(self, context: PrincipalContext) -> AccessCredential:
        """Sign a new access token for a principal context."""
        config = self.core.config
        issued_at = utils.now()
        expires_at = issued_at + timedelta(minutes=config.access_token_ttl_minutes)
        jti = uuid4().hex

        payload = {
            "sub": str(context.user_id),
            "role": context.role.value,
            "tenant_id": str(context.tenant_id),
            "team_id": context.team_id,
            "iss": config.jwt_issuer,
            "aud": config.jwt_audience,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": jti,
        }
        token = jwt.encode(payload, config.jwt_secret_key, algorithm=config.jwt_algorithm)
        return AccessCredential(token=AccessToken(token), expires_at=expires_at.replace(microsecond=0), jti=jti)

    def decode(self, token: AccessToken) -> dict[str, Any]:
        """Check signature, expiry, issuer and audience and return the claims.

        Raises:
            CredentialExpired: If the token is well-formed but past its expiry
            CredentialInvalid: For any other defect (signature, issuer, audience, claims)
        """
        config = self.core.config
        try:
            return jwt.decode(
                token,
                config.jwt_secret_key,
                algorithms=[config.jwt_algorithm],
                issuer=config.jwt_issuer,
                audience=config.jwt_audience,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise CredentialExpired from None
        except jwt.InvalidTokenError:
            raise CredentialInvalid from None

    async def verify(self, token: AccessToken) -> PrincipalContext:
        """Verify an access token and return the principal context it carries."""
        claims = self.decode(token)
        try:
            context = PrincipalContext(
                user_id=UUID(claims["sub"]),
                role=claims["role"],
                tenant_id=UUID(claims["tenant_id"]),
                team_id=claims.get("team_id"),
            )
        except (ValueError, TypeError, PydanticValidationError):
            raise CredentialInvalid from None

        if await self.is_revoked(claims["jti"]):
            raise CredentialInvalid
        return context

    async def is_revoked(self, jti: str) -> bool:
        return await self._collection.count_documents({"jti": jti}, limit=1) > 0

    async def revoke(self, token: AccessToken) -> None:
        """Deny an access token until it expires. Tokens that do not verify are ignored."""
        try:
            claims = self.decode(token)
        except (CredentialExpired, CredentialInvalid):
            return

        entry = RevokedCredential(jti=claims["jti"], expires_at=datetime.fromtimestamp(claims["exp"], UTC))
        try:
            await self._collection.insert_one(entry.to_mongo())
        except DuplicateKeyError:
            return
        logger.info("access_token_revoked", user_id=claims["sub"])
