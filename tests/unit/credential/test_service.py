"""Tests for CredentialService."""

import jwt
import pytest

from onboardly.core.modules.credential.models import AccessToken
from onboardly.core.modules.user.models import PrincipalContext
from onboardly.errors import CredentialExpired, CredentialInvalid


def _reencode(services, token, secret=None, **changes):
    """Decode without checks, change claims, sign again."""
    claims = jwt.decode(token, options={"verify_signature": False, "verify_aud": False, "verify_iss": False, "verify_exp": False})
    claims.update(changes)
    config = services.credential.core.config
    return AccessToken(jwt.encode(claims, secret or config.jwt_secret_key, algorithm=config.jwt_algorithm))


class TestIssueAndVerify:
    """Tests for the access token round trip."""

    @pytest.mark.asyncio
    async def test_verify_returns_issued_context(self, services, alice):
        context = PrincipalContext.from_user(alice)
        credential = services.credential.issue(context)
        assert await services.credential.verify(credential.token) == context

    @pytest.mark.asyncio
    async def test_claims(self, services, alice, config):
        credential = services.credential.issue(PrincipalContext.from_user(alice))
        claims = services.credential.decode(credential.token)
        assert claims["sub"] == str(alice.id)
        assert claims["role"] == "MEMBER"
        assert claims["tenant_id"] == str(alice.tenant_id)
        assert claims["team_id"] is None
        assert claims["iss"] == config.jwt_issuer
        assert claims["aud"] == config.jwt_audience
        assert claims["jti"] == credential.jti
        assert claims["exp"] - claims["iat"] == config.access_token_ttl_minutes * 60

    @pytest.mark.asyncio
    async def test_each_token_has_its_own_id(self, services, alice):
        context = PrincipalContext.from_user(alice)
        assert services.credential.issue(context).jti != services.credential.issue(context).jti


class TestVerifyRejects:
    """Tests for every way an access token can be refused."""

    @pytest.mark.asyncio
    async def test_tampered_signature(self, services, alice):
        token = services.credential.issue(PrincipalContext.from_user(alice)).token
        header, payload, signature = token.split(".")
        tampered = AccessToken(f"{header}.{payload}.{signature[::-1]}")
        with pytest.raises(CredentialInvalid):
            await services.credential.verify(tampered)

    @pytest.mark.asyncio
    async def test_role_escalation_without_key(self, services, alice):
        """Test that claims signed with another key are rejected."""
        token = services.credential.issue(PrincipalContext.from_user(alice)).token
        forged = _reencode(services, token, secret="another-secret-key-of-sufficient-length-000", role="TENANT_ADMIN")
        with pytest.raises(CredentialInvalid):
            await services.credential.verify(forged)

    @pytest.mark.asyncio
    async def test_wrong_audience(self, services, alice):
        token = services.credential.issue(PrincipalContext.from_user(alice)).token
        with pytest.raises(CredentialInvalid):
            await services.credential.verify(_reencode(services, token, aud="someone-else"))

    @pytest.mark.asyncio
    async def test_wrong_issuer(self, services, alice):
        token = services.credential.issue(PrincipalContext.from_user(alice)).token
        with pytest.raises(CredentialInvalid):
            await services.credential.verify(_reencode(services, token, iss="someone-else"))

    @pytest.mark.asyncio
    async def test_unknown_role(self, services, alice):
        token = services.credential.issue(PrincipalContext.from_user(alice)).token
        with pytest.raises(CredentialInvalid):
            await services.credential.verify(_reencode(services, token, role="superuser"))

    @pytest.mark.asyncio
    async def test_garbage(self, services):
        with pytest.raises(CredentialInvalid):
            await services.credential.verify(AccessToken("not-a-jwt"))

    @pytest.mark.asyncio
    async def test_expired(self, services, alice, clock):
        """Test that a token past its expiry raises CredentialExpired, not CredentialInvalid."""
        clock.advance(hours=-1)
        token = services.credential.issue(PrincipalContext.from_user(alice)).token
        with pytest.raises(CredentialExpired):
            await services.credential.verify(token)


class TestRevoke:
    """Tests for the revoked token denylist."""

    @pytest.mark.asyncio
    async def test_revoked_token_is_rejected(self, services, alice):
        token = services.credential.issue(PrincipalContext.from_user(alice)).token
        await services.credential.revoke(token)
        with pytest.raises(CredentialInvalid):
            await services.credential.verify(token)

    @pytest.mark.asyncio
    async def test_other_tokens_unaffected(self, services, alice):
        context = PrincipalContext.from_user(alice)
        first = services.credential.issue(context).token
        second = services.credential.issue(context).token
        await services.credential.revoke(first)
        assert await services.credential.verify(second) == context

    @pytest.mark.asyncio
    async def test_revoke_is_idempotent(self, services, database, alice):
        token = services.credential.issue(PrincipalContext.from_user(alice)).token
        await services.credential.revoke(token)
        await services.credential.revoke(token)
        assert len(database.get_collection("revoked_credentials").docs) == 1

    @pytest.mark.asyncio
    async def test_invalid_token_is_ignored(self, services, database):
        await services.credential.revoke(AccessToken("not-a-jwt"))
        assert database.get_collection("revoked_credentials").docs == []
