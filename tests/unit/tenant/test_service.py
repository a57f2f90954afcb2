"""Tests for TenantService."""

import pytest

from onboardly.core.modules.user.models import Role
from onboardly.errors import NotFoundError, ValidationError


class TestCreateTenant:
    """Tests for tenant creation."""

    @pytest.mark.asyncio
    async def test_domain_is_normalized(self, services):
        tenant = await services.tenant.create_tenant("Acme", " ACME.com ")
        assert tenant.domain == "acme.com"
        assert (await services.tenant.get_tenant_by_domain("acme.com")).id == tenant.id

    @pytest.mark.asyncio
    async def test_duplicate_domain_rejected(self, services, acme):
        with pytest.raises(ValidationError, match="already exists"):
            await services.tenant.create_tenant("Acme again", "acme.com")

    @pytest.mark.asyncio
    async def test_invalid_domain_rejected(self, services):
        with pytest.raises(ValidationError, match="Invalid domain"):
            await services.tenant.create_tenant("Acme", "not a domain")

    @pytest.mark.asyncio
    async def test_empty_name_rejected(self, services):
        with pytest.raises(ValidationError, match="name cannot be empty"):
            await services.tenant.create_tenant("  ", "acme.com")


class TestDeleteTenant:
    """Tests for the tenant deletion cascade."""

    @pytest.mark.asyncio
    async def test_cascades_to_users_links_and_sessions(self, services, database, acme, globex, alice):
        """Test that a tenant takes its users and their credentials with it, and only those."""
        outsider = await services.user.create_user(globex.id, "bob@globex.com", Role.MEMBER)
        await services.magic_link.request_link(alice.email)
        await services.session.create_session(alice)
        await services.session.create_session(outsider)

        await services.tenant.delete_tenant(acme.id)

        with pytest.raises(NotFoundError):
            await services.tenant.get_tenant(acme.id)
        assert [doc["_id"] for doc in database.get_collection("users").docs] == [outsider.id]
        assert database.get_collection("magic_links").docs == []
        assert [doc["user_id"] for doc in database.get_collection("sessions").docs] == [outsider.id]

    @pytest.mark.asyncio
    async def test_unknown_tenant(self, services, globex):
        await services.tenant.delete_tenant(globex.id)
        with pytest.raises(NotFoundError):
            await services.tenant.delete_tenant(globex.id)
