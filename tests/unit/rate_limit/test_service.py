"""Tests for RateLimitService."""

import pytest
import pytest_asyncio

from onboardly.core.core import Core
from onboardly.core.modules.user.models import Role
from onboardly.errors import RateLimitExceeded


@pytest_asyncio.fixture
async def limited(database, config_factory):
    """Services with a limit of 3 requests per minute."""
    core = Core(config_factory(rate_limit_max_requests=3, rate_limit_window_seconds=60), database)
    await core.on_start()
    yield core.services
    await core.on_stop()


class TestHit:
    """Tests for fixed-window counting."""

    @pytest.mark.asyncio
    async def test_counts_until_limit(self, limited, clock):
        clock.current = clock.current.replace(second=0, microsecond=0)
        assert [await limited.rate_limit.hit("alice@acme.com", "magic_link") for _ in range(3)] == [1, 2, 3]
        with pytest.raises(RateLimitExceeded):
            await limited.rate_limit.hit("alice@acme.com", "magic_link")

    @pytest.mark.asyncio
    async def test_window_resets(self, limited, clock):
        clock.current = clock.current.replace(second=0, microsecond=0)
        for _ in range(3):
            await limited.rate_limit.hit("alice@acme.com", "magic_link")
        clock.advance(seconds=60)
        assert await limited.rate_limit.hit("alice@acme.com", "magic_link") == 1

    @pytest.mark.asyncio
    async def test_identifiers_and_routes_are_separate(self, limited, clock):
        clock.current = clock.current.replace(second=0, microsecond=0)
        for _ in range(3):
            await limited.rate_limit.hit("alice@acme.com", "magic_link")
        assert await limited.rate_limit.hit("bob@acme.com", "magic_link") == 1
        assert await limited.rate_limit.hit("alice@acme.com", "other") == 1

    @pytest.mark.asyncio
    async def test_counter_expires_with_window(self, limited, database, clock):
        clock.current = clock.current.replace(second=0, microsecond=0)
        await limited.rate_limit.hit("alice@acme.com", "magic_link")
        [doc] = database.get_collection("rate_limits").docs
        assert doc["key"] == "magic_link:alice@acme.com"
        assert (doc["expires_at"] - clock.current).total_seconds() == 60

    @pytest.mark.asyncio
    async def test_disabled_when_max_is_zero(self, services, database):
        for _ in range(10):
            assert await services.rate_limit.hit("alice@acme.com", "magic_link") == 0
        assert database.get_collection("rate_limits").docs == []


class TestLimiter:
    """Tests for the route-bound capability."""

    @pytest.mark.asyncio
    async def test_limiter_guards_magic_links(self, limited, clock):
        clock.current = clock.current.replace(second=0, microsecond=0)
        tenant = await limited.tenant.create_tenant("Acme", "acme.com")
        await limited.user.create_user(tenant.id, "alice@acme.com", Role.MEMBER)
        check = limited.rate_limit.limiter("magic_link")
        for _ in range(3):
            await limited.magic_link.request_link("alice@acme.com", rate_limit=check)
        with pytest.raises(RateLimitExceeded):
            await limited.magic_link.request_link("alice@acme.com", rate_limit=check)

    @pytest.mark.asyncio
    async def test_unknown_emails_are_counted(self, limited, clock):
        """Test that probing unregistered addresses is throttled too."""
        clock.current = clock.current.replace(second=0, microsecond=0)
        check = limited.rate_limit.limiter("magic_link")
        for _ in range(3):
            await check("nobody@acme.com")
        with pytest.raises(RateLimitExceeded):
            await check("nobody@acme.com")
