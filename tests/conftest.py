"""Shared pytest fixtures.

Services are exercised against an in-memory stand-in for pymongo's async
database. It implements only the operations and query operators the
services use, including unique indexes so duplicate handling is real.
"""

import copy
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import Any

import pytest
import pytest_asyncio
from pymongo.errors import DuplicateKeyError

from onboardly import utils
from onboardly.config import Config
from onboardly.core.core import Core
from onboardly.core.modules.user.models import PrincipalContext, Role

TEST_JWT_SECRET = "test-secret-key-for-unit-tests-only-0123456789"  # pragma: allowlist secret


def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and any(key.startswith("$") for key in condition):
        for op, operand in condition.items():
            if op == "$lt" and not (value is not None and value < operand):
                return False
            if op == "$lte" and not (value is not None and value <= operand):
                return False
            if op == "$gt" and not (value is not None and value > operand):
                return False
            if op == "$gte" and not (value is not None and value >= operand):
                return False
            if op == "$ne" and value == operand:
                return False
            if op == "$in" and value not in operand:
                return False
        return True
    return value == condition


def matches(doc: dict[str, Any], query: dict[str, Any]) -> bool:
    for key, condition in query.items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
        elif not _matches_condition(doc.get(key), condition):
            return False
    return True


class FakeCursor:
    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        self._docs.sort(key=lambda doc: doc.get(key), reverse=direction < 0)
        return self

    def __aiter__(self) -> "FakeCursor":
        self._iter = iter(self._docs)
        return self

    async def __anext__(self) -> dict[str, Any]:
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration from None


class FakeCollection:
    def __init__(self, name: str) -> None:
        self.name = name
        self.docs: list[dict[str, Any]] = []
        self.unique_keys: list[tuple[str, ...]] = []

    async def create_index(self, keys: list[tuple[str, int]], unique: bool = False, **_: Any) -> str:
        if unique:
            self.unique_keys.append(tuple(field for field, _ in keys))
        return "_".join(field for field, _ in keys)

    def _check_unique(self, doc: dict[str, Any]) -> None:
        for fields in [("_id",), *self.unique_keys]:
            values = tuple(doc.get(field) for field in fields)
            for other in self.docs:
                if other is not doc and tuple(other.get(field) for field in fields) == values:
                    raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name}", code=11000)

    def _apply_update(self, doc: dict[str, Any], update: dict[str, Any], inserted: bool) -> None:
        for field, value in update.get("$set", {}).items():
            doc[field] = value
        for field, value in update.get("$inc", {}).items():
            doc[field] = doc.get(field, 0) + value
        if inserted:
            for field, value in update.get("$setOnInsert", {}).items():
                doc[field] = value

    async def insert_one(self, doc: dict[str, Any]) -> SimpleNamespace:
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", object())
        self._check_unique(stored)
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    async def find_one(self, query: dict[str, Any], projection: Any = None) -> dict[str, Any] | None:
        doc = next((d for d in self.docs if matches(d, query)), None)
        return copy.deepcopy(doc) if doc is not None else None

    def find(self, query: dict[str, Any] | None = None, projection: Any = None) -> FakeCursor:
        return FakeCursor([copy.deepcopy(d) for d in self.docs if matches(d, query or {})])

    async def find_one_and_update(
        self, query: dict[str, Any], update: dict[str, Any], upsert: bool = False, return_document: bool = False
    ) -> dict[str, Any] | None:
        doc = next((d for d in self.docs if matches(d, query)), None)
        if doc is None:
            if not upsert:
                return None
            doc = {k: v for k, v in query.items() if not k.startswith("$") and not isinstance(v, dict)}
            doc["_id"] = object()
            self._apply_update(doc, update, inserted=True)
            self._check_unique(doc)
            self.docs.append(doc)
            return copy.deepcopy(doc) if return_document else None
        before = copy.deepcopy(doc)
        self._apply_update(doc, update, inserted=False)
        return copy.deepcopy(doc) if return_document else before

    async def update_one(self, query: dict[str, Any], update: dict[str, Any]) -> SimpleNamespace:
        doc = next((d for d in self.docs if matches(d, query)), None)
        if doc is None:
            return SimpleNamespace(matched_count=0, modified_count=0)
        updated = copy.deepcopy(doc)
        self._apply_update(updated, update, inserted=False)
        self.docs.remove(doc)
        try:
            self._check_unique(updated)
        finally:
            self.docs.append(doc)
        doc.clear()
        doc.update(updated)
        return SimpleNamespace(matched_count=1, modified_count=1)

    async def delete_one(self, query: dict[str, Any]) -> SimpleNamespace:
        doc = next((d for d in self.docs if matches(d, query)), None)
        if doc is None:
            return SimpleNamespace(deleted_count=0)
        self.docs.remove(doc)
        return SimpleNamespace(deleted_count=1)

    async def delete_many(self, query: dict[str, Any]) -> SimpleNamespace:
        kept = [d for d in self.docs if not matches(d, query)]
        deleted = len(self.docs) - len(kept)
        self.docs = kept
        return SimpleNamespace(deleted_count=deleted)

    async def count_documents(self, query: dict[str, Any], limit: int | None = None) -> int:
        count = sum(1 for d in self.docs if matches(d, query))
        return min(count, limit) if limit else count


class FakeDatabase:
    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}

    def get_collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection(name))


class Clock:
    """Controllable replacement for onboardly.utils.now."""

    def __init__(self) -> None:
        self.current = datetime.now(UTC)

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> None:
        self.current += timedelta(**delta)


def make_config(**overrides: Any) -> Config:
    settings: dict[str, Any] = {
        "database_url": "mongodb://localhost:27017/onboardly_test",
        "jwt_secret_key": TEST_JWT_SECRET,
        "cleanup_interval_seconds": 0,
        "rate_limit_max_requests": 0,
        "cookie_secure": False,
    }
    settings.update(overrides)
    return Config(**settings)


@pytest.fixture
def config():
    """Configuration with the background sweeper and rate limiting disabled."""
    return make_config()


@pytest.fixture
def database():
    return FakeDatabase()


@pytest.fixture
def clock(monkeypatch):
    """Freeze the services' notion of 'now' so tests can move it forward."""
    clock = Clock()
    monkeypatch.setattr(utils, "now", clock.now)
    return clock


@pytest_asyncio.fixture
async def core(config, database):
    """Started core backed by the in-memory database."""
    core = Core(config, database)
    await core.on_start()
    yield core
    await core.on_stop()


@pytest.fixture
def services(core):
    return core.services


@pytest_asyncio.fixture
async def acme(services):
    return await services.tenant.create_tenant("Acme", "acme.com")


@pytest_asyncio.fixture
async def globex(services):
    return await services.tenant.create_tenant("Globex", "globex.com")


@pytest_asyncio.fixture
async def alice(services, acme):
    """Member of acme without a team."""
    return await services.user.create_user(acme.id, "alice@acme.com", Role.MEMBER)


@pytest_asyncio.fixture
async def admin(services, acme):
    return await services.user.create_user(acme.id, "admin@acme.com", Role.TENANT_ADMIN)


@pytest.fixture
def admin_context(admin):
    return PrincipalContext.from_user(admin)


@pytest.fixture
def config_factory():
    """Build a test configuration with overrides."""
    return make_config
