"""Tenants: the isolation boundary every principal belongs to."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from onboardly.core.db import MongoModel
from onboardly.utils import now


class Tenant(MongoModel):
    """A company using the onboarding application.

    Indexed on domain - unique.
    """

    name: str
    domain: str
    created_at: datetime = Field(default_factory=now)


class TenantView(BaseModel):
    """Tenant information (API representation)."""

    id: UUID = Field(..., description="Tenant ID")
    name: str = Field(..., description="Company name")
    domain: str = Field(..., description="Company domain")
    created_at: datetime = Field(..., description="Creation timestamp")

    @classmethod
    def from_domain(cls, tenant: Tenant) -> "TenantView":
        """Create view model from domain model."""
        return cls(id=tenant.id, name=tenant.name, domain=tenant.domain, created_at=tenant.created_at)
