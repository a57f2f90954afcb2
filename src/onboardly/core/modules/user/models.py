from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from onboardly.core.db import MongoModel
from onboardly.utils import now


class Role(StrEnum):
    """Roles a principal can hold inside its tenant."""

    TENANT_ADMIN = "TENANT_ADMIN"  # Whole tenant, never attached to a team
    MANAGER = "MANAGER"  # Own team only, always attached to a team
    MEMBER = "MEMBER"  # Own record only


class User(MongoModel):
    """Principal belonging to exactly one tenant.

    Indexed on email - unique (global, across tenants), tenant_id, (tenant_id, team_id).
    """

    tenant_id: UUID
    email: str  # Stored lower-cased
    role: Role
    team_id: str | None = None
    created_at: datetime = Field(default_factory=now)


class UserView(BaseModel):
    """User account information (API representation)."""

    id: UUID = Field(..., description="User ID")
    tenant_id: UUID = Field(..., description="Tenant the user belongs to")
    email: str = Field(..., description="Email address")
    role: Role = Field(..., description="Role within the tenant")
    team_id: str | None = Field(None, description="Team ID (managers and team members)")
    created_at: datetime = Field(..., description="Creation timestamp")

    @classmethod
    def from_domain(cls, user: User) -> "UserView":
        """Create view model from domain model."""
        return cls(
            id=user.id,
            tenant_id=user.tenant_id,
            email=user.email,
            role=user.role,
            team_id=user.team_id,
            created_at=user.created_at,
        )


class PrincipalContext(BaseModel):
    """Minimal identity propagated to authorization checks.

    Carries no email or other personal data.
    """

    user_id: UUID = Field(..., description="User ID")
    role: Role = Field(..., description="Role within the tenant")
    tenant_id: UUID = Field(..., description="Tenant ID")
    team_id: str | None = Field(None, description="Team ID")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_user(cls, user: User) -> "PrincipalContext":
        return cls(user_id=user.id, role=user.role, tenant_id=user.tenant_id, team_id=user.team_id)


class UserUpdate(BaseModel):
    """Partial update of a principal; only explicitly set fields are applied."""

    email: str | None = Field(None, description="New email address")
    role: Role | None = Field(None, description="New role")
    team_id: str | None = Field(None, min_length=1, description="New team ID, null to detach from the team")
