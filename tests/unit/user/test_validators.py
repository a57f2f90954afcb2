"""Tests for user validators."""

import pytest

from onboardly.core.modules.user.models import Role
from onboardly.core.modules.user.validators import validate_role_assignment, validate_user_email
from onboardly.errors import InvalidRoleAssignment, ValidationError


class TestValidateRoleAssignment:
    """Tests for the role and team rules."""

    def test_manager_requires_team(self):
        """Test that a manager without team is rejected."""
        with pytest.raises(InvalidRoleAssignment, match="manager must be assigned to a team"):
            validate_role_assignment(Role.MANAGER, None)

    def test_manager_with_empty_team_rejected(self):
        """Test that an empty team id counts as no team."""
        with pytest.raises(InvalidRoleAssignment):
            validate_role_assignment(Role.MANAGER, "")

    def test_manager_with_team_accepted(self):
        validate_role_assignment(Role.MANAGER, "team-1")

    def test_tenant_admin_forbids_team(self):
        """Test that a tenant admin attached to a team is rejected."""
        with pytest.raises(InvalidRoleAssignment, match="tenant admin cannot be assigned to a team"):
            validate_role_assignment(Role.TENANT_ADMIN, "team-1")

    def test_tenant_admin_without_team_accepted(self):
        validate_role_assignment(Role.TENANT_ADMIN, None)

    def test_member_with_or_without_team_accepted(self):
        """Test that members may or may not belong to a team."""
        validate_role_assignment(Role.MEMBER, None)
        validate_role_assignment(Role.MEMBER, "team-1")

    def test_invalid_role_assignment_is_validation_error(self):
        """Test that role errors are reported as invalid input."""
        assert issubclass(InvalidRoleAssignment, ValidationError)


class TestValidateUserEmail:
    """Tests for email normalization."""

    def test_lowercases_and_strips(self):
        assert validate_user_email("  Alice@ACME.com ") == "alice@acme.com"

    def test_rejects_malformed(self):
        with pytest.raises(ValidationError, match="Invalid email address"):
            validate_user_email("not-an-email")
