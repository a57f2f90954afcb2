from email_validator import EmailNotValidError, validate_email

from onboardly.core.modules.user.models import Role
from onboardly.errors import InvalidRoleAssignment, ValidationError


def validate_role_assignment(role: Role, team_id: str | None) -> None:
    """Validate the role and team combination of a principal.

    Rules:
    - A MANAGER must be attached to a team
    - A TENANT_ADMIN must not be attached to a team
    - A MEMBER may or may not be attached to a team

    Raises:
        InvalidRoleAssignment: If the combination breaks a rule
    """
    if role == Role.MANAGER and not team_id:
        raise InvalidRoleAssignment("A manager must be assigned to a team")

    if role == Role.TENANT_ADMIN and team_id:
        raise InvalidRoleAssignment("A tenant admin cannot be assigned to a team")


def validate_user_email(email: str) -> str:
    """Validate email syntax and return its normalized (lower-cased) form.

    Raises:
        ValidationError: If the address is malformed
    """
    try:
        result = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email address: {e}") from None
    return result.normalized.lower()
