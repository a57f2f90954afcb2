"""Authorization rules for principals, as pure functions.

Precedence:
1. Tenant isolation: nothing outside the caller's tenant is ever visible.
2. Role scope: TENANT_ADMIN sees the whole tenant, MANAGER its team, MEMBER itself.
3. Role actions: what each role may do with what it can see.
4. Role/team assignment rules, checked by the user validators on every write.

Denials always carry the same message, so a caller cannot tell a resource
outside its scope from one that does not exist.
"""

from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from onboardly.core.modules.user.models import PrincipalContext, Role, User, UserUpdate
from onboardly.errors import AccessDeniedError


class Action(StrEnum):
    READ = "read"
    LIST = "list"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    REVOKE_SESSIONS = "revoke_sessions"
    CLEANUP = "cleanup"


ROLE_ACTIONS: dict[Role, frozenset[Action]] = {
    Role.TENANT_ADMIN: frozenset(Action),
    Role.MANAGER: frozenset({Action.READ, Action.LIST, Action.UPDATE}),
    Role.MEMBER: frozenset({Action.READ, Action.UPDATE}),
}


class Scope(BaseModel):
    """Rows a principal may see: always its tenant, narrowed to a team or to itself."""

    tenant_id: UUID
    team_id: str | None = None
    user_id: UUID | None = None

    model_config = ConfigDict(frozen=True)


def build_scope(context: PrincipalContext) -> Scope:
    if context.role == Role.MANAGER:
        if context.team_id is None:
            raise AccessDeniedError
        return Scope(tenant_id=context.tenant_id, team_id=context.team_id)
    if context.role == Role.MEMBER:
        return Scope(tenant_id=context.tenant_id, user_id=context.user_id)
    return Scope(tenant_id=context.tenant_id)


def scope_to_query(scope: Scope) -> dict[str, Any]:
    """MongoDB filter on the users collection matching exactly the rows in scope."""
    query: dict[str, Any] = {"tenant_id": scope.tenant_id}
    if scope.team_id is not None:
        query["team_id"] = scope.team_id
    if scope.user_id is not None:
        query["_id"] = scope.user_id
    return query


def is_in_scope(context: PrincipalContext, target: User) -> bool:
    scope = build_scope(context)
    if target.tenant_id != scope.tenant_id:
        return False
    if scope.team_id is not None and target.team_id != scope.team_id:
        return False
    return scope.user_id is None or target.id == scope.user_id


def can_perform(role: Role, action: Action) -> bool:
    return action in ROLE_ACTIONS[role]


def authorize(context: PrincipalContext, action: Action, target: User | None = None) -> None:
    """Raise AccessDeniedError unless the principal may perform the action on the target."""
    if not can_perform(context.role, action):
        raise AccessDeniedError
    if target is not None and not is_in_scope(context, target):
        raise AccessDeniedError


def authorize_create(context: PrincipalContext, tenant_id: UUID) -> None:
    """Check that the principal may create users in the given tenant (tenant admins only)."""
    authorize(context, Action.CREATE)
    if tenant_id != context.tenant_id:
        raise AccessDeniedError


def authorize_update(context: PrincipalContext, target: User, changes: UserUpdate) -> None:
    """Check an update of a principal; only tenant admins change roles or teams."""
    authorize(context, Action.UPDATE, target)
    if context.role == Role.TENANT_ADMIN:
        return
    provided = changes.model_fields_set
    if "role" in provided and changes.role not in (None, target.role):
        raise AccessDeniedError
    if "team_id" in provided and changes.team_id != target.team_id:
        raise AccessDeniedError
