from uuid import UUID

from fastapi import APIRouter, Query
from pydantic import BaseModel, EmailStr, Field

from onboardly.core.modules.user.models import Role, UserUpdate, UserView
from onboardly.web.deps import AccessTokenDep, AppDep
from onboardly.web.openapi import ErrorResponse

router = APIRouter(tags=["users"])


class CreateUserRequest(BaseModel):
    """Request to create a new user in the caller's tenant."""

    email: EmailStr = Field(..., description="Email address for the new user")
    role: Role = Field(..., description="Role within the tenant")
    team_id: str | None = Field(None, min_length=1, description="Team ID (required for managers, forbidden for admins)")


@router.get(
    "/users",
    summary="List users",
    description="List users visible to the caller: the whole tenant for admins, the team for managers.",
    operation_id="listUsers",
    responses={
        200: {"description": "List of users"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Members cannot list users"},
    },
)
async def list_users(
    app: AppDep, access_token: AccessTokenDep, role: Role | None = Query(None, description="Filter by role")
) -> list[UserView]:
    return await app.list_users(access_token, role)


@router.post(
    "/users",
    summary="Create new user",
    description="Create a user in the caller's tenant. Only accessible by tenant admins.",
    operation_id="createUser",
    responses={
        201: {"description": "User created successfully"},
        400: {"model": ErrorResponse, "description": "Invalid email, duplicate email or invalid role/team combination"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Tenant admin privileges required"},
    },
    status_code=201,
)
async def create_user(create_data: CreateUserRequest, app: AppDep, access_token: AccessTokenDep) -> UserView:
    return await app.create_user(access_token, create_data.email, create_data.role, create_data.team_id)


@router.get(
    "/users/email/{email}",
    summary="Get user by email",
    description="Find a user by email within the caller's scope. Only accessible by tenant admins and managers.",
    operation_id="getUserByEmail",
    responses={
        200: {"description": "User"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Outside the caller's scope or members"},
    },
)
async def get_user_by_email(email: str, app: AppDep, access_token: AccessTokenDep) -> UserView:
    return await app.get_user_by_email(access_token, email)


@router.get(
    "/users/{user_id}",
    summary="Get user",
    description="Get a user within the caller's scope.",
    operation_id="getUser",
    responses={
        200: {"description": "User"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Outside the caller's scope"},
    },
)
async def get_user(user_id: UUID, app: AppDep, access_token: AccessTokenDep) -> UserView:
    return await app.get_user(access_token, user_id)


@router.patch(
    "/users/{user_id}",
    summary="Update user",
    description="Update a user within the caller's scope. Only admins change roles and teams.",
    operation_id="updateUser",
    responses={
        200: {"description": "Updated user"},
        400: {"model": ErrorResponse, "description": "Invalid role/team combination"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Outside the caller's scope or not allowed"},
    },
)
async def update_user(user_id: UUID, changes: UserUpdate, app: AppDep, access_token: AccessTokenDep) -> UserView:
    return await app.update_user(access_token, user_id, changes)


@router.delete(
    "/users/{user_id}",
    summary="Delete user",
    description="Delete a user and all of its sessions and links. Only accessible by tenant admins.",
    operation_id="deleteUser",
    responses={
        204: {"description": "User deleted successfully"},
        400: {"model": ErrorResponse, "description": "Cannot delete yourself"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Tenant admin privileges required"},
    },
    status_code=204,
)
async def delete_user(user_id: UUID, app: AppDep, access_token: AccessTokenDep) -> None:
    await app.delete_user(access_token, user_id)
