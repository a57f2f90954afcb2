from datetime import datetime
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Response
from pydantic import BaseModel, EmailStr, Field

from onboardly.core.modules.credential.models import AccessCredential
from onboardly.core.modules.session.models import RefreshToken
from onboardly.core.modules.sweeper.models import CleanupResult
from onboardly.core.modules.user.models import PrincipalContext, UserView
from onboardly.errors import InvalidSession, PrincipalNotFound
from onboardly.web.deps import (
    SESSION_COOKIE,
    AccessTokenDep,
    AppDep,
    ConfigDep,
    OptionalAccessTokenDep,
    RefreshTokenCookieDep,
)
from onboardly.web.openapi import ErrorResponse

router = APIRouter(tags=["auth"])

LINK_SENT_MESSAGE = "If this address is registered, a login link has been sent"


class MagicLinkRequest(BaseModel):
    """Request for a login link."""

    email: EmailStr = Field(..., description="Email address of a registered user")


class MagicLinkResponse(BaseModel):
    """Acknowledgement of a login link request."""

    message: str = Field(..., description="Human-readable status")
    expires_at: datetime | None = Field(None, description="Link expiry (absent when unknown emails are concealed)")
    token: str | None = Field(None, description="Link token, only returned in development setups")


class VerifyRequest(BaseModel):
    """Magic link redemption request."""

    token: str = Field(..., description="64-character lowercase hex token from the link")


class AccessTokenResponse(BaseModel):
    """Short-lived access token."""

    access_token: str = Field(..., description="Signed access token for the Authorization header")
    token_type: Literal["bearer"] = "bearer"
    expires_at: datetime = Field(..., description="Access token expiry")

    @classmethod
    def from_credential(cls, credential: AccessCredential) -> "AccessTokenResponse":
        return cls(access_token=credential.token, expires_at=credential.expires_at)


class VerifyResponse(AccessTokenResponse):
    """Successful redemption: the user and both of its credentials."""

    user: UserView = Field(..., description="Authenticated user")
    refresh_token: str = Field(..., description="Session refresh token (also set as an HttpOnly cookie)")
    refresh_expires_at: datetime = Field(..., description="Session expiry")


class RefreshRequest(BaseModel):
    """Refresh request for clients that do not use the session cookie."""

    refresh_token: str | None = Field(None, description="Session refresh token")


class SessionStatus(BaseModel):
    """Best-effort session state."""

    authenticated: bool = Field(..., description="Whether the session cookie resolved to a user")
    principal: PrincipalContext | None = Field(None, description="Principal context when authenticated")


class RevokedSessionsResponse(BaseModel):
    revoked: int = Field(..., description="Number of sessions removed", ge=0)


def _pick_refresh_token(body: RefreshRequest | None, cookie: RefreshToken | None) -> RefreshToken | None:
    if body is not None and body.refresh_token:
        return RefreshToken(body.refresh_token)
    return cookie


@router.post(
    "/auth/magic-link",
    summary="Request a login link",
    description="Issue a single-use login link for a registered email. Any previous unused link stops working.",
    operation_id="requestMagicLink",
    responses={
        200: {"description": "Link issued"},
        404: {"model": ErrorResponse, "description": "No user with this email"},
        429: {"model": ErrorResponse, "description": "Too many requests for this email"},
    },
)
async def request_magic_link(request: MagicLinkRequest, app: AppDep, config: ConfigDep) -> MagicLinkResponse:
    try:
        link = await app.request_magic_link(request.email)
    except PrincipalNotFound:
        if not config.conceal_unknown_emails:
            raise
        return MagicLinkResponse(message=LINK_SENT_MESSAGE)

    return MagicLinkResponse(
        message=LINK_SENT_MESSAGE,
        expires_at=link.expires_at,
        token=link.token if config.expose_magic_link_token else None,
    )


@router.post(
    "/auth/verify",
    summary="Redeem a login link",
    description="Redeem a magic link token once and open a session. Sets the session cookie.",
    operation_id="verifyMagicLink",
    responses={
        200: {"description": "Successfully authenticated"},
        400: {"model": ErrorResponse, "description": "Malformed token"},
        401: {"model": ErrorResponse, "description": "Unknown, expired or already used link"},
    },
)
async def verify_magic_link(request: VerifyRequest, app: AppDep, config: ConfigDep, response: Response) -> VerifyResponse:
    redemption = await app.redeem_magic_link(request.token)

    # Set cookie for browser-based clients
    response.set_cookie(
        key=SESSION_COOKIE,
        value=redemption.session.token,
        httponly=True,
        samesite="lax",
        secure=config.cookie_secure,
        max_age=config.session_ttl_days * 24 * 60 * 60,
        path="/",
    )

    return VerifyResponse(
        access_token=redemption.access.token,
        expires_at=redemption.access.expires_at,
        user=UserView.from_domain(redemption.user),
        refresh_token=redemption.session.token,
        refresh_expires_at=redemption.session.expires_at,
    )


@router.post(
    "/auth/refresh",
    summary="Refresh the access token",
    description="Mint a new access token from the session cookie or a refresh token in the body.",
    operation_id="refreshAccessToken",
    responses={
        200: {"description": "New access token"},
        401: {"model": ErrorResponse, "description": "Invalid or expired session"},
    },
)
async def refresh_access_token(
    app: AppDep, refresh_cookie: RefreshTokenCookieDep, request: RefreshRequest | None = None
) -> AccessTokenResponse:
    refresh_token = _pick_refresh_token(request, refresh_cookie)
    if refresh_token is None:
        raise InvalidSession
    credential = await app.refresh_access(refresh_token)
    return AccessTokenResponse.from_credential(credential)


@router.get(
    "/auth/session",
    summary="Validate the session",
    description="Resolve the session cookie to the principal it belongs to.",
    operation_id="validateSession",
    responses={
        200: {"description": "Principal of the session"},
        401: {"model": ErrorResponse, "description": "Invalid or expired session"},
    },
)
async def validate_session(app: AppDep, refresh_cookie: RefreshTokenCookieDep) -> PrincipalContext:
    if refresh_cookie is None:
        raise InvalidSession
    return await app.validate_session(refresh_cookie)


@router.get(
    "/auth/status",
    summary="Session status",
    description="Report whether the session cookie is valid. Never fails.",
    operation_id="getSessionStatus",
)
async def session_status(app: AppDep, refresh_cookie: RefreshTokenCookieDep) -> SessionStatus:
    principal = await app.get_session_context(refresh_cookie)
    return SessionStatus(authenticated=principal is not None, principal=principal)


@router.get(
    "/auth/me",
    summary="Current user",
    description="Get the user identified by the access token.",
    operation_id="getCurrentUser",
    responses={
        200: {"description": "Current user"},
        401: {"model": ErrorResponse, "description": "Missing, invalid or expired access token"},
    },
)
async def get_current_user(app: AppDep, access_token: AccessTokenDep) -> UserView:
    return await app.get_current_user(access_token)


@router.post(
    "/auth/logout",
    summary="End session",
    description="Revoke the session and the presented access token, and clear the session cookie.",
    operation_id="logout",
    status_code=204,
    responses={204: {"description": "Successfully logged out"}},
)
async def logout(
    app: AppDep,
    config: ConfigDep,
    response: Response,
    refresh_cookie: RefreshTokenCookieDep,
    access_token: OptionalAccessTokenDep,
    request: RefreshRequest | None = None,
) -> None:
    await app.logout(_pick_refresh_token(request, refresh_cookie), access_token)
    response.delete_cookie(SESSION_COOKIE, path="/", httponly=True, samesite="lax", secure=config.cookie_secure)


@router.post(
    "/auth/revoke-all-sessions/{user_id}",
    summary="Revoke all sessions of a user",
    description="Force logout of a user of the same tenant. Only accessible by tenant admins.",
    operation_id="revokeAllSessions",
    responses={
        200: {"description": "Sessions revoked"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Tenant admin privileges required"},
    },
)
async def revoke_all_sessions(user_id: UUID, app: AppDep, access_token: AccessTokenDep) -> RevokedSessionsResponse:
    revoked = await app.revoke_all_sessions(access_token, user_id)
    return RevokedSessionsResponse(revoked=revoked)


@router.post(
    "/auth/cleanup",
    summary="Remove stale credentials",
    description="Delete expired or used magic links and expired sessions. Only accessible by tenant admins.",
    operation_id="cleanupExpired",
    responses={
        200: {"description": "Cleanup counts"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Tenant admin privileges required"},
    },
)
async def cleanup_expired(app: AppDep, access_token: AccessTokenDep) -> CleanupResult:
    return await app.cleanup_expired(access_token)
