import structlog
from fastapi import Request
from fastapi.responses import JSONResponse, Response

from onboardly.errors import (
    AccessDeniedError,
    AuthenticationError,
    NotFoundError,
    RateLimitExceeded,
    UserError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

# Checked in order, first match wins
STATUS_CODES: list[tuple[type[UserError], int]] = [
    (AuthenticationError, 401),
    (AccessDeniedError, 403),
    (NotFoundError, 404),
    (ValidationError, 400),
    (RateLimitExceeded, 429),
]


def create_json_error_response(status_code: int, message: str, error_type: str | None = None) -> JSONResponse:
    """Create JSON error response with optional type for machine parsing."""
    content = {"message": message}
    if error_type:
        content["type"] = error_type
    return JSONResponse(status_code=status_code, content=content)


def status_code_for(exc: UserError) -> int:
    return next((code for error_class, code in STATUS_CODES if isinstance(exc, error_class)), 400)


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    if not isinstance(exc, UserError):
        return await general_exception_handler(_, exc)
    return create_json_error_response(status_code=status_code_for(exc), message=str(exc), error_type=exc.code)


async def general_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("unexpected_error", path=request.url.path, method=request.method, exc_info=exc)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
