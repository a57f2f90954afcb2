from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field

from onboardly.web.deps import SESSION_COOKIE

# Endpoints that work without an access token
PUBLIC_ENDPOINTS = {
    ("POST", "/api/v1/auth/magic-link"),
    ("POST", "/api/v1/auth/verify"),
    ("POST", "/api/v1/auth/refresh"),
    ("POST", "/api/v1/auth/logout"),
    ("GET", "/api/v1/auth/session"),
    ("GET", "/api/v1/auth/status"),
    ("GET", "/health"),
}


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="Onboardly Auth API",
            version="0.1.0",
            summary="Passwordless, role-based authentication for multi-tenant onboarding",
            routes=app.routes,
        )

        components = openapi_schema.setdefault("components", {})
        components["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
                "description": "Short-lived access token from /auth/verify or /auth/refresh",
            },
            "SessionCookie": {
                "type": "apiKey",
                "in": "cookie",
                "name": SESSION_COOKIE,
                "description": "Session refresh token, set by /auth/verify",
            },
        }

        # Access token required unless listed as public
        openapi_schema["security"] = [{"BearerAuth": []}]

        for path, path_item in openapi_schema["paths"].items():
            for method, operation in path_item.items():
                if (method.upper(), path) in PUBLIC_ENDPOINTS:
                    operation["security"] = []

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "Magic link has already been used", "type": "token_already_used"},
                {"message": "Access token has expired", "type": "credential_expired"},
                {"message": "Access denied", "type": "access_denied"},
            ]
        }
    }
