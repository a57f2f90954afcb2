from typing import Annotated, cast

from fastapi import Depends, Request
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer

from onboardly.app import App
from onboardly.config import Config
from onboardly.core.modules.credential.models import AccessToken
from onboardly.core.modules.session.models import RefreshToken
from onboardly.errors import AuthenticationError

SESSION_COOKIE = "session_token"

# Security schemes
bearer_scheme = HTTPBearer(auto_error=False)
session_cookie_scheme = APIKeyCookie(name=SESSION_COOKIE, auto_error=False)


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_config(request: Request) -> Config:
    return cast(Config, request.app.state.config)


async def get_optional_access_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
) -> AccessToken | None:
    """Access token from the Authorization Bearer header, if any. Verification is left to the app."""
    if credentials and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return AccessToken(credentials.credentials)
    return None


async def get_access_token(
    access_token: Annotated[AccessToken | None, Depends(get_optional_access_token)],
) -> AccessToken:
    if access_token is None:
        raise AuthenticationError("Missing access token")
    return access_token


async def get_refresh_token(
    token_cookie: Annotated[str | None, Depends(session_cookie_scheme)] = None,
) -> RefreshToken | None:
    """Refresh token from the session cookie, if any."""
    return RefreshToken(token_cookie) if token_cookie else None


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
ConfigDep = Annotated[Config, Depends(get_config)]
AccessTokenDep = Annotated[AccessToken, Depends(get_access_token)]
OptionalAccessTokenDep = Annotated[AccessToken | None, Depends(get_optional_access_token)]
RefreshTokenCookieDep = Annotated[RefreshToken | None, Depends(get_refresh_token)]
