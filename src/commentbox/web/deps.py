from collections.abc import AsyncGenerator
from typing import Annotated, Any, cast

from fastapi import Depends, Request
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer

from commentbox.app import App
from commentbox.core.modules.ratelimit.service import RateLimitBucket
from commentbox.core.modules.token.models import AuthToken
from commentbox.errors import AuthenticationError

AUTH_COOKIE_NAME = "token"

# Security schemes
bearer_scheme = HTTPBearer(auto_error=False)
cookie_scheme = APIKeyCookie(name=AUTH_COOKIE_NAME, auto_error=False)


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_auth_token(
    app: Annotated[App, Depends(get_app)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
    token_cookie: Annotated[str | None, Depends(cookie_scheme)] = None,
) -> AuthToken:
    """Get and validate auth token from Authorization Bearer header or cookie."""

    # Check Bearer token first (preferred)
    if credentials and credentials.scheme == "Bearer":
        auth_token = AuthToken(credentials.credentials)
        if await app.is_auth_token_valid(auth_token):
            return auth_token

    # Fallback to cookie
    if token_cookie:
        auth_token = AuthToken(token_cookie)
        if await app.is_auth_token_valid(auth_token):
            return auth_token

    if credentials or token_cookie:
        raise AuthenticationError("Invalid or expired token")
    raise AuthenticationError("No token provided. Please authenticate.")


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit(bucket: RateLimitBucket) -> Any:
    """Dependency that counts the request against `bucket` for the calling client.

    A request that completes without raising is handed back to the limiter, which
    keeps it counted only for buckets that count every request.
    """

    async def dependency(request: Request, app: Annotated[App, Depends(get_app)]) -> AsyncGenerator[None]:
        client = client_address(request)
        app.check_rate_limit(bucket, client)
        yield
        app.release_rate_limit(bucket, client)

    return Depends(dependency)


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
AuthTokenDep = Annotated[AuthToken, Depends(get_auth_token)]
