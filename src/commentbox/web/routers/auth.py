from fastapi import APIRouter, Response
from pydantic import Field

from commentbox.app import App, AuthResult
from commentbox.core.db import ViewModel
from commentbox.core.modules.ratelimit.service import RateLimitBucket
from commentbox.core.modules.user.models import UserView
from commentbox.web.deps import AUTH_COOKIE_NAME, AppDep, AuthTokenDep, rate_limit
from commentbox.web.openapi import ErrorResponse

router = APIRouter(tags=["auth"])


class RegisterRequest(ViewModel):
    """Account registration request."""

    name: str = Field(..., min_length=1, max_length=50, description="Display name")
    email: str = Field(..., min_length=3, description="Email address, used to log in")
    password: str = Field(..., min_length=6, max_length=128, description="Password")


class LoginRequest(ViewModel):
    """Authentication request."""

    email: str = Field(..., description="Email for authentication")
    password: str = Field(..., description="Password for authentication")


class CurrentUserResponse(ViewModel):
    user: UserView


def set_auth_cookie(response: Response, app: App, token: str) -> None:
    """Set the auth token as an HTTP-only cookie for browser-based clients."""
    config = app.config
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite=config.cookie_samesite,
        secure=config.cookie_secure,
        max_age=config.jwt_expires_days * 24 * 60 * 60,  # match token expiry
    )


@router.post(
    "/auth/register",
    summary="Register user",
    description="Create an account and receive an authentication token.",
    operation_id="register",
    status_code=201,
    dependencies=[rate_limit(RateLimitBucket.AUTH)],
    responses={
        201: {"description": "User registered"},
        400: {"model": ErrorResponse, "description": "Invalid data or email already registered"},
        429: {"model": ErrorResponse, "description": "Too many requests"},
    },
)
async def register(request: RegisterRequest, app: AppDep, response: Response) -> AuthResult:
    result = await app.register(request.name, request.email, request.password)
    set_auth_cookie(response, app, result.token)
    return result


@router.post(
    "/auth/login",
    summary="Authenticate user",
    description="Authenticate with email and password to receive an authentication token.",
    operation_id="login",
    dependencies=[rate_limit(RateLimitBucket.AUTH)],
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        429: {"model": ErrorResponse, "description": "Too many requests"},
    },
)
async def login(login_data: LoginRequest, app: AppDep, response: Response) -> AuthResult:
    result = await app.login(login_data.email, login_data.password)
    set_auth_cookie(response, app, result.token)
    return result


@router.post(
    "/auth/logout",
    summary="Log out",
    description="Clear the authentication cookie. Tokens stay valid until they expire.",
    operation_id="logout",
    status_code=204,
    responses={204: {"description": "Cookie cleared"}},
)
async def logout(response: Response) -> None:
    response.delete_cookie(AUTH_COOKIE_NAME)


@router.get(
    "/auth/me",
    summary="Get current user",
    description="Get the profile of the currently authenticated user.",
    operation_id="getCurrentUser",
    responses={
        200: {"description": "Current user profile"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_current_user(app: AppDep, auth_token: AuthTokenDep) -> CurrentUserResponse:
    return CurrentUserResponse(user=await app.get_current_user(auth_token))
