import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from commentbox.errors import (
    AccessDeniedError,
    AuthenticationError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def create_json_error_response(
    status_code: int, message: str, error_type: str | None = None, detail: str | None = None
) -> JSONResponse:
    """Create JSON error response with optional type for machine parsing."""
    content = {"message": message}
    if error_type:
        content["type"] = error_type
    if detail:
        content["detail"] = detail
    return JSONResponse(status_code=status_code, content=content)


def classify_user_error(exc: Exception) -> tuple[int, str]:
    """Map a UserError to its HTTP status code and machine-readable type."""
    if isinstance(exc, AuthenticationError):
        return 401, "authentication_error"
    if isinstance(exc, AccessDeniedError):
        return 403, "access_denied"
    if isinstance(exc, NotFoundError):
        return 404, "not_found"
    if isinstance(exc, RateLimitError):
        return 429, "rate_limited"
    if isinstance(exc, ValidationError):
        return 400, "validation_error"
    # Default for any other UserError subclass
    return 400, "bad_request"


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    status_code, error_type = classify_user_error(exc)
    return create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type)


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Route framework HTTP errors (unknown routes, wrong methods) through the same error format."""
    if isinstance(exc, StarletteHTTPException) and exc.status_code == 404:
        return await user_error_handler(request, NotFoundError(f"Route {request.url.path} not found"))
    status_code = exc.status_code if isinstance(exc, StarletteHTTPException) else 500
    message = str(exc.detail) if isinstance(exc, StarletteHTTPException) else "An unexpected error occurred."
    return create_json_error_response(status_code=status_code, message=message, error_type="http_error")


async def request_validation_handler(request: Request, exc: Exception) -> Response:
    """Report request parameter/body validation failures as 400."""
    if isinstance(exc, RequestValidationError):
        message = ", ".join(_format_validation_error(error) for error in exc.errors())
    else:
        message = str(exc)
    return await user_error_handler(request, ValidationError(message or "Invalid request"))


async def general_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500). Details are only exposed in debug mode."""
    logger.exception("Unexpected error on %s %s: %s", request.method, request.url.path, exc)
    config = getattr(request.app.state, "config", None)
    detail = repr(exc) if config is not None and config.debug else None
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error", detail=detail
    )


def _format_validation_error(error: dict[str, Any]) -> str:
    location = error.get("loc", ())
    field = ".".join(str(part) for part in location if part not in ("body", "query", "path"))
    message = str(error.get("msg", "Invalid value"))
    return f"{field}: {message}" if field else message
