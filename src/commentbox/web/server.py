from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from commentbox.app import App
from commentbox.config import Config
from commentbox.core.modules.ratelimit.service import RateLimitBucket
from commentbox.core.modules.realtime.notifier import WebSocketNotifier
from commentbox.errors import UserError
from commentbox.utils import now
from commentbox.web.deps import rate_limit
from commentbox.web.error_handlers import (
    general_exception_handler,
    http_exception_handler,
    request_validation_handler,
    user_error_handler,
)
from commentbox.web.openapi import set_custom_openapi
from commentbox.web.routers import auth_router, comments_router, realtime_router

REQUEST_ID_HEADER = "X-Request-ID"


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)


async def bind_request_id(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """Tag every log entry written while serving the request with its request id."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def create_fastapi_app(app_instance: App, notifier: WebSocketNotifier, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """FastAPI application lifespan management."""
        async with app_instance.lifespan():
            yield

    app = FastAPI(
        title="Commentbox API",
        lifespan=lifespan,
        openapi_tags=[],  # Tags will be added by custom OpenAPI function
    )
    # Set before startup so handlers and the WebSocket route can rely on them
    app.state.app = app_instance
    app.state.config = config
    app.state.notifier = notifier
    app.middleware("http")(bind_request_id)

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Health checks are not rate limited
    @app.get("/")
    async def root() -> dict[str, str]:
        return {"status": "success", "message": "Comment System API is running", "timestamp": now().isoformat()}

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy", "timestamp": now().isoformat()}

    api_router = APIRouter(prefix="/api", dependencies=[rate_limit(RateLimitBucket.GENERAL)])
    api_router.include_router(auth_router)
    api_router.include_router(comments_router)
    app.include_router(api_router)
    app.include_router(realtime_router)

    install_error_handlers(app)
    set_custom_openapi(app)

    return app
