from commentbox.web.routers.auth import router as auth_router
from commentbox.web.routers.comments import router as comments_router
from commentbox.web.routers.realtime import router as realtime_router

__all__ = [
    "auth_router",
    "comments_router",
    "realtime_router",
]
