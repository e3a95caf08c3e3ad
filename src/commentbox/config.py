from typing import Literal

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class RateLimit(BaseModel):
    """Allow `requests` per client within a window of `window_seconds`."""

    requests: int
    window_seconds: int


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 5000
    debug: bool = False  # Development mode: console logs, error details in 500 responses
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expires_days: int = 7
    cors_origins: list[str] = []
    # Auth cookie policy; bearer header is accepted regardless
    cookie_secure: bool = True
    cookie_samesite: Literal["lax", "strict", "none"] = "lax"
    rate_limit_enabled: bool = True
    rate_limit_general: RateLimit = RateLimit(requests=100, window_seconds=15 * 60)
    rate_limit_auth: RateLimit = RateLimit(requests=100, window_seconds=15 * 60)
    rate_limit_comment_create: RateLimit = RateLimit(requests=100, window_seconds=5 * 60)
    rate_limit_vote: RateLimit = RateLimit(requests=100, window_seconds=5 * 60)
    rate_limit_modify: RateLimit = RateLimit(requests=100, window_seconds=10 * 60)

    model_config = {
        "env_file": [".env"],
        "env_prefix": "COMMENTBOX_",
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }
