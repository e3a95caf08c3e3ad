from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import UUID

from pydantic import Field

from commentbox.config import Config
from commentbox.core.core import Core
from commentbox.core.db import ViewModel
from commentbox.core.modules.comment.models import CommentPage, CommentView
from commentbox.core.modules.comment.query_builder import CommentSort
from commentbox.core.modules.ratelimit.service import RateLimitBucket
from commentbox.core.modules.realtime.notifier import Notifier
from commentbox.core.modules.token.models import AuthToken
from commentbox.core.modules.user.models import User, UserView
from commentbox.errors import InvalidTokenError


class AuthResult(ViewModel):
    """Authenticated user with a freshly issued token."""

    user: UserView = Field(..., description="Authenticated user")
    token: str = Field(..., description="Authentication token for subsequent requests")


class App:
    """Facade for all application operations, validates permissions before delegating to Core."""

    def __init__(self, config: Config, notifier: Notifier) -> None:
        self._core = Core(config, notifier)

    @property
    def config(self) -> Config:
        return self._core.config

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # === Auth ===
    async def register(self, name: str, email: str, password: str) -> AuthResult:
        """Create a user account and log it in."""
        user = await self._core.services.user.create_user(name, email, password)
        return self._auth_result(user)

    async def login(self, email: str, password: str) -> AuthResult:
        """Authenticate by email and password."""
        user = await self._core.services.user.authenticate(email, password)
        return self._auth_result(user)

    async def is_auth_token_valid(self, auth_token: AuthToken) -> bool:
        """Check if authentication token is valid."""
        try:
            self._core.services.token.verify(auth_token)
        except InvalidTokenError:
            return False
        return True

    async def get_current_user(self, auth_token: AuthToken) -> UserView:
        """Get current authenticated user profile."""
        current_user = await self._core.services.access.ensure_authenticated(auth_token)
        return UserView.from_domain(current_user)

    # === Comments ===
    async def get_comments(
        self,
        auth_token: AuthToken,
        page: int,
        limit: int,
        sort: CommentSort,
        parent_comment: str | None = None,
    ) -> CommentPage:
        """Get paginated, sorted comments (authenticated users)."""
        await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.comment.get_comments(page, limit, sort, parent_comment)

    async def get_comment(self, auth_token: AuthToken, comment_id: UUID) -> CommentView:
        """Get a single comment (authenticated users)."""
        await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.comment.get_comment_view(comment_id)

    async def get_replies(self, auth_token: AuthToken, comment_id: UUID, page: int, limit: int) -> CommentPage:
        """Get direct replies to a comment, newest first (authenticated users)."""
        await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.comment.get_replies(comment_id, page, limit)

    async def create_comment(
        self, auth_token: AuthToken, content: str, parent_comment: UUID | None = None
    ) -> CommentView:
        """Post a comment or reply as the current user."""
        current_user = await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.comment.create_comment(current_user, content, parent_comment)

    async def update_comment(self, auth_token: AuthToken, comment_id: UUID, content: str) -> CommentView:
        """Edit a comment (author only)."""
        current_user = await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.comment.update_comment(comment_id, current_user, content)

    async def delete_comment(self, auth_token: AuthToken, comment_id: UUID) -> None:
        """Delete a comment and its direct replies (author only)."""
        current_user = await self._core.services.access.ensure_authenticated(auth_token)
        await self._core.services.comment.delete_comment(comment_id, current_user)

    async def like_comment(self, auth_token: AuthToken, comment_id: UUID) -> CommentView:
        """Toggle the current user's like on a comment."""
        current_user = await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.comment.like_comment(comment_id, current_user)

    async def dislike_comment(self, auth_token: AuthToken, comment_id: UUID) -> CommentView:
        """Toggle the current user's dislike on a comment."""
        current_user = await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.comment.dislike_comment(comment_id, current_user)

    # === Rate limiting ===
    def check_rate_limit(self, bucket: RateLimitBucket, client: str) -> None:
        """Count a request against the client's budget, raising RateLimitError when exhausted."""
        self._core.services.ratelimit.hit(bucket, client)

    def release_rate_limit(self, bucket: RateLimitBucket, client: str) -> None:
        """Return the budget used by a request that succeeded, where the bucket only counts failures."""
        self._core.services.ratelimit.release(bucket, client)

    def _auth_result(self, user: User) -> AuthResult:
        token = self._core.services.token.issue(user.id, user.email)
        return AuthResult(user=UserView.from_domain(user), token=token)
