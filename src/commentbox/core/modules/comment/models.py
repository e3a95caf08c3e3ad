from datetime import datetime
from uuid import UUID

from pydantic import Field

from commentbox.core.db import MongoModel, ViewModel
from commentbox.core.modules.comment.votes import Votes
from commentbox.core.modules.user.models import User, UserView
from commentbox.core.pagination import Pagination
from commentbox.utils import now


class Comment(MongoModel):
    """Comment with voter sets and an optional parent (replies are one level deep)."""

    content: str
    author_id: UUID
    likes: list[UUID] = Field(default_factory=list)
    dislikes: list[UUID] = Field(default_factory=list)
    parent_id: UUID | None = None
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)

    @property
    def votes(self) -> Votes:
        return Votes(likes=frozenset(self.likes), dislikes=frozenset(self.dislikes))


class CommentView(ViewModel):
    """Comment with embedded author (API representation)."""

    id: UUID = Field(..., description="Comment ID")
    content: str = Field(..., description="Comment text")
    author: UserView | None = Field(..., description="Author projection, null if the author no longer exists")
    parent_comment: UUID | None = Field(..., description="Parent comment ID, null for top-level comments")
    likes: list[UUID] = Field(..., description="IDs of users who liked the comment")
    dislikes: list[UUID] = Field(..., description="IDs of users who disliked the comment")
    likes_count: int = Field(..., ge=0)
    dislikes_count: int = Field(..., ge=0)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, comment: Comment, author: User | None) -> "CommentView":
        return cls(
            id=comment.id,
            content=comment.content,
            author=UserView.from_domain(author) if author else None,
            parent_comment=comment.parent_id,
            likes=comment.likes,
            dislikes=comment.dislikes,
            likes_count=comment.votes.likes_count,
            dislikes_count=comment.votes.dislikes_count,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


class CommentPage(ViewModel):
    """One page of comments."""

    comments: list[CommentView]
    pagination: Pagination
