from collections.abc import Sequence
from typing import Any
from uuid import UUID

import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from commentbox.core.core import Service
from commentbox.core.modules.comment.models import Comment, CommentPage, CommentView
from commentbox.core.modules.comment.query_builder import CommentSort, build_parent_query, get_sort_strategy
from commentbox.core.modules.comment.validators import normalize_content
from commentbox.core.modules.comment.votes import VoteKind, toggle_vote, vote_update
from commentbox.core.modules.realtime.models import CommentEvent
from commentbox.core.modules.user.models import User
from commentbox.core.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT, Pagination, page_offset
from commentbox.errors import AccessDeniedError, NotFoundError, ValidationError
from commentbox.utils import now

logger = structlog.get_logger(__name__)

_VOTE_EVENTS = {VoteKind.LIKE: CommentEvent.LIKED, VoteKind.DISLIKE: CommentEvent.DISLIKED}


class CommentService(Service):
    """Manages comments, replies and votes, and announces changes through the notifier."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("comments")

    async def on_start(self) -> None:
        """Create indexes for author, parent and recency lookups."""
        await self._collection.create_index([("author_id", 1)])
        await self._collection.create_index([("parent_id", 1)])
        await self._collection.create_index([("created_at", -1)])

    async def get_comments(
        self,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        sort: CommentSort = CommentSort.NEWEST,
        parent_comment: UUID | str | None = None,
    ) -> CommentPage:
        """Get a page of comments.

        Args:
            page: 1-based page number
            limit: Page size, 1 to 100
            sort: Ordering; vote-count orderings break ties by newest first
            parent_comment: None for all comments, "null" for top-level only,
                or a comment id for its direct replies

        Returns:
            Comments with embedded authors and a pagination block computed
            against the filtered count
        """
        if page < 1:
            raise ValidationError("Page must be a positive integer")
        if not 1 <= limit <= MAX_LIMIT:
            raise ValidationError(f"Limit must be between 1 and {MAX_LIMIT}")

        query = build_parent_query(parent_comment)
        strategy = get_sort_strategy(sort)
        docs, total = await strategy.fetch(self._collection, query, page_offset(page, limit), limit)
        comments = [Comment.model_validate(doc) for doc in docs]

        logger.debug("list_comments", sort=sort, page=page, limit=limit, total=total, returned=len(comments))
        return CommentPage(
            comments=await self._to_views(comments), pagination=Pagination.from_total(page, limit, total)
        )

    async def get_replies(self, comment_id: UUID, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> CommentPage:
        """Get direct replies to a comment, newest first."""
        return await self.get_comments(page=page, limit=limit, sort=CommentSort.NEWEST, parent_comment=comment_id)

    async def get_comment(self, comment_id: UUID) -> Comment:
        """Get comment by ID."""
        doc = await self._collection.find_one({"_id": comment_id})
        if doc is None:
            raise NotFoundError("Comment not found")
        return Comment.model_validate(doc)

    async def get_comment_view(self, comment_id: UUID) -> CommentView:
        return await self._to_view(await self.get_comment(comment_id))

    async def create_comment(self, author: User, content: str, parent_id: UUID | None = None) -> CommentView:
        """Create a top-level comment, or a reply when `parent_id` is given."""
        content = normalize_content(content)
        if parent_id is not None and await self._collection.count_documents({"_id": parent_id}, limit=1) == 0:
            raise NotFoundError("Parent comment not found")

        comment = Comment(content=content, author_id=author.id, parent_id=parent_id)
        await self._collection.insert_one(comment.to_mongo())
        logger.info("comment_created", comment_id=comment.id, parent_id=parent_id)

        view = CommentView.from_domain(comment, author)
        self._broadcast(
            CommentEvent.CREATED,
            {"comment": _dump(view), "parentComment": str(parent_id) if parent_id else None},
        )
        return view

    async def update_comment(self, comment_id: UUID, acting_user: User, content: str) -> CommentView:
        """Replace the text of a comment (author only)."""
        content = normalize_content(content)
        comment = await self.get_comment(comment_id)
        if comment.author_id != acting_user.id:
            raise AccessDeniedError("You can only edit your own comments")

        doc = await self._collection.find_one_and_update(
            {"_id": comment_id},
            {"$set": {"content": content, "updated_at": now()}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFoundError("Comment not found")
        logger.info("comment_updated", comment_id=comment_id)

        view = await self._to_view(Comment.model_validate(doc))
        self._broadcast(CommentEvent.UPDATED, {"comment": _dump(view)})
        return view

    async def delete_comment(self, comment_id: UUID, acting_user: User) -> int:
        """Delete a comment and its direct replies (author only).

        Replies to replies are left in place. Returns the number of deleted comments.
        """
        comment = await self.get_comment(comment_id)
        if comment.author_id != acting_user.id:
            raise AccessDeniedError("You can only delete your own comments")

        result = await self._collection.delete_many({"$or": [{"_id": comment_id}, {"parent_id": comment_id}]})
        logger.info("comment_deleted", comment_id=comment_id, deleted_count=result.deleted_count)

        self._broadcast(
            CommentEvent.DELETED,
            {"commentId": str(comment_id), "parentComment": str(comment.parent_id) if comment.parent_id else None},
        )
        return result.deleted_count

    async def like_comment(self, comment_id: UUID, user: User) -> CommentView:
        """Toggle the user's like."""
        return await self._vote(comment_id, user, VoteKind.LIKE)

    async def dislike_comment(self, comment_id: UUID, user: User) -> CommentView:
        """Toggle the user's dislike."""
        return await self._vote(comment_id, user, VoteKind.DISLIKE)

    async def _vote(self, comment_id: UUID, user: User, kind: VoteKind) -> CommentView:
        comment = await self.get_comment(comment_id)
        outcome = toggle_vote(comment.votes, user.id, kind)

        # Only this user's membership changes; concurrent votes by others survive the update
        doc = await self._collection.find_one_and_update(
            {"_id": comment_id},
            vote_update(comment.votes, outcome.votes),
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFoundError("Comment not found")
        updated = Comment.model_validate(doc)
        logger.debug("comment_voted", comment_id=comment_id, user_id=user.id, action=outcome.action)

        self._broadcast(
            _VOTE_EVENTS[kind],
            {
                "commentId": str(comment_id),
                "likesCount": updated.votes.likes_count,
                "dislikesCount": updated.votes.dislikes_count,
                "action": str(outcome.action),
            },
        )
        return await self._to_view(updated)

    async def _to_view(self, comment: Comment) -> CommentView:
        return (await self._to_views([comment]))[0]

    async def _to_views(self, comments: Sequence[Comment]) -> list[CommentView]:
        """Embed authors, looked up in a single query."""
        authors = await self.core.services.user.get_users(c.author_id for c in comments)
        return [CommentView.from_domain(c, authors.get(c.author_id)) for c in comments]

    def _broadcast(self, event: CommentEvent, payload: dict[str, Any]) -> None:
        try:
            self.core.notifier.broadcast(event, payload)
        except Exception:
            logger.exception("broadcast_failed", event_name=str(event))


def _dump(view: CommentView) -> dict[str, Any]:
    return view.model_dump(mode="json", by_alias=True)
