"""Tests for CommentService with a mocked collection."""

import asyncio
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest

from commentbox.core.modules.comment.models import Comment
from commentbox.core.modules.comment.query_builder import CommentSort
from commentbox.core.modules.comment.service import CommentService
from commentbox.core.modules.realtime.models import CommentEvent
from commentbox.errors import AccessDeniedError, NotFoundError, ValidationError
from tests.fakes import FailingNotifier, FakeCursor, InMemoryComments

PARENT_ID = UUID("bbbbbbbb-0000-4000-8000-000000000002")


def apply_set(doc):
    """find_one_and_update side effect that applies a $set to `doc`."""

    async def side_effect(_filter, update, **_kwargs):
        return {**doc, **update["$set"]}

    return side_effect


@pytest.fixture
def service(mock_collection, mock_core):
    database = MagicMock()
    database.get_collection = MagicMock(return_value=mock_collection)
    service = CommentService(database)
    service.set_core(mock_core)
    return service


class TestGetComment:
    @pytest.mark.asyncio
    async def test_missing_comment_raises_not_found(self, service):
        """Test that an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError, match="Comment not found"):
            await service.get_comment(PARENT_ID)

    @pytest.mark.asyncio
    async def test_view_embeds_author(self, service, mock_collection, mock_comment, mock_user):
        """Test that the view carries the author projection and counts."""
        mock_collection.find_one.return_value = mock_comment.to_mongo()

        view = await service.get_comment_view(mock_comment.id)

        assert view.author is not None
        assert view.author.id == mock_user.id
        assert view.author.name == "Alice"
        assert view.likes_count == 0
        assert "password_hash" not in view.model_dump(by_alias=True)["author"]


class TestCreateComment:
    @pytest.mark.asyncio
    async def test_creates_top_level_comment(self, service, mock_collection, mock_user, recording_notifier):
        """Test content is trimmed, stored and announced."""
        view = await service.create_comment(mock_user, "  hello  ")

        assert view.content == "hello"
        assert view.parent_comment is None
        assert view.likes_count == 0
        assert view.dislikes_count == 0
        stored = mock_collection.insert_one.await_args.args[0]
        assert stored["content"] == "hello"
        assert stored["author_id"] == mock_user.id
        assert stored["likes"] == []
        assert stored["dislikes"] == []

        event, payload = recording_notifier.events[0]
        assert event == CommentEvent.CREATED
        assert payload["comment"]["content"] == "hello"
        assert payload["parentComment"] is None

    @pytest.mark.asyncio
    async def test_reply_requires_existing_parent(self, service, mock_collection, mock_user):
        """Test that replying to a missing comment raises NotFoundError."""
        mock_collection.count_documents.return_value = 0

        with pytest.raises(NotFoundError, match="Parent comment not found"):
            await service.create_comment(mock_user, "reply", PARENT_ID)
        mock_collection.insert_one.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reply_to_existing_parent(self, service, mock_collection, mock_user, recording_notifier):
        """Test that a reply stores its parent reference."""
        mock_collection.count_documents.return_value = 1

        view = await service.create_comment(mock_user, "reply", PARENT_ID)

        assert view.parent_comment == PARENT_ID
        assert mock_collection.insert_one.await_args.args[0]["parent_id"] == PARENT_ID
        assert recording_notifier.events[0][1]["parentComment"] == str(PARENT_ID)

    @pytest.mark.asyncio
    async def test_blank_content_rejected(self, service, mock_user):
        """Test that whitespace-only content is rejected before touching the store."""
        with pytest.raises(ValidationError):
            await service.create_comment(mock_user, "   ")

    @pytest.mark.asyncio
    async def test_broadcast_failure_does_not_fail_request(self, service, mock_core, mock_user):
        """Test that an exploding notifier is logged and ignored."""
        mock_core.notifier = FailingNotifier()

        view = await service.create_comment(mock_user, "still saved")

        assert view.content == "still saved"


class TestUpdateComment:
    @pytest.mark.asyncio
    async def test_author_can_edit(self, service, mock_collection, mock_comment, mock_user, recording_notifier):
        """Test that the author's edit is stored and announced."""
        doc = mock_comment.to_mongo()
        mock_collection.find_one.return_value = doc
        mock_collection.find_one_and_update.side_effect = apply_set(doc)

        view = await service.update_comment(mock_comment.id, mock_user, " edited ")

        assert view.content == "edited"
        update = mock_collection.find_one_and_update.await_args.args[1]
        assert update["$set"]["content"] == "edited"
        assert "updated_at" in update["$set"]
        assert recording_notifier.events[0][0] == CommentEvent.UPDATED

    @pytest.mark.asyncio
    async def test_other_user_forbidden(self, service, mock_collection, mock_comment, other_user):
        """Test that only the author can edit."""
        mock_collection.find_one.return_value = mock_comment.to_mongo()

        with pytest.raises(AccessDeniedError, match="edit your own"):
            await service.update_comment(mock_comment.id, other_user, "hijacked")
        mock_collection.find_one_and_update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_comment(self, service, mock_user):
        """Test NotFoundError for an unknown id."""
        with pytest.raises(NotFoundError):
            await service.update_comment(PARENT_ID, mock_user, "text")


class TestDeleteComment:
    @pytest.mark.asyncio
    async def test_deletes_comment_and_direct_replies(
        self, service, mock_collection, mock_comment, mock_user, recording_notifier
    ):
        """Test a single delete_many over the comment and its children."""
        mock_collection.find_one.return_value = mock_comment.to_mongo()
        mock_collection.delete_many.return_value = MagicMock(deleted_count=3)

        deleted = await service.delete_comment(mock_comment.id, mock_user)

        assert deleted == 3
        mock_collection.delete_many.assert_awaited_once_with(
            {"$or": [{"_id": mock_comment.id}, {"parent_id": mock_comment.id}]}
        )
        assert recording_notifier.events == [
            (CommentEvent.DELETED, {"commentId": str(mock_comment.id), "parentComment": None})
        ]

    @pytest.mark.asyncio
    async def test_other_user_forbidden(self, service, mock_collection, mock_comment, other_user):
        """Test that only the author can delete."""
        mock_collection.find_one.return_value = mock_comment.to_mongo()

        with pytest.raises(AccessDeniedError, match="delete your own"):
            await service.delete_comment(mock_comment.id, other_user)
        mock_collection.delete_many.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_comment(self, service, mock_user):
        """Test NotFoundError for an unknown id."""
        with pytest.raises(NotFoundError):
            await service.delete_comment(PARENT_ID, mock_user)


@pytest.fixture
def voting_service(mock_comment, mock_core):
    """CommentService over an in-memory collection holding `mock_comment`."""
    database = MagicMock()
    database.get_collection = MagicMock(return_value=InMemoryComments([mock_comment.to_mongo()]))
    service = CommentService(database)
    service.set_core(mock_core)
    return service


def stored_votes(service, comment_id):
    doc = service._collection.docs[comment_id]
    return set(doc["likes"]), set(doc["dislikes"])


class TestVoting:
    @pytest.mark.asyncio
    async def test_like_then_dislike(self, voting_service, mock_comment, other_user, recording_notifier):
        """Test the like/dislike scenario on counts and events."""
        liked = await voting_service.like_comment(mock_comment.id, other_user)
        assert liked.likes_count == 1
        assert liked.dislikes_count == 0
        assert liked.likes == [other_user.id]

        disliked = await voting_service.dislike_comment(mock_comment.id, other_user)
        assert disliked.likes_count == 0
        assert disliked.dislikes_count == 1

        assert recording_notifier.events == [
            (
                CommentEvent.LIKED,
                {"commentId": str(mock_comment.id), "likesCount": 1, "dislikesCount": 0, "action": "like"},
            ),
            (
                CommentEvent.DISLIKED,
                {"commentId": str(mock_comment.id), "likesCount": 0, "dislikesCount": 1, "action": "dislike"},
            ),
        ]

    @pytest.mark.asyncio
    async def test_second_like_unlikes(self, voting_service, mock_comment, other_user, recording_notifier):
        """Test that liking an already liked comment removes the like."""
        await voting_service.like_comment(mock_comment.id, other_user)

        view = await voting_service.like_comment(mock_comment.id, other_user)

        assert view.likes_count == 0
        assert recording_notifier.events[1][1]["action"] == "unlike"
        assert stored_votes(voting_service, mock_comment.id) == (set(), set())

    @pytest.mark.asyncio
    async def test_concurrent_votes_from_different_users_are_kept(
        self, voting_service, mock_comment, mock_user, other_user
    ):
        """Test that two users voting at the same time both end up in the stored sets."""
        await asyncio.gather(
            voting_service.like_comment(mock_comment.id, mock_user),
            voting_service.like_comment(mock_comment.id, other_user),
        )

        assert stored_votes(voting_service, mock_comment.id) == ({mock_user.id, other_user.id}, set())

    @pytest.mark.asyncio
    async def test_concurrent_like_and_dislike_from_different_users(
        self, voting_service, mock_comment, mock_user, other_user
    ):
        await asyncio.gather(
            voting_service.like_comment(mock_comment.id, mock_user),
            voting_service.dislike_comment(mock_comment.id, other_user),
        )

        assert stored_votes(voting_service, mock_comment.id) == ({mock_user.id}, {other_user.id})

    @pytest.mark.asyncio
    async def test_commit_changes_only_the_voting_user(self, service, mock_collection, mock_comment, other_user):
        """Test that the update moves the user between sets without rewriting them."""
        doc = {**mock_comment.to_mongo(), "dislikes": [other_user.id]}
        mock_collection.find_one.return_value = doc
        mock_collection.find_one_and_update.return_value = {**doc, "likes": [other_user.id], "dislikes": []}

        await service.like_comment(mock_comment.id, other_user)

        mock_collection.find_one_and_update.assert_awaited_once()
        query, update = mock_collection.find_one_and_update.await_args.args
        assert query == {"_id": mock_comment.id}
        assert update == {
            "$addToSet": {"likes": {"$each": [other_user.id]}},
            "$pull": {"dislikes": {"$in": [other_user.id]}},
        }

    @pytest.mark.asyncio
    async def test_vote_on_missing_comment(self, service, other_user):
        """Test NotFoundError for votes on an unknown id."""
        with pytest.raises(NotFoundError):
            await service.like_comment(PARENT_ID, other_user)
        with pytest.raises(NotFoundError):
            await service.dislike_comment(PARENT_ID, other_user)


class TestGetComments:
    @pytest.mark.asyncio
    async def test_newest_uses_find_path(self, service, mock_collection, mock_user):
        """Test the default listing goes through find with pagination computed from the count."""
        comments = [Comment(content=f"c{i}", author_id=mock_user.id) for i in range(2)]
        cursor = FakeCursor([c.to_mongo() for c in comments])
        mock_collection.find = MagicMock(return_value=cursor)
        mock_collection.count_documents.return_value = 12

        page = await service.get_comments(page=2, limit=10)

        assert [c.content for c in page.comments] == ["c0", "c1"]
        assert page.comments[0].author is not None
        assert page.pagination.total_comments == 12
        assert page.pagination.total_pages == 2
        assert page.pagination.has_prev_page
        assert not page.pagination.has_next_page
        assert cursor.skipped == 10
        mock_collection.find.assert_called_once_with({})

    @pytest.mark.asyncio
    async def test_most_liked_uses_aggregation(self, service, mock_collection, mock_user):
        """Test that vote-count sorting goes through aggregate."""
        doc = {**Comment(content="top", author_id=mock_user.id).to_mongo(), "likes_count": 0, "dislikes_count": 0}
        mock_collection.aggregate = AsyncMock(return_value=FakeCursor([{"items": [doc], "total": [{"count": 1}]}]))
        mock_collection.find = MagicMock()

        page = await service.get_comments(sort=CommentSort.MOST_LIKED, parent_comment="null")

        assert [c.content for c in page.comments] == ["top"]
        assert page.pagination.total_pages == 1
        pipeline = mock_collection.aggregate.await_args.args[0]
        assert pipeline[0] == {"$match": {"parent_id": None}}
        mock_collection.find.assert_not_called()

    @pytest.mark.asyncio
    async def test_replies_force_newest(self, service, mock_collection):
        """Test that replies filter on the parent and sort newest first."""
        cursor = FakeCursor([])
        mock_collection.find = MagicMock(return_value=cursor)

        page = await service.get_replies(PARENT_ID)

        mock_collection.find.assert_called_once_with({"parent_id": PARENT_ID})
        assert cursor.sort_spec == [("created_at", -1), ("_id", -1)]
        assert page.comments == []
        assert page.pagination.total_pages == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("page", "limit"), [(0, 10), (-1, 10), (1, 0), (1, 101)])
    async def test_rejects_out_of_range_paging(self, service, page, limit):
        """Test page and limit bounds."""
        with pytest.raises(ValidationError):
            await service.get_comments(page=page, limit=limit)

    @pytest.mark.asyncio
    async def test_missing_author_renders_null(self, service, mock_collection):
        """Test that a comment whose author is gone still renders."""
        orphan = Comment(content="orphan", author_id=UUID("99999999-9999-4999-8999-999999999999"))
        mock_collection.find = MagicMock(return_value=FakeCursor([orphan.to_mongo()]))
        mock_collection.count_documents.return_value = 1

        page = await service.get_comments()

        assert page.comments[0].author is None
