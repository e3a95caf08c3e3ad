"""Comment-related API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query
from pydantic import Field

from commentbox.core.db import ViewModel
from commentbox.core.modules.comment.models import CommentPage, CommentView
from commentbox.core.modules.comment.query_builder import CommentSort
from commentbox.core.modules.ratelimit.service import RateLimitBucket
from commentbox.core.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT
from commentbox.web.deps import AppDep, AuthTokenDep, rate_limit
from commentbox.web.openapi import ErrorResponse

router: APIRouter = APIRouter(tags=["comments"])

PageQuery = Annotated[int, Query(ge=1, description="Page number, starting at 1")]
LimitQuery = Annotated[int, Query(ge=1, le=MAX_LIMIT, description="Comments per page")]


class CreateCommentRequest(ViewModel):
    """Request to create a new comment or reply."""

    content: str = Field(..., description="The comment text", min_length=1)
    parent_comment: UUID | None = Field(None, description="ID of the comment being replied to")


class UpdateCommentRequest(ViewModel):
    """Request to replace a comment's text."""

    content: str = Field(..., description="The new comment text", min_length=1)


class CommentResponse(ViewModel):
    comment: CommentView


class MessageResponse(ViewModel):
    message: str


@router.get(
    "/comments",
    summary="List comments",
    description=(
        "Get a page of comments. `parentComment` narrows the list: omit it for all comments, "
        'pass "null" for top-level comments only, or a comment ID for its direct replies.'
    ),
    operation_id="listComments",
    responses={
        200: {"description": "Paginated list of comments"},
        400: {"model": ErrorResponse, "description": "Invalid query parameters"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def list_comments(
    app: AppDep,
    auth_token: AuthTokenDep,
    page: PageQuery = DEFAULT_PAGE,
    limit: LimitQuery = DEFAULT_LIMIT,
    sort: Annotated[CommentSort, Query(description="Ordering")] = CommentSort.NEWEST,
    parent_comment: Annotated[str | None, Query(alias="parentComment", description='Comment ID or "null"')] = None,
) -> CommentPage:
    return await app.get_comments(auth_token, page, limit, sort, parent_comment)


@router.get(
    "/comments/{comment_id}",
    summary="Get comment",
    operation_id="getComment",
    responses={
        200: {"description": "The comment"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Comment not found"},
    },
)
async def get_comment(comment_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> CommentResponse:
    return CommentResponse(comment=await app.get_comment(auth_token, comment_id))


@router.post(
    "/comments",
    summary="Create comment",
    description="Post a top-level comment, or a reply when `parentComment` is set.",
    operation_id="createComment",
    status_code=201,
    dependencies=[rate_limit(RateLimitBucket.COMMENT_CREATE)],
    responses={
        201: {"description": "Comment created successfully"},
        400: {"model": ErrorResponse, "description": "Invalid comment content"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Parent comment not found"},
    },
)
async def create_comment(request: CreateCommentRequest, app: AppDep, auth_token: AuthTokenDep) -> CommentResponse:
    return CommentResponse(comment=await app.create_comment(auth_token, request.content, request.parent_comment))


@router.put(
    "/comments/{comment_id}",
    summary="Update comment",
    description="Replace the text of a comment. Only the author can edit.",
    operation_id="updateComment",
    dependencies=[rate_limit(RateLimitBucket.MODIFY)],
    responses={
        200: {"description": "Comment updated"},
        400: {"model": ErrorResponse, "description": "Invalid comment content"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not the author"},
        404: {"model": ErrorResponse, "description": "Comment not found"},
    },
)
async def update_comment(
    comment_id: UUID, request: UpdateCommentRequest, app: AppDep, auth_token: AuthTokenDep
) -> CommentResponse:
    return CommentResponse(comment=await app.update_comment(auth_token, comment_id, request.content))


@router.delete(
    "/comments/{comment_id}",
    summary="Delete comment",
    description="Delete a comment together with its direct replies. Only the author can delete.",
    operation_id="deleteComment",
    dependencies=[rate_limit(RateLimitBucket.MODIFY)],
    responses={
        200: {"description": "Comment deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not the author"},
        404: {"model": ErrorResponse, "description": "Comment not found"},
    },
)
async def delete_comment(comment_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> MessageResponse:
    await app.delete_comment(auth_token, comment_id)
    return MessageResponse(message="Comment deleted successfully")


@router.post(
    "/comments/{comment_id}/like",
    summary="Toggle like",
    description="Like a comment, or remove the like if already given. Removes an existing dislike.",
    operation_id="likeComment",
    dependencies=[rate_limit(RateLimitBucket.VOTE)],
    responses={
        200: {"description": "Updated comment"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Comment not found"},
    },
)
async def like_comment(comment_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> CommentResponse:
    return CommentResponse(comment=await app.like_comment(auth_token, comment_id))


@router.post(
    "/comments/{comment_id}/dislike",
    summary="Toggle dislike",
    description="Dislike a comment, or remove the dislike if already given. Removes an existing like.",
    operation_id="dislikeComment",
    dependencies=[rate_limit(RateLimitBucket.VOTE)],
    responses={
        200: {"description": "Updated comment"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Comment not found"},
    },
)
async def dislike_comment(comment_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> CommentResponse:
    return CommentResponse(comment=await app.dislike_comment(auth_token, comment_id))


@router.get(
    "/comments/{comment_id}/replies",
    summary="List replies",
    description="Get a page of direct replies to a comment, newest first.",
    operation_id="listReplies",
    responses={
        200: {"description": "Paginated list of replies"},
        400: {"model": ErrorResponse, "description": "Invalid query parameters"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def list_replies(
    comment_id: UUID,
    app: AppDep,
    auth_token: AuthTokenDep,
    page: PageQuery = DEFAULT_PAGE,
    limit: LimitQuery = DEFAULT_LIMIT,
) -> CommentPage:
    return await app.get_replies(auth_token, comment_id, page, limit)
