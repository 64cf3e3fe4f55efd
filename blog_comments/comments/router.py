"""Comment API endpoints.

Provides routes for:
- Submission, edits and soft deletion
- Public listing per post and lookup by id
- Moderation (approve, reject, flag, restore, bulk)
- Admin queue and statistics
"""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Query, status

from blog_comments.auth.dependencies import AdminUser, CurrentUser, OptionalUser

from .dependencies import CommentServiceDep, ModerationDep, handle_comment_error
from .errors import CommentError
from .models import CommentStatus
from .schemas import (
    BulkModerationRequest,
    BulkModerationResponse,
    CommentListResponse,
    CommentResponse,
    CommentStatsResponse,
    FlagCommentRequest,
    MessageResponse,
    RejectCommentRequest,
    SubmitCommentRequest,
    UpdateCommentRequest,
)


router = APIRouter(prefix="/v1/comments", tags=["comments"])


@router.post(
    "",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit comment",
)
async def submit_comment(
    data: SubmitCommentRequest,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> CommentResponse:
    """Submit a comment on a post.

    Content is validated, sanitized and screened for spam and duplicates.
    Limited per author by a sliding window; 429 responses carry Retry-After.
    """
    try:
        result = await comment_service.submit_comment(data.post_id, user, data.content)
        return CommentResponse.from_comment(result.comment, result.warnings)
    except CommentError as e:
        raise handle_comment_error(e) from e


@router.get(
    "",
    response_model=CommentListResponse,
    summary="List comments for moderation",
)
async def list_comments_admin(
    comment_service: CommentServiceDep,
    _user: AdminUser,
    comment_status: CommentStatus | None = Query(None, alias="status"),
    flagged: bool = Query(default=False, description="Only comments with flags"),
    deleted: bool = Query(default=False, description="Only soft-deleted comments"),
    post_id: UUID | None = None,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, description="Capped at the configured maximum"),
) -> CommentListResponse:
    """Moderation queue across posts. Requires ADMIN role."""
    comments = await comment_service.list_admin(
        status=comment_status,
        flagged_only=flagged,
        deleted=deleted,
        post_id=post_id,
        page=page,
        limit=limit,
    )
    return CommentListResponse.from_page(comments, moderator_view=True)


@router.get(
    "/stats",
    response_model=CommentStatsResponse,
    summary="Comment statistics",
)
async def get_comment_stats(
    comment_service: CommentServiceDep,
    _user: AdminUser,
    post_id: UUID | None = None,
) -> CommentStatsResponse:
    """Counts by status plus flagged comments. Requires ADMIN role."""
    stats = await comment_service.stats(post_id)
    return CommentStatsResponse(
        post_id=post_id,
        total=stats.total,
        pending=stats.pending,
        approved=stats.approved,
        rejected=stats.rejected,
        flagged=stats.flagged,
    )


@router.post(
    "/bulk",
    response_model=BulkModerationResponse,
    summary="Bulk moderate comments",
)
async def bulk_moderate(
    data: BulkModerationRequest,
    moderation: ModerationDep,
    user: AdminUser,
) -> BulkModerationResponse:
    """Approve, reject or delete many comments.

    Each id succeeds or fails on its own; failures are listed with a reason.
    """
    try:
        result = await moderation.bulk_moderate(data.action, data.comment_ids, user, data.reason)
        return BulkModerationResponse.from_result(result)
    except CommentError as e:
        raise handle_comment_error(e) from e


@router.get(
    "/post/{post_id}",
    response_model=CommentListResponse,
    summary="List post comments",
)
async def list_post_comments(
    post_id: UUID,
    comment_service: CommentServiceDep,
    user: OptionalUser,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, description="Capped at the configured maximum"),
    sort: Literal["newest", "oldest"] = "newest",
) -> CommentListResponse:
    """Approved comments on a post.

    Authors also see their own pending and rejected comments; admins see
    every comment that is not deleted.
    """
    try:
        comments = await comment_service.list_post_comments(
            post_id, viewer=user, page=page, limit=limit, sort=sort
        )
    except CommentError as e:
        raise handle_comment_error(e) from e
    return CommentListResponse.from_page(comments, moderator_view=bool(user and user.is_admin))


@router.get(
    "/{comment_id}",
    response_model=CommentResponse,
    summary="Get comment",
)
async def get_comment(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    user: OptionalUser,
    include_deleted: bool = Query(default=False, description="Admins only"),
) -> CommentResponse:
    """Get a single comment the caller is allowed to see."""
    try:
        comment = await comment_service.get_comment(comment_id, user, include_deleted)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return CommentResponse.from_comment(comment, moderator_view=bool(user and user.is_admin))


@router.patch(
    "/{comment_id}",
    response_model=CommentResponse,
    summary="Update comment",
)
async def update_comment(
    comment_id: UUID,
    data: UpdateCommentRequest,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> CommentResponse:
    """Replace a comment's content.

    Authors can edit their own comments while pending; admins can edit any.
    """
    try:
        result = await comment_service.update_comment(comment_id, user, data.content)
        return CommentResponse.from_comment(result.comment, result.warnings)
    except CommentError as e:
        raise handle_comment_error(e) from e


@router.delete(
    "/{comment_id}",
    response_model=MessageResponse,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: UUID,
    moderation: ModerationDep,
    user: CurrentUser,
) -> MessageResponse:
    """Soft delete a comment. Authors can delete their own; admins any."""
    try:
        await moderation.soft_delete(comment_id, user)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return MessageResponse(message="Comment deleted")


@router.post(
    "/{comment_id}/approve",
    response_model=CommentResponse,
    summary="Approve comment",
)
async def approve_comment(
    comment_id: UUID,
    moderation: ModerationDep,
    user: AdminUser,
) -> CommentResponse:
    """Make a comment publicly visible. Requires ADMIN role."""
    try:
        comment = await moderation.approve(comment_id, user)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return CommentResponse.from_comment(comment, moderator_view=True)


@router.post(
    "/{comment_id}/reject",
    response_model=CommentResponse,
    summary="Reject comment",
)
async def reject_comment(
    comment_id: UUID,
    moderation: ModerationDep,
    user: AdminUser,
    data: RejectCommentRequest | None = None,
) -> CommentResponse:
    """Reject a comment with an optional reason. Requires ADMIN role."""
    reason = data.reason if data else None
    try:
        comment = await moderation.reject(comment_id, user, reason)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return CommentResponse.from_comment(comment, moderator_view=True)


@router.post(
    "/{comment_id}/flag",
    response_model=MessageResponse,
    summary="Flag comment",
)
async def flag_comment(
    comment_id: UUID,
    moderation: ModerationDep,
    user: CurrentUser,
    data: FlagCommentRequest | None = None,
) -> MessageResponse:
    """Flag a comment for moderator attention.

    Authors cannot flag their own comments; each user flags a comment once.
    """
    reason = data.reason if data else None
    try:
        await moderation.flag(comment_id, user, reason)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return MessageResponse(message="Comment flagged for review")


@router.post(
    "/{comment_id}/restore",
    response_model=CommentResponse,
    summary="Restore comment",
)
async def restore_comment(
    comment_id: UUID,
    moderation: ModerationDep,
    user: AdminUser,
) -> CommentResponse:
    """Undo a soft delete. Requires ADMIN role."""
    try:
        comment = await moderation.restore(comment_id, user)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return CommentResponse.from_comment(comment, moderator_view=True)
