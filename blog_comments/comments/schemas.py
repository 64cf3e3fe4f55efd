"""Pydantic schemas for the comment API.

Request/Response models for:
- Submission and edits
- Moderation actions, single and bulk
- Listings and statistics
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import CommentStatus, ModerationAction


# ==============================================================================
# Request Schemas
# ==============================================================================

# Length rules are enforced by the service so errors carry their reason code;
# the caps here only bound the request body.
MAX_CONTENT_BODY = 20000


class SubmitCommentRequest(BaseModel):
    """Request to comment on a post."""

    post_id: UUID
    content: str = Field(..., max_length=MAX_CONTENT_BODY)


class UpdateCommentRequest(BaseModel):
    """Request to replace a comment's content."""

    content: str = Field(..., max_length=MAX_CONTENT_BODY)


class RejectCommentRequest(BaseModel):
    """Optional reason attached to a rejection."""

    reason: str | None = Field(None, max_length=1000)


class FlagCommentRequest(BaseModel):
    """Request to flag a comment for moderator attention."""

    reason: str | None = Field(None, max_length=1000)


class BulkModerationRequest(BaseModel):
    """Apply one action to many comments."""

    action: ModerationAction
    comment_ids: list[UUID] = Field(..., min_length=1, max_length=500)
    reason: str | None = Field(None, max_length=1000, description="Rejection reason")


# ==============================================================================
# Response Schemas
# ==============================================================================


class AuthorResponse(BaseModel):
    """Author information in comment response."""

    id: UUID
    name: str


class CommentResponse(BaseModel):
    """Response for a single comment."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    post_id: UUID
    author: AuthorResponse
    content: str
    status: CommentStatus
    rejection_reason: str | None = None
    flag_count: int = 0
    is_deleted: bool = False
    warnings: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    @classmethod
    def from_comment(
        cls, comment: Any, warnings: list[str] | None = None, moderator_view: bool = False
    ) -> "CommentResponse":
        """Create response from Comment entity.

        Args:
            comment: Comment entity
            warnings: Spam warnings from the request that produced it
            moderator_view: Include stored spam reasons and flag details
        """
        if warnings is None:
            warnings = comment.spam_reasons if moderator_view else []

        return cls(
            id=comment.comment_id,
            post_id=comment.post_id,
            author=AuthorResponse(id=comment.author_id, name=comment.author_name),
            content=comment.content,
            status=comment.status,
            rejection_reason=comment.rejection_reason,
            flag_count=comment.flag_count if moderator_view else 0,
            is_deleted=comment.is_deleted,
            warnings=list(warnings),
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            deleted_at=comment.deleted_at,
        )


class CommentListResponse(BaseModel):
    """Paginated list of comments."""

    items: list[CommentResponse]
    total: int
    page: int
    limit: int
    has_more: bool

    @classmethod
    def from_page(cls, page: Any, moderator_view: bool = False) -> "CommentListResponse":
        """Create response from a CommentPage."""
        return cls(
            items=[
                CommentResponse.from_comment(c, moderator_view=moderator_view)
                for c in page.items
            ],
            total=page.total,
            page=page.page,
            limit=page.limit,
            has_more=page.has_more,
        )


class BulkFailureResponse(BaseModel):
    """One id a bulk run could not process."""

    id: UUID
    reason: str


class BulkModerationResponse(BaseModel):
    """Per-id outcome of a bulk run."""

    action: ModerationAction
    success: list[UUID]
    failed: list[BulkFailureResponse]

    @classmethod
    def from_result(cls, result: Any) -> "BulkModerationResponse":
        """Create response from a BulkModerationResult."""
        return cls(
            action=result.action,
            success=result.success,
            failed=[BulkFailureResponse(id=f.id, reason=f.reason) for f in result.failed],
        )


class CommentStatsResponse(BaseModel):
    """Comment counts by status, soft-deleted comments excluded."""

    model_config = ConfigDict(from_attributes=True)

    post_id: UUID | None = None
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    flagged: int = 0


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str
    success: bool = True
