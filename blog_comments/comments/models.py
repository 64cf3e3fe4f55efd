"""Database models for the comment moderation system.

Cassandra table definitions for:
- Comments: partitioned by post, newest first
- Comment key lookup: comment_id -> (post_id, created_at)
- Comment flags: one row per (comment, flagging user)

Lifecycle:
- status is a closed enum (pending, approved, rejected)
- soft delete is orthogonal to status (is_deleted / deleted_at)
- flag_count is orthogonal to both and only ever grows
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class CommentStatus(str, Enum):
    """Moderation status of a comment."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ModerationAction(str, Enum):
    """Moderator actions, single or bulk."""

    APPROVE = "approve"
    REJECT = "reject"
    DELETE = "delete"


class SpamPolicy(str, Enum):
    """What intake does with a submission the heuristics flag."""

    AUTO_REJECT = "auto_reject"
    FLAG_FOR_REVIEW = "flag_for_review"


# Target status for each status-changing action
ACTION_TARGET_STATUS: dict[ModerationAction, CommentStatus] = {
    ModerationAction.APPROVE: CommentStatus.APPROVED,
    ModerationAction.REJECT: CommentStatus.REJECTED,
}


def next_status(current: CommentStatus, action: ModerationAction) -> CommentStatus:
    """Resolve the status a moderation action leads to.

    approve and reject are allowed from every status (re-moderation);
    delete leaves the status untouched.
    """
    return ACTION_TARGET_STATUS.get(action, current)


def utc_now() -> datetime:
    """Current time truncated to Cassandra's millisecond precision.

    created_at is part of the primary key, so the value kept in memory must be
    exactly the value stored.
    """
    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def as_utc(value: datetime | None) -> datetime | None:
    """The driver returns naive UTC timestamps; make them aware."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def is_visible(status: CommentStatus, is_deleted: bool) -> bool:
    """Whether a comment counts towards its post's comments_count."""
    return status is CommentStatus.APPROVED and not is_deleted


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Main Comments Table
# Partition by post_id so the live visible count is a single-partition read
# Clustering by created_at for chronological ordering
COMMENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments (
    post_id UUID,
    created_at TIMESTAMP,
    comment_id UUID,
    author_id UUID,
    author_name TEXT,
    content TEXT,
    status TEXT,
    rejection_reason TEXT,
    spam_reasons LIST<TEXT>,
    flag_count INT,
    flag_reason TEXT,
    is_deleted BOOLEAN,
    deleted_at TIMESTAMP,
    deleted_by UUID,
    updated_at TIMESTAMP,
    PRIMARY KEY ((post_id), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at DESC, comment_id ASC)
"""

# Index for duplicate checks and "my comments" lookups
COMMENT_AUTHOR_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS comments_author_idx
ON {keyspace}.comments (author_id)
"""

# Index for the admin moderation queue
COMMENT_STATUS_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS comments_status_idx
ON {keyspace}.comments (status)
"""

# Comment key lookup - O(1) resolution of the full primary key
COMMENTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_id (
    comment_id UUID PRIMARY KEY,
    post_id UUID,
    created_at TIMESTAMP
)
"""

# Flags Table - one row per flagging user enforces uniqueness with LWT
COMMENT_FLAGS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_flags (
    comment_id UUID,
    user_id UUID,
    reason TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((comment_id), user_id)
)
"""

COMMENTS_TABLES_CQL = [
    COMMENT_TABLE_CQL,
    COMMENT_AUTHOR_INDEX_CQL,
    COMMENT_STATUS_INDEX_CQL,
    COMMENTS_BY_ID_TABLE_CQL,
    COMMENT_FLAGS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Comment:
    """Comment entity with moderation state."""

    comment_id: UUID
    post_id: UUID
    author_id: UUID
    author_name: str
    content: str
    status: CommentStatus
    rejection_reason: str | None
    spam_reasons: list[str]
    flag_count: int
    flag_reason: str | None
    is_deleted: bool
    deleted_at: datetime | None
    deleted_by: UUID | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from Cassandra row."""
        return cls(
            comment_id=row.comment_id,
            post_id=row.post_id,
            author_id=row.author_id,
            author_name=row.author_name or "Anonymous",
            content=row.content,
            status=CommentStatus(row.status or CommentStatus.PENDING.value),
            rejection_reason=row.rejection_reason,
            spam_reasons=list(row.spam_reasons or []),
            flag_count=row.flag_count or 0,
            flag_reason=row.flag_reason,
            is_deleted=bool(row.is_deleted),
            deleted_at=as_utc(row.deleted_at),
            deleted_by=row.deleted_by,
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at or row.created_at),
        )

    @property
    def is_visible(self) -> bool:
        """Whether this comment is publicly visible."""
        return is_visible(self.status, self.is_deleted)

    @property
    def is_flagged(self) -> bool:
        """Whether anyone has flagged this comment."""
        return self.flag_count > 0

    def can_view(self, viewer_id: UUID | None, viewer_is_admin: bool) -> bool:
        """Read-path visibility for a given viewer.

        Soft-deleted comments are hidden from everyone here; admins reach
        them only through the explicit deleted view.
        """
        if self.is_deleted:
            return False
        if viewer_is_admin or self.status is CommentStatus.APPROVED:
            return True
        return viewer_id is not None and viewer_id == self.author_id


@dataclass
class CommentFlag:
    """One user's flag on a comment."""

    comment_id: UUID
    user_id: UUID
    reason: str | None
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class CommentStats:
    """Counts by status, soft-deleted comments excluded."""

    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    flagged: int = 0

    def add(self, comment: Comment) -> None:
        """Fold one comment into the counts."""
        if comment.is_deleted:
            return
        self.total += 1
        setattr(self, comment.status.value, getattr(self, comment.status.value) + 1)
        if comment.is_flagged:
            self.flagged += 1


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_comment(
    post_id: UUID,
    author_id: UUID,
    author_name: str,
    content: str,
    status: CommentStatus = CommentStatus.PENDING,
    rejection_reason: str | None = None,
    spam_reasons: list[str] | None = None,
    now: datetime | None = None,
) -> Comment:
    """Create a new comment with default values."""
    now = now or utc_now()
    return Comment(
        comment_id=uuid4(),
        post_id=post_id,
        author_id=author_id,
        author_name=author_name,
        content=content,
        status=status,
        rejection_reason=rejection_reason if status is CommentStatus.REJECTED else None,
        spam_reasons=list(spam_reasons or []),
        flag_count=0,
        flag_reason=None,
        is_deleted=False,
        deleted_at=None,
        deleted_by=None,
        created_at=now,
        updated_at=now,
    )
