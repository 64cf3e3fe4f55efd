"""Comment persistence boundary.

``CommentStore`` is what the service and the moderation workflow depend on.
``CassandraCommentStore`` implements it with prepared statements; every
mutation of an existing comment is a lightweight transaction conditioned on
the row not being soft-deleted, so a moderation transition is a single
conditional row update.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

import structlog

from .models import Comment, CommentFlag, CommentStatus


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)

# Upper bound on rows scanned by admin-wide listings
ADMIN_SCAN_LIMIT = 5000

# Attempts for the compare-and-set flag counter increment
FLAG_CAS_ATTEMPTS = 5


class CommentStore(Protocol):
    """Create/read/update comment rows and track soft deletion."""

    async def insert(self, comment: Comment) -> None: ...

    async def get(self, comment_id: UUID, include_deleted: bool = False) -> Comment | None: ...

    async def list_for_post(self, post_id: UUID) -> list[Comment]: ...

    async def list_all(self, status: CommentStatus | None = None) -> list[Comment]: ...

    async def find_recent_by_author(
        self, author_id: UUID, post_id: UUID, since: datetime
    ) -> Comment | None: ...

    async def count_visible(self, post_id: UUID) -> int: ...

    async def update_status(
        self,
        comment: Comment,
        status: CommentStatus,
        rejection_reason: str | None,
        now: datetime,
    ) -> bool: ...

    async def update_content(
        self,
        comment: Comment,
        content: str,
        spam_reasons: list[str],
        status: CommentStatus,
        rejection_reason: str | None,
        now: datetime,
    ) -> bool: ...

    async def soft_delete(self, comment: Comment, deleted_by: UUID, now: datetime) -> bool: ...

    async def restore(self, comment: Comment, now: datetime) -> bool: ...

    async def insert_flag(self, flag: CommentFlag, unique: bool) -> bool: ...

    async def increment_flag_count(
        self, comment: Comment, reason: str | None, now: datetime
    ) -> int | None: ...


class CassandraCommentStore:
    """CommentStore backed by Cassandra."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        ks = self.keyspace

        self._insert_comment = self.session.prepare(f"""
            INSERT INTO {ks}.comments
            (post_id, created_at, comment_id, author_id, author_name, content,
             status, rejection_reason, spam_reasons, flag_count, flag_reason,
             is_deleted, deleted_at, deleted_by, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_comment_key = self.session.prepare(f"""
            INSERT INTO {ks}.comments_by_id (comment_id, post_id, created_at)
            VALUES (?, ?, ?)
        """)

        self._get_comment_key = self.session.prepare(f"""
            SELECT post_id, created_at FROM {ks}.comments_by_id
            WHERE comment_id = ?
        """)

        self._get_comment = self.session.prepare(f"""
            SELECT * FROM {ks}.comments
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
        """)

        self._get_comments_by_post = self.session.prepare(f"""
            SELECT * FROM {ks}.comments
            WHERE post_id = ?
        """)

        self._get_recent_by_post = self.session.prepare(f"""
            SELECT * FROM {ks}.comments
            WHERE post_id = ? AND created_at > ?
        """)

        self._get_visibility_by_post = self.session.prepare(f"""
            SELECT status, is_deleted FROM {ks}.comments
            WHERE post_id = ?
        """)

        self._get_comments_by_status = self.session.prepare(f"""
            SELECT * FROM {ks}.comments
            WHERE status = ?
            LIMIT {ADMIN_SCAN_LIMIT}
        """)

        self._get_all_comments = self.session.prepare(f"""
            SELECT * FROM {ks}.comments
            LIMIT {ADMIN_SCAN_LIMIT}
        """)

        self._update_status = self.session.prepare(f"""
            UPDATE {ks}.comments
            SET status = ?, rejection_reason = ?, updated_at = ?
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
            IF is_deleted = false
        """)

        self._update_content = self.session.prepare(f"""
            UPDATE {ks}.comments
            SET content = ?, spam_reasons = ?, status = ?, rejection_reason = ?, updated_at = ?
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
            IF is_deleted = false
        """)

        self._soft_delete = self.session.prepare(f"""
            UPDATE {ks}.comments
            SET is_deleted = true, deleted_at = ?, deleted_by = ?, updated_at = ?
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
            IF is_deleted = false
        """)

        self._restore = self.session.prepare(f"""
            UPDATE {ks}.comments
            SET is_deleted = false, deleted_at = null, deleted_by = null, updated_at = ?
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
            IF is_deleted = true
        """)

        self._insert_flag_unique = self.session.prepare(f"""
            INSERT INTO {ks}.comment_flags (comment_id, user_id, reason, created_at)
            VALUES (?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._insert_flag = self.session.prepare(f"""
            INSERT INTO {ks}.comment_flags (comment_id, user_id, reason, created_at)
            VALUES (?, ?, ?, ?)
        """)

        self._increment_flag_count = self.session.prepare(f"""
            UPDATE {ks}.comments
            SET flag_count = ?, flag_reason = ?, updated_at = ?
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
            IF is_deleted = false AND flag_count = ?
        """)

    def _row_key(self, comment: Comment) -> list:
        return [comment.post_id, comment.created_at, comment.comment_id]

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def insert(self, comment: Comment) -> None:
        """Insert a new comment and its key lookup row."""
        await self.session.aexecute(
            self._insert_comment,
            [
                comment.post_id,
                comment.created_at,
                comment.comment_id,
                comment.author_id,
                comment.author_name,
                comment.content,
                comment.status.value,
                comment.rejection_reason,
                comment.spam_reasons,
                comment.flag_count,
                comment.flag_reason,
                comment.is_deleted,
                comment.deleted_at,
                comment.deleted_by,
                comment.updated_at,
            ],
        )
        await self.session.aexecute(
            self._insert_comment_key,
            [comment.comment_id, comment.post_id, comment.created_at],
        )

    async def update_status(
        self,
        comment: Comment,
        status: CommentStatus,
        rejection_reason: str | None,
        now: datetime,
    ) -> bool:
        """Conditionally set status; False if the comment was soft-deleted."""
        result = await self.session.aexecute(
            self._update_status,
            [status.value, rejection_reason, now, *self._row_key(comment)],
        )
        return result.was_applied

    async def update_content(
        self,
        comment: Comment,
        content: str,
        spam_reasons: list[str],
        status: CommentStatus,
        rejection_reason: str | None,
        now: datetime,
    ) -> bool:
        """Conditionally replace content; False if the comment was soft-deleted."""
        result = await self.session.aexecute(
            self._update_content,
            [content, spam_reasons, status.value, rejection_reason, now, *self._row_key(comment)],
        )
        return result.was_applied

    async def soft_delete(self, comment: Comment, deleted_by: UUID, now: datetime) -> bool:
        """Mark deleted; False if it already was."""
        result = await self.session.aexecute(
            self._soft_delete, [now, deleted_by, now, *self._row_key(comment)]
        )
        return result.was_applied

    async def restore(self, comment: Comment, now: datetime) -> bool:
        """Clear the deletion marker; False if the comment was not deleted."""
        result = await self.session.aexecute(self._restore, [now, *self._row_key(comment)])
        return result.was_applied

    async def insert_flag(self, flag: CommentFlag, unique: bool) -> bool:
        """Record a flag; False if ``unique`` and this user already flagged."""
        statement = self._insert_flag_unique if unique else self._insert_flag
        result = await self.session.aexecute(
            statement, [flag.comment_id, flag.user_id, flag.reason, flag.created_at]
        )
        return result.was_applied if unique else True

    async def increment_flag_count(
        self, comment: Comment, reason: str | None, now: datetime
    ) -> int | None:
        """Compare-and-set increment of flag_count.

        Returns:
            The new count, or None if the comment was soft-deleted meanwhile
        """
        expected = comment.flag_count
        for _ in range(FLAG_CAS_ATTEMPTS):
            result = await self.session.aexecute(
                self._increment_flag_count,
                [expected + 1, reason, now, *self._row_key(comment), expected],
            )
            if result.was_applied:
                return expected + 1

            current = result.one()
            if current is None or current.is_deleted:
                return None
            expected = current.flag_count or 0

        logger.error(
            "flag_count_contention",
            comment_id=str(comment.comment_id),
            attempts=FLAG_CAS_ATTEMPTS,
        )
        msg = "Could not increment flag_count under contention"
        raise RuntimeError(msg)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get(self, comment_id: UUID, include_deleted: bool = False) -> Comment | None:
        """Fetch one comment by id via the key lookup table."""
        key_result = await self.session.aexecute(self._get_comment_key, [comment_id])
        key = key_result.one()
        if not key:
            return None

        result = await self.session.aexecute(
            self._get_comment, [key.post_id, key.created_at, comment_id]
        )
        row = result.one()
        if not row:
            return None

        comment = Comment.from_row(row)
        if comment.is_deleted and not include_deleted:
            return None
        return comment

    async def list_for_post(self, post_id: UUID) -> list[Comment]:
        """All comment rows of a post, soft-deleted ones included, newest first."""
        rows = await self.session.aexecute(self._get_comments_by_post, [post_id])
        return [Comment.from_row(row) for row in rows]

    async def list_all(self, status: CommentStatus | None = None) -> list[Comment]:
        """Comments across every post, optionally by status (admin views)."""
        if status is not None:
            rows = await self.session.aexecute(self._get_comments_by_status, [status.value])
        else:
            rows = await self.session.aexecute(self._get_all_comments)
        return [Comment.from_row(row) for row in rows]

    async def find_recent_by_author(
        self, author_id: UUID, post_id: UUID, since: datetime
    ) -> Comment | None:
        """Most recent non-deleted comment by ``author_id`` on the post after ``since``."""
        rows = await self.session.aexecute(self._get_recent_by_post, [post_id, since])
        for row in rows:
            # Rows come back newest first
            if row.author_id == author_id and not row.is_deleted:
                return Comment.from_row(row)
        return None

    async def count_visible(self, post_id: UUID) -> int:
        """Live count of approved, non-deleted comments on a post."""
        rows = await self.session.aexecute(self._get_visibility_by_post, [post_id])
        return sum(
            1
            for row in rows
            if row.status == CommentStatus.APPROVED.value and not row.is_deleted
        )
