"""Comment moderation workflow.

Lifecycle:
- approve / reject move a comment between pending, approved and rejected
  (re-moderation is allowed in every direction)
- flag bumps flag_count and never touches status
- soft delete freezes the comment; restore brings it back unchanged

Every visibility-affecting change ends with a counter sync of the post.
Bulk runs apply the same single-item transition per id, collect per-id
failures and sync each affected post once at the end.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from .errors import (
    AlreadyFlaggedError,
    CannotFlagOwnCommentError,
    CommentError,
    CommentNotFoundError,
    InvalidTransitionError,
    PermissionDeniedError,
)
from .models import (
    Comment,
    CommentFlag,
    CommentStatus,
    ModerationAction,
    next_status,
    utc_now,
)


if TYPE_CHECKING:
    from blog_comments.auth.schemas import Principal

    from .counters import CounterSynchronizer
    from .store import CommentStore


logger = structlog.get_logger(__name__)

# Per-id failure reasons reported by bulk runs
BULK_FAILURE_REASONS = {
    "comment_not_found": "NotFound",
    "permission_denied": "Forbidden",
    "invalid_transition": "InvalidTransition",
}


@dataclass
class BulkFailure:
    """One id a bulk run could not process."""

    id: UUID
    reason: str


@dataclass
class BulkModerationResult:
    """Per-id outcome of a bulk run."""

    action: ModerationAction
    success: list[UUID] = field(default_factory=list)
    failed: list[BulkFailure] = field(default_factory=list)


def _require_admin(caller: "Principal") -> None:
    if not caller.is_admin:
        msg = "Only administrators can moderate comments"
        raise PermissionDeniedError(msg)


class ModerationWorkflow:
    """State machine over stored comments."""

    def __init__(
        self,
        store: "CommentStore",
        counters: "CounterSynchronizer",
        flags_unique: bool = True,
    ):
        self.store = store
        self.counters = counters
        self.flags_unique = flags_unique

    async def _load(self, comment_id: UUID) -> Comment:
        comment = await self.store.get(comment_id)
        if comment is None:
            raise CommentNotFoundError(comment_id)
        return comment

    async def _deleted_post(self, comment_id: UUID, caller: "Principal") -> UUID | None:
        """Post of a soft-deleted comment the caller may still act on, if any."""
        comment = await self.store.get(comment_id, include_deleted=True)
        if comment is None or not comment.is_deleted:
            return None
        if not caller.is_admin and caller.id != comment.author_id:
            return None
        return comment.post_id

    # ==========================================================================
    # Single-item transitions (no counter sync)
    # ==========================================================================

    async def _transition(
        self,
        comment: Comment,
        action: ModerationAction,
        caller: "Principal",
        reason: str | None = None,
    ) -> bool:
        """Apply one action to a loaded comment.

        Returns:
            Whether the post counter should be recounted. No-ops count too,
            so a retry repairs a sync that failed after the write.
        """
        was_visible = comment.is_visible
        from_status = comment.status
        now = utc_now()

        if action is ModerationAction.DELETE:
            if not caller.is_admin and caller.id != comment.author_id:
                msg = "You can only delete your own comments"
                raise PermissionDeniedError(msg)
            if not await self.store.soft_delete(comment, caller.id, now):
                raise CommentNotFoundError(comment.comment_id)
            comment.is_deleted = True
            comment.deleted_at = now
            comment.deleted_by = caller.id
            comment.updated_at = now
            logger.info(
                "comment_deleted",
                comment_id=str(comment.comment_id),
                post_id=str(comment.post_id),
                status=from_status.value,
                deleted_by=str(caller.id),
            )
            return was_visible

        _require_admin(caller)
        to_status = next_status(from_status, action)
        rejection_reason = reason if to_status is CommentStatus.REJECTED else None

        if to_status is from_status and rejection_reason == comment.rejection_reason:
            logger.debug(
                "comment_transition_noop",
                comment_id=str(comment.comment_id),
                status=from_status.value,
            )
            return True

        if not await self.store.update_status(comment, to_status, rejection_reason, now):
            raise CommentNotFoundError(comment.comment_id)
        comment.status = to_status
        comment.rejection_reason = rejection_reason
        comment.updated_at = now

        logger.info(
            "comment_moderated",
            comment_id=str(comment.comment_id),
            post_id=str(comment.post_id),
            action=action.value,
            from_status=from_status.value,
            to_status=to_status.value,
            moderator_id=str(caller.id),
            rejection_reason=rejection_reason,
        )
        return was_visible or comment.is_visible

    # ==========================================================================
    # Public operations
    # ==========================================================================

    async def moderate(
        self,
        comment_id: UUID,
        action: ModerationAction,
        caller: "Principal",
        reason: str | None = None,
    ) -> Comment:
        """Apply one action and sync the post counter when needed.

        Acting again on a comment that is already soft-deleted still raises
        CommentNotFoundError, but resyncs its post first.
        """
        try:
            comment = await self._load(comment_id)
        except CommentNotFoundError:
            post_id = await self._deleted_post(comment_id, caller)
            if post_id is not None:
                await self.counters.sync(post_id)
            raise
        if await self._transition(comment, action, caller, reason):
            await self.counters.sync(comment.post_id)
        return comment

    async def approve(self, comment_id: UUID, moderator: "Principal") -> Comment:
        """Any status -> approved; clears the rejection reason."""
        return await self.moderate(comment_id, ModerationAction.APPROVE, moderator)

    async def reject(
        self, comment_id: UUID, moderator: "Principal", reason: str | None = None
    ) -> Comment:
        """Any status -> rejected, with an optional reason."""
        return await self.moderate(comment_id, ModerationAction.REJECT, moderator, reason)

    async def soft_delete(self, comment_id: UUID, caller: "Principal") -> Comment:
        """Soft-delete as the author or an administrator."""
        return await self.moderate(comment_id, ModerationAction.DELETE, caller)

    async def restore(self, comment_id: UUID, moderator: "Principal") -> Comment:
        """Undo a soft delete; status is left as it was."""
        _require_admin(moderator)
        comment = await self.store.get(comment_id, include_deleted=True)
        if comment is None:
            raise CommentNotFoundError(comment_id)

        now = utc_now()
        if not comment.is_deleted or not await self.store.restore(comment, now):
            await self.counters.sync(comment.post_id)
            msg = "Comment is not deleted"
            raise InvalidTransitionError(msg)
        comment.is_deleted = False
        comment.deleted_at = None
        comment.deleted_by = None
        comment.updated_at = now

        logger.info(
            "comment_restored",
            comment_id=str(comment_id),
            post_id=str(comment.post_id),
            status=comment.status.value,
            moderator_id=str(moderator.id),
        )
        if comment.is_visible:
            await self.counters.sync(comment.post_id)
        return comment

    async def flag(
        self, comment_id: UUID, caller: "Principal", reason: str | None = None
    ) -> Comment:
        """Record a flag from ``caller``; status and counter are untouched."""
        comment = await self._load(comment_id)
        if not comment.can_view(caller.id, caller.is_admin):
            raise CommentNotFoundError(comment_id)
        if comment.author_id == caller.id:
            raise CannotFlagOwnCommentError

        now = utc_now()
        flag = CommentFlag(comment_id=comment_id, user_id=caller.id, reason=reason, created_at=now)
        if not await self.store.insert_flag(flag, unique=self.flags_unique):
            raise AlreadyFlaggedError

        flag_count = await self.store.increment_flag_count(comment, reason, now)
        if flag_count is None:
            raise CommentNotFoundError(comment_id)
        comment.flag_count = flag_count
        comment.flag_reason = reason
        comment.updated_at = now

        logger.info(
            "comment_flagged",
            comment_id=str(comment_id),
            post_id=str(comment.post_id),
            flagged_by=str(caller.id),
            flag_count=flag_count,
            flag_reason=reason,
        )
        return comment

    async def bulk_moderate(
        self,
        action: ModerationAction,
        comment_ids: list[UUID],
        moderator: "Principal",
        reason: str | None = None,
    ) -> BulkModerationResult:
        """Apply ``action`` to each id independently.

        Not all-or-nothing: every id ends up in ``success`` or ``failed``.
        Affected posts are synced once each after the loop, including when
        the run is interrupted.
        """
        _require_admin(moderator)
        result = BulkModerationResult(action=action)
        affected_posts: list[UUID] = []

        try:
            for comment_id in dict.fromkeys(comment_ids):
                try:
                    comment = await self._load(comment_id)
                    if await self._transition(comment, action, moderator, reason):
                        affected_posts.append(comment.post_id)
                except CommentError as e:
                    if isinstance(e, CommentNotFoundError):
                        post_id = await self._deleted_post(comment_id, moderator)
                        if post_id is not None:
                            affected_posts.append(post_id)
                    result.failed.append(
                        BulkFailure(id=comment_id, reason=BULK_FAILURE_REASONS.get(e.code, e.code))
                    )
                else:
                    result.success.append(comment_id)
        finally:
            await self.counters.sync_many(affected_posts)

        logger.info(
            "bulk_moderation_completed",
            action=action.value,
            requested=len(comment_ids),
            succeeded=len(result.success),
            failed=len(result.failed),
            posts_synced=len(set(affected_posts)),
            moderator_id=str(moderator.id),
        )
        return result
