"""Comment service layer.

Business logic for:
- Submission intake (validate, sanitize, screen for spam and duplicates,
  admit through the rate limiter, persist)
- Author/admin content edits with re-screening
- Public and admin read paths, including per-status statistics
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Literal
from uuid import UUID

import structlog

from .errors import (
    CommentNotFoundError,
    DuplicateCommentError,
    PermissionDeniedError,
    PostNotFoundError,
    RateLimitExceededError,
)
from .models import (
    Comment,
    CommentStats,
    CommentStatus,
    SpamPolicy,
    create_comment,
    utc_now,
)
from .validation import SpamHeuristics, SpamVerdict, sanitize_content, validate_content


if TYPE_CHECKING:
    from blog_comments.auth.schemas import Principal
    from blog_comments.config.settings import Settings
    from blog_comments.posts import PostService

    from .counters import CounterSynchronizer
    from .rate_limit import RateLimiter
    from .store import CommentStore


logger = structlog.get_logger(__name__)

SortOrder = Literal["newest", "oldest"]


@dataclass
class SubmissionResult:
    """A stored comment plus the spam warnings attached at intake."""

    comment: Comment
    warnings: list[str] = field(default_factory=list)


@dataclass
class CommentPage:
    """One page of comments."""

    items: list[Comment]
    total: int
    page: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total


def paginate(comments: list[Comment], page: int, limit: int) -> CommentPage:
    """Slice an already ordered list into a page (1-based)."""
    start = (page - 1) * limit
    return CommentPage(
        items=comments[start : start + limit],
        total=len(comments),
        page=page,
        limit=limit,
    )


class CommentService:
    """Service for comment intake and reads."""

    def __init__(
        self,
        store: "CommentStore",
        post_service: "PostService",
        rate_limiter: "RateLimiter",
        counters: "CounterSynchronizer",
        settings: "Settings",
        heuristics: SpamHeuristics | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.post_service = post_service
        self.rate_limiter = rate_limiter
        self.counters = counters
        self.settings = settings
        self.heuristics = heuristics or SpamHeuristics.from_settings(settings)
        self.spam_policy = SpamPolicy(settings.comment_spam_policy)
        self.clock = clock

    # ==========================================================================
    # Screening
    # ==========================================================================

    def _validate(self, content: str | None) -> str:
        return validate_content(
            content, self.settings.comment_min_length, self.settings.comment_max_length
        )

    def _screen(self, trimmed: str) -> tuple[str, SpamVerdict]:
        """Sanitize and score already validated text.

        The sanitized text is validated again: markup-only input must not
        slip through as an empty or too-short comment.
        """
        sanitized = self._validate(sanitize_content(trimmed))
        return sanitized, self.heuristics.check(sanitized)

    def _page_limit(self, limit: int | None) -> int:
        return min(limit or self.settings.comment_page_size, self.settings.comment_max_page_size)

    def _spam_outcome(
        self, verdict: SpamVerdict, default: CommentStatus
    ) -> tuple[CommentStatus, str | None]:
        """Status and rejection reason a verdict leads to under the policy."""
        if verdict.is_spam and self.spam_policy is SpamPolicy.AUTO_REJECT:
            return CommentStatus.REJECTED, verdict.summary
        return default, None

    async def _check_duplicate(
        self, author_id: UUID, post_id: UUID, content: str, now: datetime
    ) -> None:
        since = now - timedelta(seconds=self.settings.comment_duplicate_window_seconds)
        recent = await self.store.find_recent_by_author(author_id, post_id, since)
        if recent is not None and recent.content.lower() == content.lower():
            logger.info(
                "comment_duplicate_rejected",
                author_id=str(author_id),
                post_id=str(post_id),
                previous_comment_id=str(recent.comment_id),
            )
            raise DuplicateCommentError

    # ==========================================================================
    # Intake
    # ==========================================================================

    async def submit_comment(
        self, post_id: UUID, author: "Principal", content: str | None
    ) -> SubmissionResult:
        """Run the intake pipeline and persist the sanitized comment.

        Spam never fails the submission: depending on the policy it is
        either auto-rejected or stored as pending with warnings.

        Raises:
            CommentValidationError: Empty, too short or too long
            PostNotFoundError: Post missing or soft-deleted
            DuplicateCommentError: Same text on the same post moments ago
            RateLimitExceededError: Too many submissions in the window
        """
        trimmed = self._validate(content)

        if await self.post_service.get_active_post(post_id) is None:
            raise PostNotFoundError(post_id)

        sanitized, verdict = self._screen(trimmed)
        if verdict.is_spam:
            logger.info(
                "comment_spam_detected",
                author_id=str(author.id),
                post_id=str(post_id),
                reasons=verdict.reasons,
                policy=self.spam_policy.value,
            )

        initial = (
            CommentStatus.APPROVED
            if self.settings.comment_auto_approve and not verdict.is_spam
            else CommentStatus.PENDING
        )
        status, rejection_reason = self._spam_outcome(verdict, initial)

        now = self.clock()
        await self._check_duplicate(author.id, post_id, sanitized, now)

        decision = await self.rate_limiter.try_admit(author.id)
        if not decision.admitted:
            raise RateLimitExceededError(decision.retry_after)

        comment = create_comment(
            post_id=post_id,
            author_id=author.id,
            author_name=author.display_name,
            content=sanitized,
            status=status,
            rejection_reason=rejection_reason,
            spam_reasons=verdict.reasons,
            now=now,
        )
        await self.store.insert(comment)

        logger.info(
            "comment_submitted",
            comment_id=str(comment.comment_id),
            post_id=str(post_id),
            author_id=str(author.id),
            status=status.value,
            spam=verdict.is_spam,
            remaining_submissions=decision.remaining,
        )

        if comment.is_visible:
            await self.counters.sync(post_id)

        return SubmissionResult(comment=comment, warnings=list(verdict.reasons))

    async def update_comment(
        self, comment_id: UUID, caller: "Principal", content: str | None
    ) -> SubmissionResult:
        """Replace a comment's content.

        Authors may edit only while the comment is pending; admins may edit
        any live comment. The new text goes through the same screening as a
        submission, and the post counter is recounted afterwards.
        """
        comment = await self.store.get(comment_id)
        if comment is None:
            raise CommentNotFoundError(comment_id)

        if not caller.is_admin:
            if comment.author_id != caller.id:
                msg = "You can only edit your own comments"
                raise PermissionDeniedError(msg)
            if comment.status is not CommentStatus.PENDING:
                msg = "Only pending comments can be edited"
                raise PermissionDeniedError(msg)

        sanitized, verdict = self._screen(self._validate(content))
        keep_reason = comment.rejection_reason if comment.status is CommentStatus.REJECTED else None
        status, rejection_reason = self._spam_outcome(verdict, comment.status)
        if status is comment.status and rejection_reason is None:
            rejection_reason = keep_reason

        from_status = comment.status
        now = self.clock()
        applied = await self.store.update_content(
            comment, sanitized, verdict.reasons, status, rejection_reason, now
        )
        if not applied:
            raise CommentNotFoundError(comment_id)

        comment.content = sanitized
        comment.spam_reasons = list(verdict.reasons)
        comment.status = status
        comment.rejection_reason = rejection_reason
        comment.updated_at = now

        logger.info(
            "comment_updated",
            comment_id=str(comment_id),
            post_id=str(comment.post_id),
            editor_id=str(caller.id),
            from_status=from_status.value,
            to_status=status.value,
            spam=verdict.is_spam,
        )

        await self.counters.sync(comment.post_id)

        return SubmissionResult(comment=comment, warnings=list(verdict.reasons))

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_comment(
        self,
        comment_id: UUID,
        viewer: "Principal | None" = None,
        include_deleted: bool = False,
    ) -> Comment:
        """Fetch one comment the viewer is allowed to see.

        ``include_deleted`` is honoured for admins only.
        """
        viewer_id = viewer.id if viewer else None
        is_admin = bool(viewer and viewer.is_admin)

        comment = await self.store.get(comment_id, include_deleted=include_deleted and is_admin)
        if comment is None:
            raise CommentNotFoundError(comment_id)
        if comment.is_deleted or comment.can_view(viewer_id, is_admin):
            return comment
        raise CommentNotFoundError(comment_id)

    async def list_post_comments(
        self,
        post_id: UUID,
        viewer: "Principal | None" = None,
        page: int = 1,
        limit: int | None = None,
        sort: SortOrder = "newest",
    ) -> CommentPage:
        """Comments on a post as the viewer may see them.

        Anonymous and regular viewers get approved comments plus their own;
        admins get every live comment.
        """
        post = await self.post_service.get_post(post_id)
        is_admin = bool(viewer and viewer.is_admin)
        if post is None or (not post.is_active and not is_admin):
            raise PostNotFoundError(post_id)

        viewer_id = viewer.id if viewer else None
        comments = [
            c for c in await self.store.list_for_post(post_id) if c.can_view(viewer_id, is_admin)
        ]
        comments.sort(key=lambda c: c.created_at, reverse=sort == "newest")
        return paginate(comments, page, self._page_limit(limit))

    async def list_admin(
        self,
        status: CommentStatus | None = None,
        flagged_only: bool = False,
        deleted: bool = False,
        post_id: UUID | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> CommentPage:
        """Moderation queue across posts.

        ``deleted=True`` is the only view that returns soft-deleted comments,
        and it returns nothing else.
        """
        if post_id is not None:
            comments = await self.store.list_for_post(post_id)
            if status is not None:
                comments = [c for c in comments if c.status is status]
        else:
            comments = await self.store.list_all(status)

        comments = [
            c
            for c in comments
            if c.is_deleted == deleted and (c.is_flagged or not flagged_only)
        ]
        comments.sort(key=lambda c: c.created_at, reverse=True)
        return paginate(comments, page, self._page_limit(limit))

    async def stats(self, post_id: UUID | None = None) -> CommentStats:
        """Counts by status for one post or for everything."""
        if post_id is not None:
            comments = await self.store.list_for_post(post_id)
        else:
            comments = await self.store.list_all()

        stats = CommentStats()
        for comment in comments:
            stats.add(comment)
        return stats
