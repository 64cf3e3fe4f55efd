"""Comment error hierarchy.

Every error carries a stable ``code`` used by the HTTP layer to pick a
status code, and a user-facing ``message``.
"""

import math
from uuid import UUID


class CommentError(Exception):
    """Base comment error."""

    def __init__(self, message: str, code: str = "comment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CommentValidationError(CommentError):
    """Submitted content failed validation.

    ``reason`` is one of ``empty``, ``too_short``, ``too_long``.
    """

    def __init__(self, message: str, reason: str):
        self.reason = reason
        super().__init__(message, "validation_error")


class PostNotFoundError(CommentError):
    """Referenced post is missing or soft-deleted."""

    def __init__(self, post_id: UUID | None = None):
        self.post_id = post_id
        super().__init__("Post not found", "post_not_found")


class CommentNotFoundError(CommentError):
    """Comment is missing or soft-deleted."""

    def __init__(self, comment_id: UUID | None = None, message: str = "Comment not found"):
        self.comment_id = comment_id
        super().__init__(message, "comment_not_found")


class PermissionDeniedError(CommentError):
    """Caller is not allowed to perform the operation."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, "permission_denied")


class RateLimitExceededError(CommentError):
    """Author submitted too many comments in the current window."""

    def __init__(self, retry_after: float):
        self.retry_after = retry_after
        super().__init__(
            f"Too many comments, try again in {self.retry_after_seconds} seconds",
            "rate_limit_exceeded",
        )

    @property
    def retry_after_seconds(self) -> int:
        """Retry hint rounded up to whole seconds."""
        return max(1, math.ceil(self.retry_after))


class DuplicateCommentError(CommentError):
    """Same author posted the same content on the same post moments ago."""

    def __init__(self, message: str = "You already posted this comment"):
        super().__init__(message, "duplicate_comment")


class CannotFlagOwnCommentError(CommentError):
    """Authors cannot flag their own comments."""

    def __init__(self, message: str = "You cannot flag your own comment"):
        super().__init__(message, "cannot_flag_own_comment")


class AlreadyFlaggedError(CommentError):
    """The caller already flagged this comment."""

    def __init__(self, message: str = "You already flagged this comment"):
        super().__init__(message, "already_flagged")


class InvalidTransitionError(CommentError):
    """The requested change is not allowed in the comment's current state."""

    def __init__(self, message: str):
        super().__init__(message, "invalid_transition")
