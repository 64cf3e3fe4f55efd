"""Comment intake and moderation.

Provides:
- Validation, sanitization and spam heuristics
- Sliding-window rate limiting with swappable backends
- Moderation state machine with bulk operations
- Post visible-comment counter synchronization

Note: Router is not exported here to avoid circular imports.
Import directly from blog_comments.comments.router when needed.
"""

from .counters import CounterSynchronizer
from .models import (
    COMMENTS_TABLES_CQL,
    Comment,
    CommentFlag,
    CommentStats,
    CommentStatus,
    ModerationAction,
    SpamPolicy,
)
from .moderation import BulkModerationResult, ModerationWorkflow
from .rate_limit import (
    InMemoryRateLimitBackend,
    RateLimitDecision,
    RateLimiter,
    RedisRateLimitBackend,
)
from .service import CommentService
from .store import CassandraCommentStore, CommentStore


__all__ = [
    "COMMENTS_TABLES_CQL",
    "BulkModerationResult",
    "CassandraCommentStore",
    "Comment",
    "CommentFlag",
    "CommentService",
    "CommentStats",
    "CommentStatus",
    "CommentStore",
    "CounterSynchronizer",
    "InMemoryRateLimitBackend",
    "ModerationAction",
    "ModerationWorkflow",
    "RateLimitDecision",
    "RateLimiter",
    "RedisRateLimitBackend",
    "SpamPolicy",
]
