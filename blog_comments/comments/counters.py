"""Visible-comment counter maintenance.

A post's ``comments_count`` is a cache of the live number of approved,
non-deleted comments. It is always recomputed from the comment rows and
written whole, never incremented, so repeated syncs converge.
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING
from uuid import UUID

import structlog


if TYPE_CHECKING:
    from blog_comments.posts import PostService

    from .store import CommentStore


logger = structlog.get_logger(__name__)


class CounterSynchronizer:
    """Recomputes and stores posts' visible-comment counts."""

    def __init__(self, store: "CommentStore", post_service: "PostService"):
        self.store = store
        self.post_service = post_service

    async def sync(self, post_id: UUID) -> int:
        """Recompute one post's count and write it to the post."""
        count = await self.store.count_visible(post_id)
        await self.post_service.set_comments_count(post_id, count)
        logger.info("comments_count_synced", post_id=str(post_id), comments_count=count)
        return count

    async def sync_many(self, post_ids: Iterable[UUID]) -> dict[UUID, int]:
        """Sync each distinct post once, in first-seen order."""
        counts: dict[UUID, int] = {}
        for post_id in dict.fromkeys(post_ids):
            counts[post_id] = await self.sync(post_id)
        return counts
