"""Post lookups and the visible-comment counter write."""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from .models import Post


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


class PostService:
    """Reads posts and maintains their comments_count."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_post = self.session.prepare(f"""
            SELECT post_id, author_id, title, is_deleted, deleted_at, comments_count
            FROM {self.keyspace}.posts
            WHERE post_id = ?
        """)

        self._set_comments_count = self.session.prepare(f"""
            UPDATE {self.keyspace}.posts
            SET comments_count = ?
            WHERE post_id = ?
            IF EXISTS
        """)

    async def get_post(self, post_id: UUID) -> Post | None:
        """Fetch a post, deleted or not."""
        result = await self.session.aexecute(self._get_post, [post_id])
        row = result.one()
        return Post.from_row(row) if row else None

    async def get_active_post(self, post_id: UUID) -> Post | None:
        """Fetch a post only if it exists and is not soft-deleted."""
        post = await self.get_post(post_id)
        if post is None or not post.is_active:
            return None
        return post

    async def set_comments_count(self, post_id: UUID, count: int) -> bool:
        """Write the recomputed visible-comment count onto the post.

        Returns:
            False if the post row no longer exists
        """
        result = await self.session.aexecute(
            self._set_comments_count, [count, post_id]
        )
        applied = result.was_applied
        if not applied:
            logger.warning("comments_count_post_missing", post_id=str(post_id))
        return applied
