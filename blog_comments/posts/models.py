"""Database model for the post aggregate the comment service touches."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID


# Posts are written by the blog backend; comments_count is owned by this service
POSTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts (
    post_id UUID PRIMARY KEY,
    author_id UUID,
    title TEXT,
    slug TEXT,
    is_deleted BOOLEAN,
    deleted_at TIMESTAMP,
    comments_count INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

POSTS_TABLES_CQL = [
    POSTS_TABLE_CQL,
]


@dataclass
class Post:
    """Post entity (only the fields comments care about)."""

    post_id: UUID
    author_id: UUID | None
    title: str
    is_deleted: bool
    deleted_at: datetime | None
    comments_count: int

    @classmethod
    def from_row(cls, row: Any) -> "Post":
        """Create Post from Cassandra row."""
        return cls(
            post_id=row.post_id,
            author_id=row.author_id,
            title=row.title or "",
            is_deleted=bool(row.is_deleted) or row.deleted_at is not None,
            deleted_at=row.deleted_at,
            comments_count=row.comments_count or 0,
        )

    @property
    def is_active(self) -> bool:
        """Whether the post can receive comments."""
        return not self.is_deleted
