"""Posts as seen by the comment service.

Post CRUD lives in the main blog backend. This package only reads posts
(existence and soft-delete state) and writes their ``comments_count``.
"""

from .models import POSTS_TABLES_CQL, Post
from .service import PostService


__all__ = ["POSTS_TABLES_CQL", "Post", "PostService"]
