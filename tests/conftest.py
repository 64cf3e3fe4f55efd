"""Shared fixtures: in-memory collaborators, principals, tokens, test client."""

import copy
import os
import tempfile
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_REQUESTS", "false")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="blog-comments-logs-"))

from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from blog_comments.auth.permissions import UserRole  # noqa: E402
from blog_comments.auth.schemas import Principal  # noqa: E402
from blog_comments.comments.counters import CounterSynchronizer  # noqa: E402
from blog_comments.comments.models import (  # noqa: E402
    Comment,
    CommentFlag,
    CommentStatus,
    is_visible,
    utc_now,
)
from blog_comments.comments.moderation import ModerationWorkflow  # noqa: E402
from blog_comments.comments.rate_limit import InMemoryRateLimitBackend, RateLimiter  # noqa: E402
from blog_comments.comments.service import CommentService  # noqa: E402
from blog_comments.config import Settings, get_settings  # noqa: E402
from blog_comments.posts.models import Post  # noqa: E402


# ==============================================================================
# In-memory collaborators
# ==============================================================================


class FakeCommentStore:
    """CommentStore kept in a dict, with the same conditional-write rules."""

    def __init__(self) -> None:
        self.comments: dict[UUID, Comment] = {}
        self.flags: dict[tuple[UUID, UUID], CommentFlag] = {}

    def _live(self, comment: Comment) -> Comment | None:
        stored = self.comments.get(comment.comment_id)
        if stored is None or stored.is_deleted:
            return None
        return stored

    def backdate(self, comment_id: UUID, delta: timedelta) -> None:
        """Move a stored comment's created_at into the past."""
        stored = self.comments[comment_id]
        stored.created_at -= delta
        stored.updated_at = stored.created_at

    async def insert(self, comment: Comment) -> None:
        self.comments[comment.comment_id] = copy.deepcopy(comment)

    async def get(self, comment_id: UUID, include_deleted: bool = False) -> Comment | None:
        stored = self.comments.get(comment_id)
        if stored is None or (stored.is_deleted and not include_deleted):
            return None
        return copy.deepcopy(stored)

    async def list_for_post(self, post_id: UUID) -> list[Comment]:
        rows = [c for c in self.comments.values() if c.post_id == post_id]
        rows.sort(key=lambda c: c.created_at, reverse=True)
        return copy.deepcopy(rows)

    async def list_all(self, status: CommentStatus | None = None) -> list[Comment]:
        rows = [c for c in self.comments.values() if status is None or c.status is status]
        return copy.deepcopy(rows)

    async def find_recent_by_author(
        self, author_id: UUID, post_id: UUID, since: datetime
    ) -> Comment | None:
        rows = [
            c
            for c in await self.list_for_post(post_id)
            if c.author_id == author_id and not c.is_deleted and c.created_at > since
        ]
        return rows[0] if rows else None

    async def count_visible(self, post_id: UUID) -> int:
        return sum(
            1
            for c in self.comments.values()
            if c.post_id == post_id and is_visible(c.status, c.is_deleted)
        )

    async def update_status(
        self,
        comment: Comment,
        status: CommentStatus,
        rejection_reason: str | None,
        now: datetime,
    ) -> bool:
        stored = self._live(comment)
        if stored is None:
            return False
        stored.status = status
        stored.rejection_reason = rejection_reason
        stored.updated_at = now
        return True

    async def update_content(
        self,
        comment: Comment,
        content: str,
        spam_reasons: list[str],
        status: CommentStatus,
        rejection_reason: str | None,
        now: datetime,
    ) -> bool:
        stored = self._live(comment)
        if stored is None:
            return False
        stored.content = content
        stored.spam_reasons = list(spam_reasons)
        stored.status = status
        stored.rejection_reason = rejection_reason
        stored.updated_at = now
        return True

    async def soft_delete(self, comment: Comment, deleted_by: UUID, now: datetime) -> bool:
        stored = self._live(comment)
        if stored is None:
            return False
        stored.is_deleted = True
        stored.deleted_at = now
        stored.deleted_by = deleted_by
        stored.updated_at = now
        return True

    async def restore(self, comment: Comment, now: datetime) -> bool:
        stored = self.comments.get(comment.comment_id)
        if stored is None or not stored.is_deleted:
            return False
        stored.is_deleted = False
        stored.deleted_at = None
        stored.deleted_by = None
        stored.updated_at = now
        return True

    async def insert_flag(self, flag: CommentFlag, unique: bool) -> bool:
        key = (flag.comment_id, flag.user_id)
        if unique and key in self.flags:
            return False
        self.flags[key] = flag
        return True

    async def increment_flag_count(
        self, comment: Comment, reason: str | None, now: datetime
    ) -> int | None:
        stored = self._live(comment)
        if stored is None:
            return None
        stored.flag_count += 1
        stored.flag_reason = reason
        stored.updated_at = now
        return stored.flag_count


class FakePostService:
    """Posts held in memory; records every counter write."""

    def __init__(self) -> None:
        self.posts: dict[UUID, Post] = {}
        self.count_writes: list[tuple[UUID, int]] = []

    def add_post(self, is_deleted: bool = False) -> Post:
        post = Post(
            post_id=uuid4(),
            author_id=uuid4(),
            title="A post",
            is_deleted=is_deleted,
            deleted_at=None,
            comments_count=0,
        )
        self.posts[post.post_id] = post
        return post

    async def get_post(self, post_id: UUID) -> Post | None:
        return self.posts.get(post_id)

    async def get_active_post(self, post_id: UUID) -> Post | None:
        post = self.posts.get(post_id)
        return post if post is not None and post.is_active else None

    async def set_comments_count(self, post_id: UUID, count: int) -> bool:
        self.count_writes.append((post_id, count))
        post = self.posts.get(post_id)
        if post is None:
            return False
        post.comments_count = count
        return True


class FakeClock:
    """Manually advanced epoch clock shared by the rate limiter and service."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def utc(self) -> datetime:
        """The same instant as an aware datetime, for the comment service."""
        return datetime.fromtimestamp(self.now, UTC)


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings with library defaults for every comment policy knob."""
    return Settings(environment="testing")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> FakeCommentStore:
    return FakeCommentStore()


@pytest.fixture
def post_service() -> FakePostService:
    return FakePostService()


@pytest.fixture
def post(post_service: FakePostService) -> Post:
    return post_service.add_post()


@pytest.fixture
def counters(store: FakeCommentStore, post_service: FakePostService) -> CounterSynchronizer:
    return CounterSynchronizer(store, post_service)


@pytest.fixture
def rate_limiter(settings: Settings, clock: FakeClock) -> RateLimiter:
    return RateLimiter(
        InMemoryRateLimitBackend(),
        limit=settings.comment_rate_limit_max,
        window_seconds=settings.comment_rate_limit_window_seconds,
        clock=clock,
    )


@pytest.fixture
def make_service(
    store: FakeCommentStore,
    post_service: FakePostService,
    rate_limiter: RateLimiter,
    counters: CounterSynchronizer,
) -> Callable[..., CommentService]:
    """Build a CommentService with settings overrides."""

    def factory(clock: Callable[[], datetime] | None = None, **overrides) -> CommentService:
        return CommentService(
            store=store,
            post_service=post_service,
            rate_limiter=rate_limiter,
            counters=counters,
            settings=Settings(environment="testing", **overrides),
            clock=clock or utc_now,
        )

    return factory


@pytest.fixture
def comment_service(make_service: Callable[..., CommentService]) -> CommentService:
    return make_service()


@pytest.fixture
def moderation(store: FakeCommentStore, counters: CounterSynchronizer) -> ModerationWorkflow:
    return ModerationWorkflow(store, counters, flags_unique=True)


@pytest.fixture
def author() -> Principal:
    return Principal(id=uuid4(), role=UserRole.USER, name="Alice")


@pytest.fixture
def other_user() -> Principal:
    return Principal(id=uuid4(), role=UserRole.USER, name="Bob")


@pytest.fixture
def admin() -> Principal:
    return Principal(id=uuid4(), role=UserRole.ADMIN, name="Moderator")


@pytest.fixture
def token_for() -> Callable[[Principal], dict[str, str]]:
    """Authorization header for a principal, signed like the blog backend does."""

    def factory(principal: Principal, **claims) -> dict[str, str]:
        settings = get_settings()
        payload = {
            "sub": str(principal.id),
            "role": principal.role.value,
            "name": principal.name,
            "type": "access",
            **claims,
        }
        token = jwt.encode(payload, settings.auth_secret_key, algorithm=settings.auth_algorithm)
        return {"Authorization": f"Bearer {token}"}

    return factory


@pytest.fixture
def client(
    comment_service: CommentService, moderation: ModerationWorkflow
) -> Iterator[TestClient]:
    """Test client wired to the in-memory services (lifespan not started)."""
    from blog_comments.main import app  # noqa: PLC0415

    app.state.comment_service = comment_service
    app.state.moderation_workflow = moderation
    yield TestClient(app)
    app.state.comment_service = None
    app.state.moderation_workflow = None
