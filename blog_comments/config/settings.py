"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SPAM_KEYWORDS = [
    "viagra",
    "cialis",
    "casino",
    "poker online",
    "lottery",
    "winner",
    "you've won",
    "congratulations",
    "dear friend",
    "click here",
    "buy now",
    "limited time",
    "act now",
    "don't miss out",
    "free money",
    "earn cash",
    "earn money",
    "make money",
    "make money fast",
    "100% free",
    "no cost",
    "no obligation",
    "bonus cash",
    "cash bonus",
    "credit card",
    "investment",
    "cheap meds",
    "pharmacy",
    "weight loss",
    "lose weight fast",
    "work from home",
    "home based business",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="blog-comments", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )

    # Authentication (tokens are issued elsewhere, we only verify them)
    auth_secret_key: str = Field(
        default="dev-jwt-secret-key-change-in-production-32chars!",
        description="JWT signing key (min 32 chars)",
    )
    auth_algorithm: str = Field(default="HS256", description="JWT algorithm")

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_max_connections: int = Field(default=10, description="Max Redis connections")
    redis_socket_timeout: float = Field(default=5.0, description="Redis socket timeout")
    redis_socket_connect_timeout: float = Field(
        default=5.0, description="Redis connect timeout"
    )
    redis_retry_on_timeout: bool = Field(default=True, description="Retry on timeout")
    redis_health_check_interval: int = Field(
        default=30, description="Health check interval"
    )

    # Cassandra
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra hosts"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra port")
    cassandra_keyspace: str = Field(
        default="blog_comments", description="Cassandra keyspace"
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout"
    )
    cassandra_request_timeout: float = Field(
        default=10.0, description="Request timeout"
    )

    # Comment intake policy
    comment_min_length: int = Field(default=5, description="Minimum trimmed length")
    comment_max_length: int = Field(default=2000, description="Maximum trimmed length")
    comment_auto_approve: bool = Field(
        default=False,
        description="Publish clean submissions immediately instead of queueing them",
    )
    comment_spam_policy: Literal["auto_reject", "flag_for_review"] = Field(
        default="flag_for_review",
        description="What to do with submissions the spam heuristics flag",
    )
    comment_spam_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SPAM_KEYWORDS),
        description="Case-insensitive denylist of spam phrases",
    )
    comment_spam_max_urls: int = Field(
        default=2, description="More URL-like substrings than this is spam"
    )
    comment_spam_caps_ratio: float = Field(
        default=0.7, description="Uppercase ratio above which text is shouting"
    )
    comment_spam_caps_min_length: int = Field(
        default=20, description="Caps ratio only applies to texts longer than this"
    )
    comment_spam_repeat_run: int = Field(
        default=6, description="Same character repeated this many times is spam"
    )
    comment_rate_limit_max: int = Field(
        default=5, description="Submissions allowed per author per window"
    )
    comment_rate_limit_window_seconds: int = Field(
        default=3600, description="Sliding rate limit window (seconds)"
    )
    comment_rate_limit_backend: Literal["memory", "redis"] = Field(
        default="memory", description="Where rate limit history is kept"
    )
    comment_duplicate_window_seconds: int = Field(
        default=600, description="Lookback for duplicate submissions (seconds)"
    )
    comment_flags_unique: bool = Field(
        default=True, description="A user may flag a given comment only once"
    )
    comment_page_size: int = Field(default=20, description="Default page size")
    comment_max_page_size: int = Field(default=100, description="Maximum page size")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Include caller info"
    )
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths to exclude from request logging",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="CORS origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="CORS max age")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
