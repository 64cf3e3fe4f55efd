# Core infrastructure
from blog_comments.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_principal,
    set_request_id,
)
from blog_comments.core.logging import configure_structlog, get_logger
from blog_comments.core.middleware import RequestContextMiddleware


__all__ = [
    "RequestContext",
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "set_principal",
    "set_request_id",
]
