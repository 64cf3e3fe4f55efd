"""FastAPI dependencies for the comment API.

Provides dependency injection for:
- Comment service
- Moderation workflow
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .errors import CommentError, RateLimitExceededError
from .moderation import ModerationWorkflow
from .service import CommentService


async def get_comment_service(request: Request) -> CommentService:
    """Get comment service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "comment_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Comment service not available",
        )
    return app_state.comment_service


async def get_moderation_workflow(request: Request) -> ModerationWorkflow:
    """Get moderation workflow from app state."""
    app_state = request.app.state
    if not getattr(app_state, "moderation_workflow", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Moderation service not available",
        )
    return app_state.moderation_workflow


# Type aliases for dependency injection
CommentServiceDep = Annotated[CommentService, Depends(get_comment_service)]
ModerationDep = Annotated[ModerationWorkflow, Depends(get_moderation_workflow)]


COMMENT_ERROR_STATUS = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "duplicate_comment": status.HTTP_400_BAD_REQUEST,
    "cannot_flag_own_comment": status.HTTP_400_BAD_REQUEST,
    "post_not_found": status.HTTP_404_NOT_FOUND,
    "comment_not_found": status.HTTP_404_NOT_FOUND,
    "permission_denied": status.HTTP_403_FORBIDDEN,
    "already_flagged": status.HTTP_409_CONFLICT,
    "invalid_transition": status.HTTP_409_CONFLICT,
    "rate_limit_exceeded": status.HTTP_429_TOO_MANY_REQUESTS,
}


def handle_comment_error(error: CommentError) -> HTTPException:
    """Convert comment errors to HTTP exceptions.

    Args:
        error: Comment error

    Returns:
        HTTPException with appropriate status code; 429 carries Retry-After
    """
    status_code = COMMENT_ERROR_STATUS.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    headers = None
    if isinstance(error, RateLimitExceededError):
        headers = {"Retry-After": str(error.retry_after_seconds)}

    return HTTPException(
        status_code=status_code,
        detail=error.message,
        headers=headers,
    )
