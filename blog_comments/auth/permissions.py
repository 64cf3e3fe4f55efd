"""Role-based access control for the comment service.

Two levels matter here:
- ADMIN (level 1): may approve, reject, bulk-moderate, restore and see every status
- USER (level 0): may submit, edit own pending comments, delete own comments, flag
"""

from enum import Enum


class UserRole(str, Enum):
    """Caller roles, higher level = more permissions."""

    USER = "user"
    ADMIN = "admin"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.USER: 0,
    UserRole.ADMIN: 1,
}


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role, 0 for unknown roles."""
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return 0
    return ROLE_HIERARCHY.get(role, 0)


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.USER)
        True
        >>> has_permission("user", "admin")
        False
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_admin(role: UserRole | str) -> bool:
    """Check if role is ADMIN."""
    return get_role_level(role) >= ROLE_HIERARCHY[UserRole.ADMIN]
