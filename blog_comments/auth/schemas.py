"""Pydantic schemas for the resolved caller."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from .permissions import UserRole, is_admin


class Principal(BaseModel):
    """Authenticated caller, as resolved from the access token."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    role: UserRole = UserRole.USER
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        """Whether the caller may moderate."""
        return is_admin(self.role)

    @property
    def display_name(self) -> str:
        """Name stored alongside the caller's comments."""
        return self.name or "Anonymous"
