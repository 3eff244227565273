"""Pydantic schemas for the authenticated principal."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from learnhub.auth.permissions import UserRole


class UserResponse(BaseModel):
    """The caller, as described by the access token claims."""

    model_config = ConfigDict(use_enum_values=True)

    id: UUID
    email: str
    role: UserRole
