"""Authentication: JWT verification and platform roles."""

from learnhub.auth.permissions import UserRole, has_permission
from learnhub.auth.schemas import UserResponse


__all__ = ["UserResponse", "UserRole", "has_permission"]
