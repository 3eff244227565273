"""Role-based access control (RBAC) for LearnHub.

Hierarchical platform roles:
- ADMIN (level 2): Full system access, moderates every course and community
- CREATOR (level 1): Authors courses, creates communities and events
- STUDENT (level 0): Enrolls in courses, joins communities

Community roles (admin/member/creator) are separate and live on the
community aggregate; see ``learnhub.communities.models``.
"""

from enum import Enum


class UserRole(str, Enum):
    """Platform roles, higher level means more permissions."""

    STUDENT = "student"
    CREATOR = "creator"
    ADMIN = "admin"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.STUDENT: 0,
    UserRole.CREATOR: 1,
    UserRole.ADMIN: 2,
}


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role (unknown roles get -1)."""
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return -1
    return ROLE_HIERARCHY.get(role, -1)


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.CREATOR)
        True
        >>> has_permission("student", "creator")
        False
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_admin(role: UserRole | str) -> bool:
    """Check if role is the platform ADMIN."""
    return get_role_level(role) == ROLE_HIERARCHY[UserRole.ADMIN]


def is_at_least_creator(role: UserRole | str) -> bool:
    """Check if role may author content (CREATOR or ADMIN)."""
    return has_permission(role, UserRole.CREATOR)
