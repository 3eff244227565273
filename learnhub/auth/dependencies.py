"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current user extraction from the Bearer JWT
- Role-based access control
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from pydantic import ValidationError

from learnhub.auth.permissions import UserRole, has_permission
from learnhub.auth.schemas import UserResponse
from learnhub.auth.security import decode_access_token
from learnhub.core.context import set_user_id


def get_token_from_header(request: Request) -> str | None:
    """Extract the Bearer token from the Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def _user_from_token(token: str) -> UserResponse:
    payload = decode_access_token(token)
    try:
        user = UserResponse(id=payload["sub"], email=payload["email"], role=payload["role"])
    except ValidationError as e:
        msg = "Malformed token claims"
        raise JWTError(msg) from e

    set_user_id(user.id)
    return user


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> UserResponse:
    """Get the authenticated user from the access token.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token missing",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return _user_from_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> UserResponse | None:
    """Get the current user if a valid token was sent, None otherwise."""
    if not token:
        return None
    try:
        return _user_from_token(token)
    except JWTError:
        return None


def require_permission(required_role: UserRole):
    """Create a dependency requiring at least a permission level.

    Example:
        @router.post("/courses")
        async def create(
            user: Annotated[UserResponse, Depends(require_permission(UserRole.CREATOR))]
        ):
            # Accessible by CREATOR and ADMIN
            ...
    """

    async def permission_checker(
        user: Annotated[UserResponse, Depends(get_current_user)],
    ) -> UserResponse:
        if not has_permission(user.role, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return permission_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentUser = Annotated[UserResponse, Depends(get_current_user)]
OptionalUser = Annotated[UserResponse | None, Depends(get_current_user_optional)]
CreatorUser = Annotated[UserResponse, Depends(require_permission(UserRole.CREATOR))]
AdminUser = Annotated[UserResponse, Depends(require_permission(UserRole.ADMIN))]
