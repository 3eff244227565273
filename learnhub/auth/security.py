"""JWT access token handling.

Tokens are issued by the identity service; this API only verifies them.
``create_access_token`` exists for tooling and tests that need to mint a
token signed with the shared key.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from learnhub.config.settings import get_settings


REQUIRED_CLAIMS = ("sub", "email", "role")


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token.

    Args:
        data: Payload data (typically {"sub": user_id, "email": email, "role": role})
        expires_delta: Token lifetime (default from settings)

    Returns:
        Encoded JWT string with ``exp``, ``iat`` and ``type="access"`` added.
    """
    settings = get_settings()
    now = datetime.now(UTC)
    expire = now + (
        expires_delta or timedelta(minutes=settings.auth_access_token_expire_minutes)
    )

    to_encode = {**data, "exp": expire, "iat": now, "type": "access"}
    return jwt.encode(
        to_encode,
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        JWTError: If the signature or expiry is invalid, the token is not an
            access token, or a required claim is missing.
    """
    settings = get_settings()
    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )

    if payload.get("type") != "access":
        msg = "Invalid token type"
        raise JWTError(msg)

    missing = [claim for claim in REQUIRED_CLAIMS if not payload.get(claim)]
    if missing:
        msg = f"Missing claims: {', '.join(missing)}"
        raise JWTError(msg)

    return payload
