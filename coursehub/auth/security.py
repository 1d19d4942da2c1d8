"""Security utilities for authentication.

Provides:
- Password hashing with Argon2id (OWASP recommended)
- Session token (JWT) creation and validation
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError
from jose import JWTError, jwt

from coursehub.config.settings import get_settings


# Argon2id configuration (OWASP recommended parameters)
_password_hasher = PasswordHasher(
    time_cost=2,
    memory_cost=19456,  # 19 MiB
    parallelism=1,
    hash_len=32,
    salt_len=16,
)


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    Example:
        >>> hash_password("my-secure-password").startswith("$argon2id$")
        True
    """
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str | None) -> tuple[bool, str | None]:
    """Verify a password against its hash.

    Also checks whether the stored hash needs rehashing because the hasher
    parameters changed.

    Returns:
        Tuple of (is_valid, new_hash); new_hash is None unless a rehash is due
    """
    if not password_hash:
        return False, None

    try:
        _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHashError):
        return False, None

    if _password_hasher.check_needs_rehash(password_hash):
        return True, hash_password(password)
    return True, None


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed session token.

    Args:
        data: Claims, typically {"sub", "email", "role", "status"}
        expires_delta: Token lifetime (default from settings, 7 days)

    Returns:
        Encoded JWT string with exp, iat and type="access" added
    """
    settings = get_settings()

    now = datetime.now(UTC)
    to_encode = data.copy()
    to_encode.update(
        {
            "exp": now
            + (expires_delta or timedelta(days=settings.auth_access_token_expire_days)),
            "iat": now,
            "type": "access",
        }
    )

    return jwt.encode(
        to_encode,
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate a session token.

    Raises:
        ExpiredSignatureError: If the token expired (subclass of JWTError)
        JWTError: If the token is malformed, forged or of the wrong type
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )

    if payload.get("type") != "access":
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)

    if "sub" not in payload or "role" not in payload:
        msg = "Token missing identity claims"
        raise JWTError(msg)

    return payload
