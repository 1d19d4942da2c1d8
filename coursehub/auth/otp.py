"""One-time verification codes.

- 6-digit numeric codes from ``secrets``
- Only the SHA-256 hash is persisted
- Constant-time comparison on verification
- At most MAX_ATTEMPTS checks per code
"""

import hashlib
import secrets
from datetime import UTC, datetime, timedelta


OTP_LENGTH = 6
MAX_ATTEMPTS = 3


def generate_otp_code() -> str:
    """Generate a random numeric verification code."""
    return "".join(secrets.choice("0123456789") for _ in range(OTP_LENGTH))


def hash_otp_code(code: str) -> str:
    return hashlib.sha256(code.encode()).hexdigest()


def verify_otp_code(code: str, code_hash: str) -> bool:
    """Compare a submitted code with the stored hash in constant time."""
    return secrets.compare_digest(hash_otp_code(code), code_hash)


def otp_expiry(minutes: int, now: datetime | None = None) -> datetime:
    return (now or datetime.now(UTC)) + timedelta(minutes=minutes)
