"""Tests for auth security functions."""

import hashlib
from datetime import timedelta
from uuid import uuid4

import pytest
from jose import ExpiredSignatureError, JWTError, jwt

from coursehub.auth import otp
from coursehub.auth.permissions import UserRole
from coursehub.auth.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from coursehub.config import get_settings


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_hash_password_creates_hash(self) -> None:
        """Hash should be different from plain password."""
        password = "SecurePass123"
        hashed = hash_password(password)
        assert hashed != password
        assert len(hashed) > 0

    def test_hash_password_unique_hashes(self) -> None:
        """Same password should produce different hashes (due to salt)."""
        password = "SecurePass123"
        assert hash_password(password) != hash_password(password)

    def test_verify_password_correct(self) -> None:
        password = "SecurePass123"
        hashed = hash_password(password)
        is_valid, new_hash = verify_password(password, hashed)
        assert is_valid is True
        assert new_hash is None  # No rehash needed for fresh hash

    def test_verify_password_incorrect(self) -> None:
        hashed = hash_password("SecurePass123")
        is_valid, new_hash = verify_password("WrongPass456", hashed)
        assert is_valid is False
        assert new_hash is None

    def test_verify_password_without_hash(self) -> None:
        """Accounts without a local password never verify."""
        assert verify_password("SecurePass123", None) == (False, None)

    def test_verify_password_garbage_hash(self) -> None:
        assert verify_password("SecurePass123", "not-a-hash") == (False, None)

    def test_hash_is_argon2id(self) -> None:
        assert hash_password("SecurePass123").startswith("$argon2id$")


class TestVerificationCodeHashing:
    def test_code_hash_is_sha256_hex(self) -> None:
        assert otp.hash_otp_code("123456") == hashlib.sha256(b"123456").hexdigest()

    def test_code_hash_is_deterministic(self) -> None:
        assert otp.hash_otp_code("654321") == otp.hash_otp_code("654321")
        assert not otp.hash_otp_code("654321").startswith("$argon2")


class TestAccessToken:
    """Tests for session token creation and decoding."""

    def _claims(self) -> dict:
        return {
            "sub": str(uuid4()),
            "email": "test@example.com",
            "role": UserRole.STUDENT.value,
        }

    def test_decode_access_token(self) -> None:
        """Should decode token and return payload."""
        data = self._claims()
        payload = decode_access_token(create_access_token(data))

        assert payload["sub"] == data["sub"]
        assert payload["email"] == data["email"]
        assert payload["role"] == UserRole.STUDENT.value
        assert payload["type"] == "access"
        assert "exp" in payload
        assert "iat" in payload

    def test_default_lifetime_is_seven_days(self) -> None:
        payload = decode_access_token(create_access_token(self._claims()))
        assert payload["exp"] - payload["iat"] == 7 * 24 * 60 * 60

    def test_decode_access_token_expired(self) -> None:
        token = create_access_token(self._claims(), expires_delta=timedelta(seconds=-1))

        with pytest.raises(ExpiredSignatureError):
            decode_access_token(token)

    def test_decode_access_token_invalid(self) -> None:
        with pytest.raises(JWTError):
            decode_access_token("invalid.token.here")

    def test_decode_access_token_wrong_signature(self) -> None:
        settings = get_settings()
        forged = jwt.encode(
            {**self._claims(), "type": "access"},
            "some-other-secret-that-is-long-enough",
            algorithm=settings.auth_algorithm,
        )
        with pytest.raises(JWTError):
            decode_access_token(forged)

    def test_decode_access_token_wrong_type(self) -> None:
        settings = get_settings()
        token = jwt.encode(
            {**self._claims(), "type": "refresh"},
            settings.auth_secret_key,
            algorithm=settings.auth_algorithm,
        )
        with pytest.raises(JWTError, match="expected 'access'"):
            decode_access_token(token)

    def test_decode_access_token_missing_role(self) -> None:
        token = create_access_token({"sub": str(uuid4())})
        with pytest.raises(JWTError, match="identity claims"):
            decode_access_token(token)
