"""Tests for auth validators."""

import pytest

from coursehub.auth.validators import (
    PASSWORD_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    validate_password,
)


class TestValidatePassword:
    """Tests for password strength validation."""

    @pytest.mark.parametrize(
        "password",
        [
            "secret123",
            "ABCDEFG1",
            "a1" * (PASSWORD_MAX_LENGTH // 2),
        ],
    )
    def test_valid_password(self, password: str) -> None:
        result = validate_password(password)
        assert result.valid is True
        assert result.message is None

    @pytest.mark.parametrize(
        "password,expected_message",
        [
            ("", "Password must be at least 8 characters"),
            ("abc12", "Password must be at least 8 characters"),
            ("a1" * PASSWORD_MAX_LENGTH, "Password must be at most 128 characters"),
            ("12345678", "Password must contain at least one letter"),
            ("abcdefgh", "Password must contain at least one digit"),
        ],
    )
    def test_invalid_password(self, password: str, expected_message: str) -> None:
        result = validate_password(password)
        assert result.valid is False
        assert result.message == expected_message

    def test_minimum_length_boundary(self) -> None:
        assert validate_password("a" * (PASSWORD_MIN_LENGTH - 2) + "1").valid is False
        assert validate_password("a" * (PASSWORD_MIN_LENGTH - 1) + "1").valid is True
