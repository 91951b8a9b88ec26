"""Tests for password hashing and validation."""

import pytest

from salvambiente.auth.password import (
    PasswordStrengthError,
    hash_password,
    validate_new_password,
    verify_password,
)


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("secreto123")
        assert verify_password("secreto123", hashed) is True

    def test_wrong_password_rejected(self):
        hashed = hash_password("secreto123")
        assert verify_password("otraclave1", hashed) is False

    def test_hash_is_argon2id(self):
        assert hash_password("secreto123").startswith("$argon2id$")

    def test_malformed_hash_does_not_raise(self):
        assert verify_password("secreto123", "not-a-hash") is False


class TestNewPasswordRules:
    def test_eight_characters_accepted(self):
        validate_new_password("a" * 8)  # Should not raise

    def test_seven_characters_rejected(self):
        with pytest.raises(PasswordStrengthError, match="al menos 8 caracteres"):
            validate_new_password("a" * 7)

    def test_128_characters_accepted(self):
        validate_new_password("a" * 128)

    def test_129_characters_rejected(self):
        with pytest.raises(PasswordStrengthError, match="no puede superar 128"):
            validate_new_password("a" * 129)
