"""
Password hashing and validation using argon2id.
"""

from __future__ import annotations

import argon2

from salvambiente.config import get_settings

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,  # 64 MB
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,  # argon2id
)


class PasswordStrengthError(ValueError):
    """Raised when a new password does not meet the length requirements."""


def hash_password(password: str) -> str:
    """Hash a password using argon2id. Returns the full hash string."""
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its argon2id hash.

    Returns True if the password matches. Never raises on mismatch.
    """
    try:
        return _hasher.verify(password_hash, password)
    except argon2.exceptions.VerifyMismatchError:
        return False
    except argon2.exceptions.InvalidHashError:
        return False


def validate_new_password(password: str) -> None:
    """
    Validate the length of a password being set by a reset or change.

    Raises PasswordStrengthError with a user-facing message.
    """
    settings = get_settings()
    if len(password) < settings.password_min_length:
        msg = f"La nueva contraseña debe tener al menos {settings.password_min_length} caracteres"
        raise PasswordStrengthError(msg)
    if len(password) > settings.password_max_length:
        msg = f"La nueva contraseña no puede superar {settings.password_max_length} caracteres"
        raise PasswordStrengthError(msg)
