"""Profile reads and updates for the authenticated user."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from salvambiente.auth.password import hash_password, validate_new_password, verify_password
from salvambiente.auth.service import get_user_by_id
from salvambiente.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class ProfileNotFoundError(LookupError):
    """The token refers to a user that no longer exists."""


class UsernameTakenError(ValueError):
    """Another account already uses the requested handle."""


class WrongPasswordError(ValueError):
    """The current password supplied for a change does not match."""


async def get_profile(db: AsyncSession, user_id: int) -> User:
    user = await get_user_by_id(db, user_id)
    if user is None:
        msg = "Usuario no encontrado"
        raise ProfileNotFoundError(msg)
    return user


async def update_username(db: AsyncSession, user_id: int, username: str) -> User:
    """
    Rename the user.

    Raises:
        ProfileNotFoundError: If the user is gone.
        UsernameTakenError: If another user has the handle.
    """
    user = await get_profile(db, user_id)
    taken = await db.execute(select(User.id).where(User.username == username, User.id != user_id).limit(1))
    if taken.first() is not None:
        msg = "El nombre de usuario ya está en uso"
        raise UsernameTakenError(msg)
    user.username = username
    await db.commit()
    logger.info("profile_updated", user_id=user_id)
    return user


async def change_password(db: AsyncSession, user_id: int, current_password: str, new_password: str) -> User:
    """
    Replace the password after checking the current one.

    Raises:
        ProfileNotFoundError: If the user is gone.
        WrongPasswordError: If `current_password` does not match.
        PasswordStrengthError: If the new password fails the length rules.
    """
    user = await get_profile(db, user_id)
    if not verify_password(current_password, user.password_hash):
        msg = "Contraseña actual incorrecta"
        raise WrongPasswordError(msg)
    validate_new_password(new_password)
    user.password_hash = hash_password(new_password)
    await db.commit()
    logger.info("password_changed", user_id=user_id)
    return user
