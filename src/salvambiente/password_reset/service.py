"""Password reset business logic on top of the reset-code registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from salvambiente.auth.password import hash_password, validate_new_password
from salvambiente.auth.service import get_user_by_email
from salvambiente.password_reset.registry import ResetCodeNotFound

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from salvambiente.db.models import User
    from salvambiente.password_reset.registry import ResetCodeRegistry

logger = structlog.get_logger()


class UnknownEmailError(LookupError):
    """No account is registered under the email."""


async def issue_reset_code(db: AsyncSession, registry: ResetCodeRegistry, email: str) -> tuple[User, str]:
    """
    Register a reset code for an existing account.

    Raises:
        UnknownEmailError: If no user has this email.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        msg = "Correo no encontrado"
        raise UnknownEmailError(msg)
    code = await registry.issue(user.email)
    logger.info("reset_code_issued", user_id=user.id)
    return user, code


async def reset_password(
    db: AsyncSession,
    registry: ResetCodeRegistry,
    code: str,
    new_password: str,
) -> User:
    """
    Set a new password using a verified code, then burn the code.

    Checks run in order: code known and live, code verified, password length.

    Raises:
        ResetCodeNotFound / ResetCodeExpired / ResetCodeNotVerified: From the registry.
        PasswordStrengthError: If the new password is too short or too long.
    """
    entry = await registry.require_verified(code)
    validate_new_password(new_password)

    user = await get_user_by_email(db, entry.email)
    if user is None:
        # Account removed between issue and reset
        await registry.discard(code)
        raise ResetCodeNotFound(code)

    user.password_hash = hash_password(new_password)
    await db.commit()
    await registry.discard(code)
    logger.info("password_reset_completed", user_id=user.id)
    return user
