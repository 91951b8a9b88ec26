"""
Authentication business logic.

Handles user lookup, local registration and login, session token issuance and
completion of Google sign-ups.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, or_, select

from salvambiente.auth.jwt import create_session_token
from salvambiente.auth.password import hash_password, verify_password
from salvambiente.auth.roles import Role
from salvambiente.auth.schemas import PublicUser
from salvambiente.db.models import Role as RoleRow
from salvambiente.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

# Verified against when the handle is unknown so both login failures cost the same.
_DUMMY_HASH: str | None = None


class UserAlreadyExistsError(ValueError):
    """Raised when a handle or email is already registered."""


class PendingTokenUsedError(ValueError):
    """Raised when a Google pending token has already been consumed."""


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    """Fetch a user by handle."""
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


async def get_role_row(db: AsyncSession, role: Role) -> RoleRow | None:
    result = await db.execute(select(RoleRow).where(RoleRow.name == role.value))
    return result.scalar_one_or_none()


async def credentials_taken(db: AsyncSession, username: str, email: str) -> bool:
    """True if either the handle or the email is already registered."""
    result = await db.execute(
        select(User.id).where(or_(User.username == username, func.lower(User.email) == email.lower())).limit(1)
    )
    return result.first() is not None


def role_of(user: User) -> Role:
    """Role of a stored user, validated against the closed role set."""
    return Role.parse(user.role.name if user.role is not None else None)


def public_user(user: User) -> PublicUser:
    return PublicUser(id=user.id, usuario=user.username, correo=user.email, rol=role_of(user).value)


def issue_session_token(user: User) -> str:
    """Create a session token embedding the user's identity and role."""
    return create_session_token(
        user_id=user.id,
        username=user.username,
        email=user.email,
        role=role_of(user).value,
        role_id=user.role_id,
    )


# ---------------------------------------------------------------------------
# Registration and login
# ---------------------------------------------------------------------------


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
    role: Role = Role.USER,
    *,
    method: str = "local",
) -> User:
    """
    Create a user with a hashed password and the given role.

    Raises:
        UserAlreadyExistsError: If the handle or email is already registered.
    """
    if await credentials_taken(db, username, email):
        msg = "El usuario o correo ya existe"
        raise UserAlreadyExistsError(msg)

    role_row = await get_role_row(db, role)
    user = User(
        username=username,
        email=email.lower(),
        password_hash=hash_password(password),
        role_id=role_row.id if role_row is not None else None,
        created_at=datetime.now(timezone.utc),
    )
    db.add(user)
    await db.flush()
    # Load the role relationship for token claims
    await db.refresh(user, attribute_names=["role"])
    logger.info("user_created", user_id=user.id, role=role.value, method=method)
    return user


async def authenticate_user(db: AsyncSession, username: str, password: str) -> User | None:
    """
    Check a handle and password.

    Returns None for an unknown handle and for a wrong password alike.
    """
    global _DUMMY_HASH  # noqa: PLW0603
    user = await get_user_by_username(db, username)
    if user is None:
        if _DUMMY_HASH is None:
            _DUMMY_HASH = hash_password("salvambiente-dummy-password")
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


# ---------------------------------------------------------------------------
# Google SSO
# ---------------------------------------------------------------------------


async def complete_google_registration(
    db: AsyncSession,
    pending: dict[str, Any],
    username: str,
    password: str,
) -> User:
    """
    Create the account for a Google user holding a verified pending token.

    Raises:
        PendingTokenUsedError: If the token's `verified` claim is already true.
        UserAlreadyExistsError: If the handle or the Google email is taken.
    """
    if pending.get("verified"):
        msg = "Token ya utilizado"
        raise PendingTokenUsedError(msg)
    email = pending.get("email")
    if not email:
        msg = "Token inválido o expirado"
        raise ValueError(msg)
    return await create_user(db, username, email, password, method="google")
