"""
Role administration: list users and roles, change a user's role, delete a user.

An admin cannot drop their own admin role and nobody can delete their own
account from here. Deletion is a bare row removal; rows that still reference
the user make the database refuse it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from salvambiente.auth.roles import Role
from salvambiente.auth.service import get_user_by_id, role_of
from salvambiente.db.models import Role as RoleRow
from salvambiente.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class InvalidRoleError(ValueError):
    """The requested role id does not exist."""


class SelfProtectionError(ValueError):
    """An admin tried to demote or delete their own account."""


class UserNotFoundError(LookupError):
    """The target user does not exist."""


async def list_users(db: AsyncSession) -> list[User]:
    """All users, newest first, with their role loaded."""
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(result.scalars().all())


async def list_roles(db: AsyncSession) -> list[RoleRow]:
    result = await db.execute(select(RoleRow).order_by(RoleRow.name))
    return list(result.scalars().all())


async def change_role(db: AsyncSession, actor_id: int, user_id: int, role_id: int) -> User:
    """
    Assign a role to a user.

    Raises:
        InvalidRoleError: If the role id is unknown.
        UserNotFoundError: If the user does not exist.
        SelfProtectionError: If an admin would remove their own admin role.
    """
    new_role = await db.get(RoleRow, role_id)
    if new_role is None:
        msg = "Rol no válido"
        raise InvalidRoleError(msg)

    user = await get_user_by_id(db, user_id)
    if user is None:
        msg = "Usuario no encontrado"
        raise UserNotFoundError(msg)

    if user.id == actor_id and role_of(user) is Role.ADMIN and Role.parse(new_role.name) is not Role.ADMIN:
        msg = "No puedes quitarte el rol de administrador a ti mismo"
        raise SelfProtectionError(msg)

    previous = user.role.name if user.role is not None else None
    user.role_id = new_role.id
    await db.flush()
    await db.refresh(user, attribute_names=["role"])
    await db.commit()
    logger.info("user_role_changed", actor_id=actor_id, user_id=user.id, previous=previous, role=new_role.name)
    return user


async def delete_user(db: AsyncSession, actor_id: int, user_id: int) -> None:
    """
    Remove a user row.

    Raises:
        SelfProtectionError: If the actor targets their own account.
        UserNotFoundError: If the user does not exist.
        IntegrityError: If other rows still reference the user (rolled back).
    """
    if user_id == actor_id:
        msg = "No puedes eliminar tu propia cuenta"
        raise SelfProtectionError(msg)

    try:
        result = await db.execute(delete(User).where(User.id == user_id))
        if result.rowcount == 0:
            msg = "Usuario no encontrado"
            raise UserNotFoundError(msg)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise
    logger.info("user_deleted", actor_id=actor_id, user_id=user_id)
