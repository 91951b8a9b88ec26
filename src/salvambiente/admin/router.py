"""Admin-only endpoints for users and roles."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from salvambiente.admin.schemas import (
    AdminUser,
    ChangedUser,
    ChangeRoleRequest,
    ChangeRoleResponse,
    MessageResponse,
    RoleInfo,
)
from salvambiente.admin.service import (
    InvalidRoleError,
    SelfProtectionError,
    UserNotFoundError,
    change_role,
    delete_user,
    list_roles,
    list_users,
)
from salvambiente.auth.dependencies import require_admin
from salvambiente.auth.schemas import TokenClaims
from salvambiente.database import get_session
from salvambiente.time_utils import as_utc

logger = structlog.get_logger()

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/usuarios", response_model=list[AdminUser])
async def users(
    _admin: TokenClaims = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[AdminUser]:
    """All users with their role, newest first."""
    return [
        AdminUser(
            id=user.id,
            usuario=user.username,
            correo=user.email,
            rol=user.role.name if user.role is not None else None,
            fecha_creacion=as_utc(user.created_at),
        )
        for user in await list_users(db)
    ]


@router.put("/usuarios/{user_id}/rol", response_model=ChangeRoleResponse)
async def update_role(
    user_id: int,
    body: ChangeRoleRequest,
    admin: TokenClaims = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ChangeRoleResponse:
    """Assign a new role to a user."""
    try:
        user = await change_role(db, admin.id, user_id, body.rol_id)
    except (InvalidRoleError, SelfProtectionError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ChangeRoleResponse(
        usuario=ChangedUser(
            id=user.id,
            usuario=user.username,
            correo=user.email,
            rol=user.role.name if user.role is not None else None,
        )
    )


@router.get("/roles", response_model=list[RoleInfo])
async def roles(
    _admin: TokenClaims = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[RoleInfo]:
    return [RoleInfo(id=role.id, nombre=role.name, descripcion=role.description) for role in await list_roles(db)]


@router.delete("/usuarios/{user_id}", response_model=MessageResponse)
async def remove_user(
    user_id: int,
    admin: TokenClaims = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Delete a user. Fails while footprints, scores or tickets still reference them."""
    try:
        await delete_user(db, admin.id, user_id)
    except SelfProtectionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except IntegrityError as e:
        logger.exception("user_delete_failed", user_id=user_id)
        raise HTTPException(status_code=500, detail="Error al eliminar usuario") from e
    return MessageResponse(message="Usuario eliminado exitosamente")
