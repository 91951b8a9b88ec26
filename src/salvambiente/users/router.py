"""Profile endpoints for the authenticated user."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from salvambiente.auth.dependencies import get_current_claims
from salvambiente.auth.password import PasswordStrengthError
from salvambiente.auth.schemas import TokenClaims
from salvambiente.database import get_session
from salvambiente.db.models import User
from salvambiente.time_utils import as_utc
from salvambiente.users.schemas import (
    ChangePasswordRequest,
    MessageResponse,
    Profile,
    ProfileResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
)
from salvambiente.users.service import (
    ProfileNotFoundError,
    UsernameTakenError,
    WrongPasswordError,
    change_password,
    get_profile,
    update_username,
)

router = APIRouter(prefix="/api", tags=["Profile"])


def _profile(user: User) -> Profile:
    return Profile(id=user.id, usuario=user.username, correo=user.email, fecha_creacion=as_utc(user.created_at))


@router.get("/perfil", response_model=ProfileResponse)
async def read_profile(
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    try:
        user = await get_profile(db, claims.id)
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ProfileResponse(user=_profile(user))


@router.put("/perfil", response_model=ProfileUpdateResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_session),
) -> ProfileUpdateResponse:
    """Change the caller's handle. The current token keeps the old handle until it expires."""
    try:
        user = await update_username(db, claims.id, body.usuario)
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except UsernameTakenError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except IntegrityError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail="El nombre de usuario ya está en uso") from e
    return ProfileUpdateResponse(user=_profile(user))


@router.put("/cambiar-contra", response_model=MessageResponse)
async def update_password(
    body: ChangePasswordRequest,
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Change the caller's password."""
    try:
        await change_password(db, claims.id, body.current_password, body.new_password)
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except WrongPasswordError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return MessageResponse(message="Contraseña actualizada exitosamente")
