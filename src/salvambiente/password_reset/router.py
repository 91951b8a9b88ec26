"""Forgot-password router: request a code, confirm it, set a new password."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from salvambiente.auth.password import PasswordStrengthError
from salvambiente.config import get_settings
from salvambiente.database import get_session
from salvambiente.email.service import get_email_service
from salvambiente.password_reset.registry import (
    ResetCodeExpired,
    ResetCodeNotFound,
    ResetCodeNotVerified,
    ResetCodeRegistry,
    get_reset_registry,
)
from salvambiente.password_reset.schemas import (
    MessageResponse,
    ResetPasswordRequest,
    ResetRequest,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from salvambiente.password_reset.service import UnknownEmailError, issue_reset_code, reset_password

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["Password reset"])


@router.post("/solicitar-restablecimiento", response_model=MessageResponse)
async def request_reset(
    body: ResetRequest,
    db: AsyncSession = Depends(get_session),
    registry: ResetCodeRegistry = Depends(get_reset_registry),
) -> MessageResponse:
    """Email a six-digit code to the account owner."""
    try:
        user, code = await issue_reset_code(db, registry, body.correo)
    except UnknownEmailError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    # The code stays registered even if delivery fails
    try:
        email_service = get_email_service()
        sent = await email_service.send_template(
            to=user.email,
            template_name="reset_code",
            context={"code": code, "ttl_minutes": str(get_settings().reset_code_ttl_minutes)},
        )
    except Exception:
        logger.exception("reset_code_email_failed", user_id=user.id)
        sent = False
    if not sent:
        raise HTTPException(status_code=500, detail="Error en el servidor")

    return MessageResponse(message="Se ha enviado un código de recuperación a tu correo.")


@router.post("/verificar-codigo", response_model=VerifyCodeResponse)
async def verify_code(
    body: VerifyCodeRequest,
    registry: ResetCodeRegistry = Depends(get_reset_registry),
) -> VerifyCodeResponse:
    """Confirm a code before the new password is chosen."""
    try:
        await registry.confirm(body.token)
    except ResetCodeNotFound as e:
        raise HTTPException(status_code=400, detail="Código inválido") from e
    except ResetCodeExpired as e:
        raise HTTPException(status_code=400, detail="Código expirado") from e
    return VerifyCodeResponse()


@router.post("/restablecer-contra", response_model=MessageResponse)
async def set_new_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_session),
    registry: ResetCodeRegistry = Depends(get_reset_registry),
) -> MessageResponse:
    """Replace the password of the account the verified code was issued for."""
    try:
        user = await reset_password(db, registry, body.token, body.new_password)
    except ResetCodeNotFound as e:
        raise HTTPException(status_code=400, detail="Código inválido") from e
    except ResetCodeExpired as e:
        raise HTTPException(status_code=400, detail="Código inválido o expirado") from e
    except ResetCodeNotVerified as e:
        raise HTTPException(status_code=400, detail="Código no verificado") from e
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    try:
        await get_email_service().send_template(
            to=user.email,
            template_name="password_changed",
            context={"username": user.username},
        )
    except Exception:
        logger.exception("password_changed_email_failed", user_id=user.id)

    return MessageResponse(message="Contraseña restablecida correctamente")
