"""Authentication router: local credentials and Google sign-in under /api."""

from __future__ import annotations

from urllib.parse import urlencode

import jwt
import structlog
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from salvambiente.auth.dependencies import get_current_claims
from salvambiente.auth.google import GoogleOAuthClient, GoogleOAuthError, get_google_client
from salvambiente.auth.jwt import GOOGLE_PENDING, OAUTH_STATE, create_pending_token, create_state_token, verify_token
from salvambiente.auth.schemas import (
    CompleteGoogleRequest,
    CompleteGoogleResponse,
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    MessageResponse,
    PublicUser,
    RegisterRequest,
    TokenClaims,
    VerifyTokenResponse,
)
from salvambiente.auth.service import (
    UserAlreadyExistsError,
    authenticate_user,
    complete_google_registration,
    create_user,
    get_user_by_email,
    issue_session_token,
    public_user,
)
from salvambiente.config import get_settings
from salvambiente.database import get_session

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["Authentication"])


# ---------------------------------------------------------------------------
# Local credentials
# ---------------------------------------------------------------------------


@router.post("/registro", response_model=MessageResponse, status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Register a user with handle, email and password. No token is issued."""
    try:
        await create_user(db, body.usuario, body.correo, body.password)
        await db.commit()
    except UserAlreadyExistsError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same handle/email
        await db.rollback()
        raise HTTPException(status_code=400, detail="El usuario o correo ya existe") from e
    return MessageResponse(message="Usuario registrado exitosamente")


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> LoginResponse:
    """Authenticate with handle + password."""
    user = await authenticate_user(db, body.usuario, body.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Credenciales inválidas")
    logger.info("user_logged_in", user_id=user.id, method="local")
    return LoginResponse(token=issue_session_token(user), usuario=public_user(user))


@router.post("/logout", response_model=LogoutResponse)
async def logout(claims: TokenClaims = Depends(get_current_claims)) -> LogoutResponse:
    """Acknowledge a logout. Tokens stay valid until they expire."""
    logger.info("user_logged_out", user_id=claims.id)
    return LogoutResponse(message="Sesión cerrada exitosamente")


@router.get("/verificar-token", response_model=VerifyTokenResponse)
async def check_token(claims: TokenClaims = Depends(get_current_claims)) -> VerifyTokenResponse:
    """Echo the identity carried by a valid token."""
    return VerifyTokenResponse(
        usuario=PublicUser(id=claims.id, usuario=claims.usuario, correo=claims.correo, rol=claims.rol.value),
    )


# ---------------------------------------------------------------------------
# Google sign-in
# ---------------------------------------------------------------------------


@router.get("/auth/google")
async def google_login(google: GoogleOAuthClient = Depends(get_google_client)) -> RedirectResponse:
    """Send the browser to Google's consent screen."""
    return RedirectResponse(google.authorization_url(create_state_token()), status_code=302)


@router.get("/auth/google/callback")
async def google_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    db: AsyncSession = Depends(get_session),
    google: GoogleOAuthClient = Depends(get_google_client),
) -> RedirectResponse:
    """
    Finish the Google redirect.

    Known emails get a session token right away; unknown ones get a pending
    token and are sent to pick a handle and password. Every failure lands on
    the frontend's fallback page instead of returning JSON.
    """
    frontend = get_settings().frontend_base_url.rstrip("/")
    fallback = RedirectResponse(f"{frontend}/", status_code=302)

    if error or not code or not state:
        logger.info("google_callback_rejected", error=error, has_code=bool(code))
        return fallback
    try:
        verify_token(state, expected_type=OAUTH_STATE)
    except jwt.InvalidTokenError:
        logger.info("google_callback_bad_state")
        return fallback
    try:
        identity = await google.fetch_identity(code)
    except GoogleOAuthError:
        return fallback

    try:
        user = await get_user_by_email(db, identity.email)
        token = issue_session_token(user) if user is not None else None
    except (SQLAlchemyError, ValueError):
        logger.exception("google_callback_failed")
        return fallback
    if user is not None:
        logger.info("user_logged_in", user_id=user.id, method="google")
        query = urlencode({"token": token})
        return RedirectResponse(f"{frontend}/login-google?{query}", status_code=302)

    query = urlencode({"temp_token": create_pending_token(identity.email, identity.name)})
    return RedirectResponse(f"{frontend}/completar-registro-google?{query}", status_code=302)


@router.post("/completar-registro-google", response_model=CompleteGoogleResponse, status_code=201)
async def complete_google(
    body: CompleteGoogleRequest,
    db: AsyncSession = Depends(get_session),
) -> CompleteGoogleResponse:
    """Create the local account for a Google user and log them in."""
    try:
        pending = verify_token(body.temp_token, expected_type=GOOGLE_PENDING)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=400, detail="Token inválido o expirado") from e

    try:
        user = await complete_google_registration(db, pending, body.usuario, body.password)
        await db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except IntegrityError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail="El usuario o correo ya existe") from e

    return CompleteGoogleResponse(
        message="Registro completado exitosamente",
        token=issue_session_token(user),
        usuario=public_user(user),
    )
