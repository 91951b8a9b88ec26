"""FastAPI authentication and authorization dependencies."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import jwt
import structlog
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError

from salvambiente.auth.jwt import ACCESS, verify_token
from salvambiente.auth.roles import ADMIN_ONLY, MODERATOR_OR_ADMIN, Role
from salvambiente.auth.schemas import TokenClaims

logger = structlog.get_logger()

_bearer = HTTPBearer(auto_error=False)


async def get_current_claims(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> TokenClaims:
    """
    Verify the bearer token and return its claims.

    Missing token -> 401, expired -> 401 with a distinct message, anything
    else unverifiable -> 403.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Token de acceso requerido")
    try:
        payload = verify_token(credentials.credentials, expected_type=ACCESS)
    except jwt.ExpiredSignatureError as e:
        raise HTTPException(status_code=401, detail="Token expirado") from e
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=403, detail="Token inválido") from e

    try:
        return TokenClaims.from_payload(payload)
    except ValidationError as e:
        logger.warning("token_claims_rejected", errors=e.errors(include_url=False))
        raise HTTPException(status_code=403, detail="Token inválido") from e


def require_roles(
    allowed: frozenset[Role],
    message: str,
) -> Callable[..., Awaitable[TokenClaims]]:
    """Build a dependency that admits only callers whose role is in `allowed`."""

    async def _guard(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
        if claims.rol not in allowed:
            logger.info("access_denied", user_id=claims.id, role=claims.rol.value)
            raise HTTPException(
                status_code=403,
                detail={
                    "error": message,
                    "rolRequerido": sorted(role.value for role in allowed),
                    "tuRol": claims.rol.value,
                },
            )
        return claims

    return _guard


require_admin = require_roles(ADMIN_ONLY, "Acceso denegado. Se requieren permisos de administrador")
require_moderator_or_admin = require_roles(
    MODERATOR_OR_ADMIN,
    "Acceso denegado. Se requieren permisos de moderador o administrador",
)
