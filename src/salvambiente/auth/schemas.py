"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator

from salvambiente.auth.roles import Role


# ---------------------------------------------------------------------------
# Token claims
# ---------------------------------------------------------------------------


class TokenClaims(BaseModel):
    """Verified identity carried by a session token."""

    id: int
    usuario: str
    correo: str
    rol: Role
    rol_id: int | None = None

    @field_validator("rol", mode="before")
    @classmethod
    def parse_role(cls, v: Any) -> Role:
        """Missing role claims fall back to the default user role."""
        return Role.parse(v)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> TokenClaims:
        return cls.model_validate(payload)


class PublicUser(BaseModel):
    """User summary returned by login, token checks and Google registration."""

    id: int
    usuario: str
    correo: str
    rol: str


# ---------------------------------------------------------------------------
# Local credentials
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    usuario: str = Field(..., min_length=3, max_length=50)
    correo: EmailStr
    password: str = Field(..., alias="contraseña", min_length=1, max_length=128)

    @field_validator("usuario")
    @classmethod
    def strip_username(cls, v: str) -> str:
        return v.strip()

    @field_validator("correo")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class LoginRequest(BaseModel):
    usuario: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., alias="contraseña", min_length=1, max_length=128)


class LoginResponse(BaseModel):
    token: str
    usuario: PublicUser


class MessageResponse(BaseModel):
    message: str


class LogoutResponse(BaseModel):
    success: bool = True
    message: str


class VerifyTokenResponse(BaseModel):
    valido: bool = True
    usuario: PublicUser


# ---------------------------------------------------------------------------
# Google SSO completion
# ---------------------------------------------------------------------------


class CompleteGoogleRequest(BaseModel):
    temp_token: str = Field(..., min_length=1)
    usuario: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., alias="contraseña", min_length=1, max_length=128)

    @field_validator("usuario")
    @classmethod
    def strip_username(cls, v: str) -> str:
        return v.strip()


class CompleteGoogleResponse(BaseModel):
    message: str
    token: str
    usuario: PublicUser
