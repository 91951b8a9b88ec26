"""Request/response schemas for the caller's own profile."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class Profile(BaseModel):
    id: int
    usuario: str
    correo: str
    fecha_creacion: datetime


class ProfileResponse(BaseModel):
    user: Profile


class ProfileUpdateRequest(BaseModel):
    usuario: str = Field(..., min_length=3, max_length=50)

    @field_validator("usuario")
    @classmethod
    def strip_username(cls, v: str) -> str:
        return v.strip()


class ProfileUpdateResponse(BaseModel):
    message: str = "Perfil actualizado exitosamente"
    user: Profile


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., alias="currentPassword", min_length=1, max_length=128)
    new_password: str = Field(..., alias="newPassword", min_length=1)


class MessageResponse(BaseModel):
    message: str
