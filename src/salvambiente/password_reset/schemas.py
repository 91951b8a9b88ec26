"""Request/response schemas for the three-step password reset."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field, field_validator


class ResetRequest(BaseModel):
    correo: EmailStr

    @field_validator("correo")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class VerifyCodeRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=16)


class VerifyCodeResponse(BaseModel):
    valido: bool = True


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=16)
    new_password: str = Field(..., alias="nuevaContraseña", min_length=1)


class MessageResponse(BaseModel):
    message: str
