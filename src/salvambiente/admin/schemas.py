"""Request/response schemas for role administration."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class AdminUser(BaseModel):
    id: int
    usuario: str
    correo: str
    rol: str | None
    fecha_creacion: datetime


class RoleInfo(BaseModel):
    id: int
    nombre: str
    descripcion: str | None


class ChangeRoleRequest(BaseModel):
    rol_id: int


class ChangedUser(BaseModel):
    id: int
    usuario: str
    correo: str
    rol: str | None


class ChangeRoleResponse(BaseModel):
    message: str = "Rol actualizado exitosamente"
    usuario: ChangedUser


class MessageResponse(BaseModel):
    message: str
