"""Request/response schemas and fixed vocabularies for support tickets."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from salvambiente.pagination import Pagination


class TicketStatus(str, Enum):
    PENDING = "pendiente"
    IN_PROGRESS = "en_proceso"
    RESOLVED = "resuelto"
    CLOSED = "cerrado"


class TicketPriority(str, Enum):
    LOW = "baja"
    MEDIUM = "media"
    HIGH = "alta"
    URGENT = "urgente"


# Length checks happen in the service so each failure keeps its own message.


class CreateTicketRequest(BaseModel):
    categoria_id: int | None = None
    asunto: str | None = None
    mensaje: str | None = None


class ReplyRequest(BaseModel):
    mensaje_id: int | None = None
    respuesta: str | None = None


class StatusUpdateRequest(BaseModel):
    estado: str | None = None


class PriorityUpdateRequest(BaseModel):
    prioridad: str | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class CategoryInfo(BaseModel):
    id: int
    nombre: str
    descripcion: str | None
    icono: str | None


class CategoriesResponse(BaseModel):
    success: bool = True
    categorias: list[CategoryInfo]


class TicketCreatedResponse(BaseModel):
    success: bool = True
    mensaje_id: int
    message: str = "Mensaje enviado exitosamente"


class TicketSummary(BaseModel):
    id: int
    asunto: str
    mensaje: str
    estado: str
    prioridad: str
    fecha_creacion: datetime
    fecha_actualizacion: datetime
    categoria_nombre: str
    categoria_icono: str | None


class StaffTicketSummary(TicketSummary):
    usuario_id: int
    nombre_usuario: str
    total_respuestas: int


class TicketListResponse(BaseModel):
    success: bool = True
    mensajes: list[TicketSummary]
    pagination: Pagination


class StaffTicketListResponse(BaseModel):
    success: bool = True
    mensajes: list[StaffTicketSummary]
    pagination: Pagination


class TicketDetail(TicketSummary):
    usuario_id: int
    categoria_id: int
    nombre_usuario: str


class OwnTicketDetail(TicketDetail):
    """The first staff reply, when there is one, is inlined for the user view."""

    respuesta: str | None = None
    respondido_por: str | None = None
    fecha_respuesta: datetime | None = None


class StaffTicketDetail(TicketDetail):
    correo_usuario: str


class ReplyInfo(BaseModel):
    id: int
    mensaje_id: int
    usuario_id: int | None
    respuesta: str
    es_admin: bool
    fecha_creacion: datetime
    nombre_usuario: str | None


class OwnTicketResponse(BaseModel):
    success: bool = True
    mensaje: OwnTicketDetail
    respuestas: list[ReplyInfo]


class StaffTicketResponse(BaseModel):
    success: bool = True
    mensaje: StaffTicketDetail
    respuestas: list[ReplyInfo]


class TicketStatistics(BaseModel):
    total_mensajes: int
    pendientes: int
    en_proceso: int
    resueltos: int
    cerrados: int


class StatisticsResponse(BaseModel):
    success: bool = True
    estadisticas: TicketStatistics


class ReplyCreatedResponse(BaseModel):
    success: bool = True
    respuesta_id: int
    message: str = "Respuesta enviada exitosamente"


class UpdatedResponse(BaseModel):
    success: bool = True
    message: str
