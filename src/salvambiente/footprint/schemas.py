"""Request/response schemas for footprint endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from salvambiente.pagination import Pagination

_camel = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


class FootprintRequest(BaseModel):
    """Raw calculator output. Numbers may arrive as strings and are parsed by the service."""

    kilometros: Any = None
    transporte: str = Field(..., min_length=1, max_length=50)
    electricidad: Any = None
    energia_renovable: str | None = Field(None, alias="energiaRenovable")
    reciclaje: list[str] | str | None = None
    total_emisiones: Any = None


class EligibilityResponse(BaseModel):
    puede_calcular: bool
    mensaje: str
    dias_restantes: int | None = None
    proximo_calculo: str | None = None


class FootprintSavedResponse(BaseModel):
    success: bool = True
    id_huella: int
    mensaje: str = "Cálculo guardado correctamente"


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class FootprintDetails(BaseModel):
    model_config = _camel

    kilometros: float
    transporte: str
    electricidad: float
    energia_renovable: str
    reciclaje: list[str]


class FootprintHistoryItem(BaseModel):
    model_config = _camel

    id: int
    puntuacion_total: float
    categoria: str
    fecha: datetime
    mes: int
    anio: int
    detalles: FootprintDetails


class FootprintHistoryResponse(BaseModel):
    success: bool = True
    data: list[FootprintHistoryItem]
    pagination: Pagination


# ---------------------------------------------------------------------------
# Per-user statistics
# ---------------------------------------------------------------------------


class FootprintSummary(BaseModel):
    model_config = _camel

    total_calculos: int
    promedio_emisiones: int
    menor_emisiones: float | None
    mayor_emisiones: float | None
    primer_calculo: datetime | None
    ultimo_calculo: datetime | None
    tiene_calculos: bool


class MonthlyEmission(BaseModel):
    anio: int
    mes: int
    emisiones: float
    fecha: datetime


class CategoryDistribution(BaseModel):
    baja: int = 0
    media: int = 0
    alta: int = 0


class FootprintStatisticsResponse(BaseModel):
    model_config = _camel

    success: bool = True
    estadisticas: FootprintSummary
    evolucion_mensual: list[MonthlyEmission]
    distribucion_categorias: CategoryDistribution
