"""Request/response schemas for the two game score tables."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ScoreSavedResponse(BaseModel):
    success: bool = True
    message: str = "Puntuación guardada correctamente"
    id: int


# ---------------------------------------------------------------------------
# Game 1: waste sorting
# ---------------------------------------------------------------------------


class WasteSortSubmission(BaseModel):
    puntuacion: int = Field(..., ge=0)
    tiempo_segundos: int = Field(..., ge=0)
    eficiencia: float = Field(..., ge=0)
    aciertos: int = Field(..., ge=0)
    total_residuos: int = Field(..., ge=0)


class WasteSortResult(BaseModel):
    puntuacion: int
    tiempo_segundos: int
    eficiencia: float
    aciertos: int
    total_residuos: int
    fecha_juego: datetime


class WasteSortLeaderboardEntry(WasteSortResult):
    usuario: str


# ---------------------------------------------------------------------------
# Game 2: plant-growth quiz
# ---------------------------------------------------------------------------


class PlantQuizSubmission(BaseModel):
    puntuacion: int = Field(..., ge=0)
    crecimiento_final: int = Field(..., ge=0)
    aciertos: int = Field(..., ge=0)
    total_preguntas: int = Field(..., ge=0)
    etapa_alcanzada: int = Field(..., ge=0)
    tiempo_juego: int = Field(..., ge=0)


class PlantQuizResult(BaseModel):
    puntuacion: int
    crecimiento_final: int
    aciertos: int
    total_preguntas: int
    etapa_alcanzada: int
    tiempo_juego: int
    fecha_juego: datetime


class PlantQuizLeaderboardEntry(PlantQuizResult):
    usuario: str
    usuario_id: int
