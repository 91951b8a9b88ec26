"""Game score routers: /api/juego1 (waste sorting) and /api/juego2 (plant-growth quiz)."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from salvambiente.auth.dependencies import get_current_claims
from salvambiente.auth.schemas import TokenClaims
from salvambiente.database import get_session
from salvambiente.db.models import PlantQuizScore, WasteSortScore
from salvambiente.games.schemas import (
    PlantQuizLeaderboardEntry,
    PlantQuizResult,
    PlantQuizSubmission,
    ScoreSavedResponse,
    WasteSortLeaderboardEntry,
    WasteSortResult,
    WasteSortSubmission,
)
from salvambiente.games.service import (
    PLANT_QUIZ_ORDER,
    WASTE_SORT_ORDER,
    get_latest_score,
    get_leaderboard,
    replace_score,
)
from salvambiente.time_utils import as_utc, utcnow

waste_sort_router = APIRouter(prefix="/api/juego1", tags=["Games"])
plant_quiz_router = APIRouter(prefix="/api/juego2", tags=["Games"])


def _waste_sort_result(row: WasteSortScore) -> WasteSortResult:
    return WasteSortResult(
        puntuacion=row.score,
        tiempo_segundos=row.time_seconds,
        eficiencia=row.efficiency,
        aciertos=row.hits,
        total_residuos=row.total_items,
        fecha_juego=as_utc(row.played_at),
    )


def _plant_quiz_result(row: PlantQuizScore) -> PlantQuizResult:
    return PlantQuizResult(
        puntuacion=row.score,
        crecimiento_final=row.final_growth,
        aciertos=row.hits,
        total_preguntas=row.total_questions,
        etapa_alcanzada=row.stage_reached,
        tiempo_juego=row.play_time,
        fecha_juego=as_utc(row.played_at),
    )


# ---------------------------------------------------------------------------
# Game 1: waste sorting
# ---------------------------------------------------------------------------


@waste_sort_router.post("/puntuacion", response_model=ScoreSavedResponse)
async def submit_waste_sort_score(
    body: WasteSortSubmission,
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_session),
) -> ScoreSavedResponse:
    """Replace the caller's waste-sorting score."""
    row = await replace_score(
        db,
        WasteSortScore,
        claims.id,
        {
            "score": body.puntuacion,
            "time_seconds": body.tiempo_segundos,
            "efficiency": body.eficiencia,
            "hits": body.aciertos,
            "total_items": body.total_residuos,
        },
        utcnow(),
    )
    return ScoreSavedResponse(id=row.id)


@waste_sort_router.get("/leaderboard", response_model=list[WasteSortLeaderboardEntry])
async def waste_sort_leaderboard(
    db: AsyncSession = Depends(get_session),
) -> list[WasteSortLeaderboardEntry]:
    """Top 10 by score, faster games first on ties."""
    rows = await get_leaderboard(db, WasteSortScore, WASTE_SORT_ORDER)
    return [
        WasteSortLeaderboardEntry(usuario=username, **_waste_sort_result(row).model_dump())
        for row, username in rows
    ]


@waste_sort_router.get("/usuario/{user_id}", response_model=WasteSortResult | None)
async def waste_sort_latest(
    user_id: int,
    db: AsyncSession = Depends(get_session),
) -> WasteSortResult | None:
    """Latest waste-sorting result for a user, or null."""
    row = await get_latest_score(db, WasteSortScore, user_id)
    return _waste_sort_result(row) if row is not None else None


# ---------------------------------------------------------------------------
# Game 2: plant-growth quiz
# ---------------------------------------------------------------------------


@plant_quiz_router.post("/puntuacion", response_model=ScoreSavedResponse)
async def submit_plant_quiz_score(
    body: PlantQuizSubmission,
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_session),
) -> ScoreSavedResponse:
    """Replace the caller's plant-quiz score."""
    row = await replace_score(
        db,
        PlantQuizScore,
        claims.id,
        {
            "score": body.puntuacion,
            "final_growth": body.crecimiento_final,
            "hits": body.aciertos,
            "total_questions": body.total_preguntas,
            "stage_reached": body.etapa_alcanzada,
            "play_time": body.tiempo_juego,
        },
        utcnow(),
    )
    return ScoreSavedResponse(id=row.id)


@plant_quiz_router.get("/leaderboard", response_model=list[PlantQuizLeaderboardEntry])
async def plant_quiz_leaderboard(
    db: AsyncSession = Depends(get_session),
) -> list[PlantQuizLeaderboardEntry]:
    """Top 10 by score, then by growth, then faster games."""
    rows = await get_leaderboard(db, PlantQuizScore, PLANT_QUIZ_ORDER)
    return [
        PlantQuizLeaderboardEntry(usuario=username, usuario_id=row.user_id, **_plant_quiz_result(row).model_dump())
        for row, username in rows
    ]


@plant_quiz_router.get("/usuario/{user_id}", response_model=PlantQuizResult | None)
async def plant_quiz_latest(
    user_id: int,
    db: AsyncSession = Depends(get_session),
) -> PlantQuizResult | None:
    """Latest plant-quiz result for a user, or null."""
    row = await get_latest_score(db, PlantQuizScore, user_id)
    return _plant_quiz_result(row) if row is not None else None
