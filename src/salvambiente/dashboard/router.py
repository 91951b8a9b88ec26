"""Dashboard endpoints: aggregate statistics for moderators and admins."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from salvambiente.auth.dependencies import require_moderator_or_admin
from salvambiente.dashboard.service import (
    footprint_trend,
    footprints_by_renewable,
    footprints_by_transport,
    game_statistics,
    games_by_day,
    get_recent_activity,
    get_summary,
    top_scores,
    users_by_month,
    users_by_role,
)
from salvambiente.database import get_session
from salvambiente.time_utils import utcnow

router = APIRouter(
    prefix="/api/dashboard",
    tags=["Dashboard"],
    dependencies=[Depends(require_moderator_or_admin)],
)


@router.get("/resumen")
async def summary(db: AsyncSession = Depends(get_session)) -> dict:
    """Headline counts and averages."""
    return await get_summary(db, utcnow())


@router.get("/usuarios/por-mes")
async def registrations_per_month(db: AsyncSession = Depends(get_session)) -> list[dict]:
    return await users_by_month(db, utcnow())


@router.get("/usuarios/por-rol")
async def registrations_per_role(db: AsyncSession = Depends(get_session)) -> list[dict]:
    return await users_by_role(db)


@router.get("/huella/por-transporte")
async def emissions_per_transport(db: AsyncSession = Depends(get_session)) -> list[dict]:
    return await footprints_by_transport(db)


@router.get("/huella/tendencia")
async def emissions_trend(db: AsyncSession = Depends(get_session)) -> list[dict]:
    """Monthly average emissions over the last six months."""
    return await footprint_trend(db, utcnow())


@router.get("/huella/energia-renovable")
async def emissions_per_renewable(db: AsyncSession = Depends(get_session)) -> list[dict]:
    return await footprints_by_renewable(db)


@router.get("/juegos/estadisticas")
async def waste_sort_statistics(db: AsyncSession = Depends(get_session)) -> dict:
    return await game_statistics(db)


@router.get("/juegos/top-puntuaciones")
async def waste_sort_top_scores(db: AsyncSession = Depends(get_session)) -> list[dict]:
    return await top_scores(db)


@router.get("/juegos/por-dia")
async def waste_sort_games_per_day(db: AsyncSession = Depends(get_session)) -> list[dict]:
    """Games played per day over the last week."""
    return await games_by_day(db, utcnow())


@router.get("/actividad/reciente")
async def recent_activity(db: AsyncSession = Depends(get_session)) -> list[dict]:
    """Latest registrations, footprints and games, newest first."""
    return await get_recent_activity(db)
