"""
Aggregate statistics for the moderator/admin dashboard.

Month and day buckets are built with EXTRACT so the same queries run on
PostgreSQL and SQLite.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import extract, func, select

from salvambiente.db.models import Footprint, Role, User, UserFootprint, WasteSortScore
from salvambiente.time_utils import add_months, as_utc, month_key, month_start

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

TREND_MONTHS = 6
RECENT_DAYS = 7
TOP_PLAYERS = 5
TOP_SCORES = 10
ACTIVITY_PER_SOURCE = 5
ACTIVITY_SIZE = 10


def _fixed2(value: float | None) -> str:
    return f"{float(value or 0):.2f}"


def _window_start(now: datetime, months: int) -> datetime:
    """Day 1 of the oldest month in a window of `months` calendar months ending now."""
    now = as_utc(now)
    return month_start(*add_months(now.year, now.month, -(months - 1)))


async def _count(db: AsyncSession, stmt: Any) -> int:
    return (await db.execute(stmt)).scalar_one()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def users_by_role(db: AsyncSession) -> list[dict[str, Any]]:
    """Every role with its user count, including roles nobody holds."""
    result = await db.execute(
        select(Role.name, func.count(User.id))
        .select_from(Role)
        .outerjoin(User, User.role_id == Role.id)
        .group_by(Role.id, Role.name)
        .order_by(Role.id)
    )
    return [{"rol": name, "cantidad": amount} for name, amount in result.all()]


async def users_by_month(db: AsyncSession, now: datetime) -> list[dict[str, Any]]:
    """Registrations per month over the last six months."""
    year = extract("year", User.created_at)
    month = extract("month", User.created_at)
    result = await db.execute(
        select(year, month, func.count(User.id))
        .where(User.created_at >= _window_start(now, TREND_MONTHS))
        .group_by(year, month)
        .order_by(year, month)
    )
    return [{"mes": month_key(int(y), int(m)), "cantidad": amount} for y, m, amount in result.all()]


# ---------------------------------------------------------------------------
# Footprints
# ---------------------------------------------------------------------------


async def footprints_by_transport(db: AsyncSession) -> list[dict[str, Any]]:
    average = func.avg(Footprint.total_emissions)
    result = await db.execute(
        select(Footprint.transport, func.count(Footprint.id), average)
        .group_by(Footprint.transport)
        .order_by(average.desc())
    )
    return [
        {"transporte": transport, "cantidad": amount, "promedio_emisiones": float(avg or 0)}
        for transport, amount, avg in result.all()
    ]


async def footprint_trend(db: AsyncSession, now: datetime) -> list[dict[str, Any]]:
    """Average emissions per month over the last six months."""
    year = extract("year", Footprint.created_at)
    month = extract("month", Footprint.created_at)
    result = await db.execute(
        select(year, month, func.avg(Footprint.total_emissions), func.count(Footprint.id))
        .where(Footprint.created_at >= _window_start(now, TREND_MONTHS))
        .group_by(year, month)
        .order_by(year, month)
    )
    return [
        {"mes": month_key(int(y), int(m)), "promedio_emisiones": float(avg or 0), "registros": amount}
        for y, m, avg, amount in result.all()
    ]


async def footprints_by_renewable(db: AsyncSession) -> list[dict[str, Any]]:
    result = await db.execute(
        select(Footprint.renewable, func.count(Footprint.id), func.avg(Footprint.total_emissions))
        .group_by(Footprint.renewable)
        .order_by(Footprint.renewable)
    )
    return [
        {"renovable": renewable, "cantidad": amount, "promedio_emisiones": float(avg or 0)}
        for renewable, amount, avg in result.all()
    ]


# ---------------------------------------------------------------------------
# Games (waste sorting)
# ---------------------------------------------------------------------------


async def game_statistics(db: AsyncSession) -> dict[str, Any]:
    row = (
        await db.execute(
            select(
                func.count(WasteSortScore.id),
                func.avg(WasteSortScore.score),
                func.max(WasteSortScore.score),
                func.avg(WasteSortScore.time_seconds),
                func.avg(WasteSortScore.efficiency),
                func.sum(WasteSortScore.hits),
                func.sum(WasteSortScore.total_items),
            )
        )
    ).one()
    total, avg_score, max_score, avg_time, avg_efficiency, hits, items = row
    return {
        "total_partidas": total,
        "puntuacion_promedio": float(avg_score) if avg_score is not None else None,
        "puntuacion_maxima": max_score,
        "tiempo_promedio": float(avg_time) if avg_time is not None else None,
        "eficiencia_promedio": float(avg_efficiency) if avg_efficiency is not None else None,
        "total_aciertos": hits or 0,
        "total_residuos": items or 0,
    }


async def top_scores(db: AsyncSession) -> list[dict[str, Any]]:
    result = await db.execute(
        select(User.username, WasteSortScore)
        .join(User, User.id == WasteSortScore.user_id)
        .order_by(WasteSortScore.score.desc(), WasteSortScore.id.asc())
        .limit(TOP_SCORES)
    )
    return [
        {
            "usuario": username,
            "puntuacion": row.score,
            "tiempo_segundos": row.time_seconds,
            "eficiencia": row.efficiency,
            "fecha_juego": as_utc(row.played_at),
        }
        for username, row in result.all()
    ]


async def games_by_day(db: AsyncSession, now: datetime) -> list[dict[str, Any]]:
    """Games played per day over the last seven days."""
    year = extract("year", WasteSortScore.played_at)
    month = extract("month", WasteSortScore.played_at)
    day = extract("day", WasteSortScore.played_at)
    result = await db.execute(
        select(year, month, day, func.count(WasteSortScore.id))
        .where(WasteSortScore.played_at >= as_utc(now) - timedelta(days=RECENT_DAYS))
        .group_by(year, month, day)
        .order_by(year, month, day)
    )
    return [
        {"dia": f"{int(y):04d}-{int(m):02d}-{int(d):02d}", "partidas": amount}
        for y, m, d, amount in result.all()
    ]


# ---------------------------------------------------------------------------
# Summary and activity
# ---------------------------------------------------------------------------


async def get_summary(db: AsyncSession, now: datetime) -> dict[str, Any]:
    """Headline numbers for users, footprints and games."""
    total_users = await _count(db, select(func.count(User.id)))
    recent_users = await _count(
        db, select(func.count(User.id)).where(User.created_at >= as_utc(now) - timedelta(days=RECENT_DAYS))
    )
    total_footprints = await _count(db, select(func.count(Footprint.id)))
    avg_emissions = (await db.execute(select(func.avg(Footprint.total_emissions)))).scalar_one()
    total_games = await _count(db, select(func.count(WasteSortScore.id)))
    avg_score = (await db.execute(select(func.avg(WasteSortScore.score)))).scalar_one()

    games_played = func.count(WasteSortScore.id)
    top_players = await db.execute(
        select(User.username, games_played, func.avg(WasteSortScore.score))
        .join(WasteSortScore, WasteSortScore.user_id == User.id)
        .group_by(User.id, User.username)
        .order_by(games_played.desc(), User.id.asc())
        .limit(TOP_PLAYERS)
    )

    return {
        "usuarios": {
            "total": total_users,
            "recientes": recent_users,
            "porRol": await users_by_role(db),
        },
        "huellaCarbono": {
            "total": total_footprints,
            "promedioEmisiones": _fixed2(avg_emissions),
        },
        "juegos": {
            "totalPartidas": total_games,
            "promedioPuntuacion": _fixed2(avg_score),
            "topJugadores": [
                {"usuario": username, "partidas": played, "promedio": float(avg or 0)}
                for username, played, avg in top_players.all()
            ],
        },
    }


async def get_recent_activity(db: AsyncSession) -> list[dict[str, Any]]:
    """Newest registrations, footprints and games merged into one feed."""
    users = await db.execute(select(User).order_by(User.created_at.desc()).limit(ACTIVITY_PER_SOURCE))
    footprints = await db.execute(
        select(Footprint, User.username)
        .join(UserFootprint, UserFootprint.footprint_id == Footprint.id)
        .join(User, User.id == UserFootprint.user_id)
        .order_by(Footprint.created_at.desc())
        .limit(ACTIVITY_PER_SOURCE)
    )
    games = await db.execute(
        select(WasteSortScore, User.username)
        .join(User, User.id == WasteSortScore.user_id)
        .order_by(WasteSortScore.played_at.desc())
        .limit(ACTIVITY_PER_SOURCE)
    )

    activity: list[dict[str, Any]] = [
        {"id": user.id, "usuario": user.username, "correo": user.email, "fecha": as_utc(user.created_at), "tipo": "registro"}
        for user in users.scalars().all()
    ]
    activity.extend(
        {
            "id": footprint.id,
            "usuario": username,
            "total_emisiones": footprint.total_emissions,
            "fecha": as_utc(footprint.created_at),
            "tipo": "huella",
        }
        for footprint, username in footprints.all()
    )
    activity.extend(
        {"id": game.id, "usuario": username, "puntuacion": game.score, "fecha": as_utc(game.played_at), "tipo": "juego"}
        for game, username in games.all()
    )
    activity.sort(key=lambda item: item["fecha"], reverse=True)
    return activity[:ACTIVITY_SIZE]
