"""
Footprint recording, history and per-user statistics.

Recording is gated to one calculation per user per calendar month. The check
runs again right before the insert, and the unique (user, year, month)
constraint on the profile link rejects whichever of two racing submissions
commits second.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError

from salvambiente.db.models import Footprint, UserFootprint
from salvambiente.footprint.policy import (
    HIGH_EMISSIONS_FROM,
    LOW_EMISSIONS_BELOW,
    RENEWABLE_VALUES,
    Eligibility,
    EmissionCategory,
    InvalidFootprintInput,
    blocked_until_next_month,
    normalize_recycling,
    parse_number,
)
from salvambiente.time_utils import as_utc

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from salvambiente.footprint.schemas import FootprintRequest
    from salvambiente.pagination import PageParams

logger = structlog.get_logger()


class MonthlyLimitReached(Exception):
    """Raised when the user already has a footprint for the current month."""

    def __init__(self, eligibility: Eligibility) -> None:
        super().__init__("Ya realizaste tu cálculo mensual")
        self.eligibility = eligibility


def _user_footprints(user_id: int):  # noqa: ANN202
    return (
        select(Footprint)
        .join(UserFootprint, UserFootprint.footprint_id == Footprint.id)
        .where(UserFootprint.user_id == user_id)
    )


def category_expression():  # noqa: ANN201
    """SQL CASE mirroring classify_emissions, for grouping in the database."""
    return case(
        (Footprint.total_emissions < LOW_EMISSIONS_BELOW, EmissionCategory.LOW.value),
        (Footprint.total_emissions < HIGH_EMISSIONS_FROM, EmissionCategory.MEDIUM.value),
        else_=EmissionCategory.HIGH.value,
    )


# ---------------------------------------------------------------------------
# Monthly gating
# ---------------------------------------------------------------------------


async def latest_record_this_month(db: AsyncSession, user_id: int, now: datetime) -> Footprint | None:
    """Most recent footprint of the user inside the calendar month of `now`."""
    now = as_utc(now)
    result = await db.execute(
        _user_footprints(user_id)
        .where(UserFootprint.period_year == now.year, UserFootprint.period_month == now.month)
        .order_by(Footprint.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def check_eligibility(db: AsyncSession, user_id: int, now: datetime) -> Eligibility:
    """Decide whether the user may record a footprint at `now`."""
    latest = await latest_record_this_month(db, user_id, now)
    if latest is None:
        return Eligibility(allowed=True)
    return blocked_until_next_month(latest.created_at, now)


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


async def record_footprint(
    db: AsyncSession,
    user_id: int,
    payload: FootprintRequest,
    now: datetime,
) -> Footprint:
    """
    Store a footprint and its profile link in one transaction.

    Raises:
        MonthlyLimitReached: If the user already recorded one this month.
        InvalidFootprintInput: If a number does not parse or the renewable flag is not 'si'/'no'.
        SQLAlchemyError: If the insert fails for another reason (rolled back).
    """
    eligibility = await check_eligibility(db, user_id, now)
    if not eligibility.allowed:
        raise MonthlyLimitReached(eligibility)

    distance = parse_number(payload.kilometros)
    electricity = parse_number(payload.electricidad)
    total = parse_number(payload.total_emisiones)
    if distance is None or electricity is None or total is None:
        msg = "Datos numéricos inválidos"
        raise InvalidFootprintInput(
            msg,
            received={
                "kilometros": payload.kilometros,
                "electricidad": payload.electricidad,
                "total_emisiones": payload.total_emisiones,
            },
        )
    if payload.energia_renovable not in RENEWABLE_VALUES:
        msg = "energiaRenovable debe ser 'si' o 'no'"
        raise InvalidFootprintInput(msg)

    now = as_utc(now)
    footprint = Footprint(
        distance_km=distance,
        transport=payload.transporte,
        electricity_kwh=electricity,
        renewable=payload.energia_renovable,
        recycling=normalize_recycling(payload.reciclaje),
        total_emissions=total,
        created_at=now,
    )
    try:
        db.add(footprint)
        await db.flush()
        db.add(
            UserFootprint(
                user_id=user_id,
                footprint_id=footprint.id,
                period_year=now.year,
                period_month=now.month,
            )
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        # A concurrent submission for the same month committed first
        latest = await latest_record_this_month(db, user_id, now)
        if latest is None:
            raise
        raise MonthlyLimitReached(blocked_until_next_month(latest.created_at, now)) from None
    except Exception:
        await db.rollback()
        raise

    logger.info("footprint_recorded", user_id=user_id, footprint_id=footprint.id, total=total)
    return footprint


# ---------------------------------------------------------------------------
# History and statistics
# ---------------------------------------------------------------------------


async def get_history(db: AsyncSession, user_id: int, params: PageParams) -> tuple[list[Footprint], int]:
    """Page through the user's footprints, newest first. Returns (rows, total)."""
    total = (
        await db.execute(
            select(func.count()).select_from(UserFootprint).where(UserFootprint.user_id == user_id)
        )
    ).scalar_one()
    rows = (
        await db.execute(
            _user_footprints(user_id)
            .order_by(Footprint.created_at.desc(), Footprint.id.desc())
            .offset(params.offset)
            .limit(params.limit)
        )
    ).scalars().all()
    return list(rows), total


async def get_user_statistics(db: AsyncSession, user_id: int, now: datetime) -> dict[str, Any]:
    """Totals, a 12-month evolution and the category distribution for one user."""
    summary = (
        await db.execute(
            select(
                func.count(Footprint.id),
                func.avg(Footprint.total_emissions),
                func.min(Footprint.total_emissions),
                func.max(Footprint.total_emissions),
                func.min(Footprint.created_at),
                func.max(Footprint.created_at),
            )
            .join(UserFootprint, UserFootprint.footprint_id == Footprint.id)
            .where(UserFootprint.user_id == user_id)
        )
    ).one()
    count, average, lowest, highest, first_at, last_at = summary

    since = as_utc(now) - timedelta(days=365)
    evolution = (
        await db.execute(
            _user_footprints(user_id).where(Footprint.created_at >= since).order_by(Footprint.created_at.asc())
        )
    ).scalars().all()

    category = category_expression()
    distribution = {"baja": 0, "media": 0, "alta": 0}
    grouped = await db.execute(
        select(category, func.count(Footprint.id))
        .join(UserFootprint, UserFootprint.footprint_id == Footprint.id)
        .where(UserFootprint.user_id == user_id)
        .group_by(category)
    )
    for name, amount in grouped.all():
        distribution[name.lower()] = amount

    return {
        "estadisticas": {
            "total_calculos": count,
            "promedio_emisiones": math.floor((average or 0) + 0.5),
            "menor_emisiones": lowest,
            "mayor_emisiones": highest,
            "primer_calculo": _parse_aggregate_datetime(first_at),
            "ultimo_calculo": _parse_aggregate_datetime(last_at),
            "tiene_calculos": count > 0,
        },
        "evolucion_mensual": [
            {
                "anio": as_utc(row.created_at).year,
                "mes": as_utc(row.created_at).month,
                "emisiones": row.total_emissions,
                "fecha": as_utc(row.created_at),
            }
            for row in evolution
        ],
        "distribucion_categorias": distribution,
    }


def _parse_aggregate_datetime(value: datetime | str | None) -> datetime | None:
    # SQLite hands MIN/MAX over timestamps back as text
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return as_utc(value)
