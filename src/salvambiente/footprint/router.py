"""Footprint router: monthly eligibility, recording, history and statistics."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from salvambiente.auth.dependencies import get_current_claims
from salvambiente.auth.schemas import TokenClaims
from salvambiente.config import get_settings
from salvambiente.database import get_session
from salvambiente.footprint.policy import InvalidFootprintInput, classify_emissions, format_date, split_recycling
from salvambiente.footprint.schemas import (
    EligibilityResponse,
    FootprintDetails,
    FootprintHistoryItem,
    FootprintHistoryResponse,
    FootprintRequest,
    FootprintSavedResponse,
    FootprintStatisticsResponse,
)
from salvambiente.footprint.service import (
    MonthlyLimitReached,
    check_eligibility,
    get_history,
    get_user_statistics,
    record_footprint,
)
from salvambiente.pagination import PageParams, Pagination, page_params
from salvambiente.time_utils import as_utc, utcnow

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["Footprint"])


@router.get("/puede-calcular", response_model=EligibilityResponse, response_model_exclude_none=True)
async def can_calculate(
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_session),
) -> EligibilityResponse:
    """Tell the calculator whether this month's footprint is still open."""
    now = utcnow()
    eligibility = await check_eligibility(db, claims.id, now)
    if eligibility.allowed:
        return EligibilityResponse(puede_calcular=True, mensaje="Puedes realizar tu cálculo mensual")
    return EligibilityResponse(
        puede_calcular=False,
        mensaje=f"Ya realizaste tu cálculo este mes el {format_date(eligibility.last_record_at)}",
        dias_restantes=eligibility.days_remaining,
        proximo_calculo=format_date(eligibility.next_allowed_at),
    )


@router.post("/guardar", response_model=FootprintSavedResponse, status_code=201)
async def save_footprint(
    body: FootprintRequest,
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_session),
) -> FootprintSavedResponse:
    """Record this month's footprint for the caller."""
    try:
        footprint = await record_footprint(db, claims.id, body, utcnow())
    except MonthlyLimitReached as e:
        eligibility = e.eligibility
        previous = format_date(eligibility.last_record_at)
        raise HTTPException(
            status_code=409,
            detail={
                "error": "Ya realizaste tu cálculo mensual",
                "mensaje": f"Tu último cálculo fue el {previous}. Podrás realizar otro el próximo mes.",
                "fecha_anterior": previous,
                "dias_restantes": eligibility.days_remaining,
                "proximo_calculo": format_date(eligibility.next_allowed_at),
            },
        ) from e
    except InvalidFootprintInput as e:
        detail: dict[str, object] = {"error": str(e)}
        if e.received is not None:
            detail["recibido"] = e.received
        raise HTTPException(status_code=400, detail=detail) from e
    except SQLAlchemyError as e:
        logger.exception("footprint_save_failed", user_id=claims.id)
        detail = {"error": "Error al guardar datos"}
        if get_settings().debug:
            detail["detalle"] = str(e)
        raise HTTPException(status_code=500, detail=detail) from e

    return FootprintSavedResponse(id_huella=footprint.id)


@router.get("/historial", response_model=FootprintHistoryResponse)
async def history(
    params: PageParams = Depends(page_params),
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_session),
) -> FootprintHistoryResponse:
    """Paginated footprint history, newest first."""
    rows, total = await get_history(db, claims.id, params)
    items = []
    for row in rows:
        recorded_at = as_utc(row.created_at)
        items.append(
            FootprintHistoryItem(
                id=row.id,
                puntuacion_total=row.total_emissions,
                categoria=classify_emissions(row.total_emissions).value,
                fecha=recorded_at,
                mes=recorded_at.month,
                anio=recorded_at.year,
                detalles=FootprintDetails(
                    kilometros=row.distance_km,
                    transporte=row.transport,
                    electricidad=row.electricity_kwh,
                    energia_renovable=row.renewable,
                    reciclaje=split_recycling(row.recycling),
                ),
            )
        )
    return FootprintHistoryResponse(data=items, pagination=Pagination.build(params, total))


@router.get("/estadisticas", response_model=FootprintStatisticsResponse)
async def statistics(
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_session),
) -> FootprintStatisticsResponse:
    """Per-user footprint totals, 12-month evolution and category counts."""
    stats = await get_user_statistics(db, claims.id, utcnow())
    return FootprintStatisticsResponse.model_validate(stats)
