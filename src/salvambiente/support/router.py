"""Support ticket endpoints: users open and read their tickets, staff triage them."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from salvambiente.auth.dependencies import get_current_claims, require_moderator_or_admin
from salvambiente.auth.schemas import TokenClaims
from salvambiente.database import get_session
from salvambiente.pagination import PageParams, Pagination, page_params
from salvambiente.support.schemas import (
    CategoriesResponse,
    CategoryInfo,
    CreateTicketRequest,
    OwnTicketDetail,
    OwnTicketResponse,
    PriorityUpdateRequest,
    ReplyCreatedResponse,
    ReplyInfo,
    ReplyRequest,
    StaffTicketDetail,
    StaffTicketListResponse,
    StaffTicketResponse,
    StaffTicketSummary,
    StatisticsResponse,
    StatusUpdateRequest,
    TicketCreatedResponse,
    TicketListResponse,
    TicketStatistics,
    TicketSummary,
    UpdatedResponse,
)
from salvambiente.support.service import (
    TicketNotFoundError,
    TicketValidationError,
    add_staff_reply,
    create_ticket,
    get_replies,
    get_ticket,
    list_categories,
    list_tickets,
    reply_detail,
    set_priority,
    set_status,
    ticket_detail,
    ticket_statistics,
    ticket_summary,
)
from salvambiente.time_utils import as_utc, utcnow

router = APIRouter(prefix="/api/soporte", tags=["Support"])


# ---------------------------------------------------------------------------
# User endpoints
# ---------------------------------------------------------------------------


@router.get("/categorias", response_model=CategoriesResponse)
async def categories(db: AsyncSession = Depends(get_session)) -> CategoriesResponse:
    """Active ticket categories. Public."""
    rows = await list_categories(db)
    return CategoriesResponse(
        categorias=[CategoryInfo(id=c.id, nombre=c.name, descripcion=c.description, icono=c.icon) for c in rows]
    )


@router.post("/mensaje", response_model=TicketCreatedResponse, status_code=201)
async def create(
    body: CreateTicketRequest,
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_session),
) -> TicketCreatedResponse:
    try:
        ticket = await create_ticket(db, claims.id, body.categoria_id, body.asunto, body.mensaje, utcnow())
    except TicketValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return TicketCreatedResponse(mensaje_id=ticket.id)


@router.get("/mis-mensajes", response_model=TicketListResponse)
async def my_tickets(
    estado: str | None = Query(None),
    params: PageParams = Depends(page_params),
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_session),
) -> TicketListResponse:
    rows, total = await list_tickets(db, params, user_id=claims.id, status=estado)
    return TicketListResponse(
        mensajes=[TicketSummary(**ticket_summary(ticket)) for ticket, _ in rows],
        pagination=Pagination.build(params, total),
    )


@router.get("/mensaje/{ticket_id}", response_model=OwnTicketResponse)
async def my_ticket(
    ticket_id: int,
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_session),
) -> OwnTicketResponse:
    """One of the caller's tickets with its replies. The first staff reply is also inlined."""
    try:
        ticket = await get_ticket(db, ticket_id, user_id=claims.id)
    except TicketNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    replies = await get_replies(db, ticket.id)

    detail = OwnTicketDetail(**ticket_detail(ticket))
    first_staff = next((r for r in replies if r.is_admin), None)
    if first_staff is not None:
        detail.respuesta = first_staff.body
        detail.respondido_por = first_staff.author.username if first_staff.author is not None else None
        detail.fecha_respuesta = as_utc(first_staff.created_at)
    return OwnTicketResponse(mensaje=detail, respuestas=[ReplyInfo(**reply_detail(r)) for r in replies])


@router.get("/estadisticas", response_model=StatisticsResponse)
async def my_statistics(
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_session),
) -> StatisticsResponse:
    stats = await ticket_statistics(db, user_id=claims.id)
    return StatisticsResponse(estadisticas=TicketStatistics(**stats))


# ---------------------------------------------------------------------------
# Staff endpoints
# ---------------------------------------------------------------------------


@router.get("/admin/estadisticas", response_model=StatisticsResponse)
async def all_statistics(
    _staff: TokenClaims = Depends(require_moderator_or_admin),
    db: AsyncSession = Depends(get_session),
) -> StatisticsResponse:
    return StatisticsResponse(estadisticas=TicketStatistics(**await ticket_statistics(db)))


@router.get("/admin/mensajes", response_model=StaffTicketListResponse)
async def all_tickets(
    estado: str | None = Query(None),
    prioridad: str | None = Query(None),
    categoria: int | None = Query(None),
    params: PageParams = Depends(page_params),
    _staff: TokenClaims = Depends(require_moderator_or_admin),
    db: AsyncSession = Depends(get_session),
) -> StaffTicketListResponse:
    """Every ticket, filterable by status, priority and category."""
    rows, total = await list_tickets(db, params, status=estado, priority=prioridad, category_id=categoria)
    return StaffTicketListResponse(
        mensajes=[
            StaffTicketSummary(
                **ticket_summary(ticket),
                usuario_id=ticket.user_id,
                nombre_usuario=ticket.author.username,
                total_respuestas=reply_count,
            )
            for ticket, reply_count in rows
        ],
        pagination=Pagination.build(params, total),
    )


@router.get("/admin/mensaje/{ticket_id}", response_model=StaffTicketResponse)
async def any_ticket(
    ticket_id: int,
    _staff: TokenClaims = Depends(require_moderator_or_admin),
    db: AsyncSession = Depends(get_session),
) -> StaffTicketResponse:
    try:
        ticket = await get_ticket(db, ticket_id)
    except TicketNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    replies = await get_replies(db, ticket.id)
    return StaffTicketResponse(
        mensaje=StaffTicketDetail(**ticket_detail(ticket), correo_usuario=ticket.author.email),
        respuestas=[ReplyInfo(**reply_detail(r)) for r in replies],
    )


@router.post("/admin/respuesta", response_model=ReplyCreatedResponse, status_code=201)
async def reply(
    body: ReplyRequest,
    staff: TokenClaims = Depends(require_moderator_or_admin),
    db: AsyncSession = Depends(get_session),
) -> ReplyCreatedResponse:
    try:
        created = await add_staff_reply(db, body.mensaje_id, staff.id, body.respuesta, utcnow())
    except TicketValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except TicketNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ReplyCreatedResponse(respuesta_id=created.id)


@router.patch("/admin/mensaje/{ticket_id}/estado", response_model=UpdatedResponse)
async def change_status(
    ticket_id: int,
    body: StatusUpdateRequest,
    _staff: TokenClaims = Depends(require_moderator_or_admin),
    db: AsyncSession = Depends(get_session),
) -> UpdatedResponse:
    try:
        await set_status(db, ticket_id, body.estado, utcnow())
    except TicketValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except TicketNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return UpdatedResponse(message="Estado actualizado correctamente")


@router.patch("/admin/mensaje/{ticket_id}/prioridad", response_model=UpdatedResponse)
async def change_priority(
    ticket_id: int,
    body: PriorityUpdateRequest,
    _staff: TokenClaims = Depends(require_moderator_or_admin),
    db: AsyncSession = Depends(get_session),
) -> UpdatedResponse:
    try:
        await set_priority(db, ticket_id, body.prioridad, utcnow())
    except TicketValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except TicketNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return UpdatedResponse(message="Prioridad actualizada correctamente")
