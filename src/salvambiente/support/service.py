"""
Support tickets: creation and reading by their authors, triage by moderators.

The first staff reply on a pending ticket moves it to in-progress. That
read-then-write is not isolated from concurrent replies; the last writer wins.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import case, func, select, update

from salvambiente.db.models import SupportCategory, SupportReply, SupportTicket
from salvambiente.support.schemas import TicketPriority, TicketStatus
from salvambiente.time_utils import as_utc

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from salvambiente.pagination import PageParams

logger = structlog.get_logger()

SUBJECT_LENGTH = (5, 200)
BODY_LENGTH = (20, 5000)
REPLY_LENGTH = (10, 5000)

_STATUSES = {status.value for status in TicketStatus}
_PRIORITIES = {priority.value for priority in TicketPriority}


class TicketValidationError(ValueError):
    """A ticket, reply or triage value was rejected."""


class TicketNotFoundError(LookupError):
    """No ticket matches the id (or it belongs to someone else)."""


def _require_length(value: str, bounds: tuple[int, int], message: str) -> None:
    low, high = bounds
    if not low <= len(value) <= high:
        raise TicketValidationError(message)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def ticket_summary(ticket: SupportTicket) -> dict[str, Any]:
    return {
        "id": ticket.id,
        "asunto": ticket.subject,
        "mensaje": ticket.body,
        "estado": ticket.status,
        "prioridad": ticket.priority,
        "fecha_creacion": as_utc(ticket.created_at),
        "fecha_actualizacion": as_utc(ticket.updated_at),
        "categoria_nombre": ticket.category.name,
        "categoria_icono": ticket.category.icon,
    }


def ticket_detail(ticket: SupportTicket) -> dict[str, Any]:
    return {
        **ticket_summary(ticket),
        "usuario_id": ticket.user_id,
        "categoria_id": ticket.category_id,
        "nombre_usuario": ticket.author.username,
    }


def reply_detail(reply: SupportReply) -> dict[str, Any]:
    return {
        "id": reply.id,
        "mensaje_id": reply.ticket_id,
        "usuario_id": reply.user_id,
        "respuesta": reply.body,
        "es_admin": reply.is_admin,
        "fecha_creacion": as_utc(reply.created_at),
        "nombre_usuario": reply.author.username if reply.author is not None else None,
    }


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


async def list_categories(db: AsyncSession) -> list[SupportCategory]:
    """Active categories ordered by name."""
    result = await db.execute(
        select(SupportCategory).where(SupportCategory.active.is_(True)).order_by(SupportCategory.name)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Tickets
# ---------------------------------------------------------------------------


async def create_ticket(
    db: AsyncSession,
    user_id: int,
    category_id: int | None,
    subject: str | None,
    body: str | None,
    now: datetime,
) -> SupportTicket:
    """
    Open a pending, medium-priority ticket.

    Raises:
        TicketValidationError: On missing fields, bad lengths or an inactive category.
    """
    if not category_id or not subject or not body:
        msg = "Faltan campos requeridos"
        raise TicketValidationError(msg)
    _require_length(subject, SUBJECT_LENGTH, "El asunto debe tener entre 5 y 200 caracteres")
    _require_length(body, BODY_LENGTH, "El mensaje debe tener entre 20 y 5000 caracteres")

    category = await db.get(SupportCategory, category_id)
    if category is None or not category.active:
        msg = "Categoría no válida"
        raise TicketValidationError(msg)

    ticket = SupportTicket(
        user_id=user_id,
        category_id=category_id,
        subject=subject,
        body=body,
        status=TicketStatus.PENDING.value,
        priority=TicketPriority.MEDIUM.value,
        created_at=now,
        updated_at=now,
    )
    db.add(ticket)
    await db.commit()
    logger.info("support_ticket_created", ticket_id=ticket.id, user_id=user_id, category_id=category_id)
    return ticket


async def list_tickets(
    db: AsyncSession,
    params: PageParams,
    *,
    user_id: int | None = None,
    status: str | None = None,
    priority: str | None = None,
    category_id: int | None = None,
) -> tuple[list[tuple[SupportTicket, int]], int]:
    """
    Page through tickets, newest first, with their reply counts.

    Unknown status or priority filters are ignored rather than rejected.
    """
    filters = []
    if user_id is not None:
        filters.append(SupportTicket.user_id == user_id)
    if status in _STATUSES:
        filters.append(SupportTicket.status == status)
    if priority in _PRIORITIES:
        filters.append(SupportTicket.priority == priority)
    if category_id is not None:
        filters.append(SupportTicket.category_id == category_id)

    total = (await db.execute(select(func.count(SupportTicket.id)).where(*filters))).scalar_one()

    reply_count = (
        select(func.count(SupportReply.id))
        .where(SupportReply.ticket_id == SupportTicket.id)
        .correlate(SupportTicket)
        .scalar_subquery()
    )
    result = await db.execute(
        select(SupportTicket, reply_count)
        .where(*filters)
        .order_by(SupportTicket.created_at.desc(), SupportTicket.id.desc())
        .offset(params.offset)
        .limit(params.limit)
    )
    return [(ticket, count) for ticket, count in result.all()], total


async def get_ticket(db: AsyncSession, ticket_id: int, user_id: int | None = None) -> SupportTicket:
    """
    Fetch one ticket. With `user_id`, only that user's ticket matches.

    Raises:
        TicketNotFoundError: If nothing matches.
    """
    stmt = select(SupportTicket).where(SupportTicket.id == ticket_id)
    if user_id is not None:
        stmt = stmt.where(SupportTicket.user_id == user_id)
    ticket = (await db.execute(stmt)).scalar_one_or_none()
    if ticket is None:
        msg = "Mensaje no encontrado"
        raise TicketNotFoundError(msg)
    return ticket


async def get_replies(db: AsyncSession, ticket_id: int) -> list[SupportReply]:
    result = await db.execute(
        select(SupportReply)
        .where(SupportReply.ticket_id == ticket_id)
        .order_by(SupportReply.created_at.asc(), SupportReply.id.asc())
    )
    return list(result.scalars().all())


async def ticket_statistics(db: AsyncSession, user_id: int | None = None) -> dict[str, int]:
    """Ticket counts by status, for one user or for everyone."""

    def _count_status(status: TicketStatus):  # noqa: ANN202
        return func.coalesce(func.sum(case((SupportTicket.status == status.value, 1), else_=0)), 0)

    stmt = select(
        func.count(SupportTicket.id),
        _count_status(TicketStatus.PENDING),
        _count_status(TicketStatus.IN_PROGRESS),
        _count_status(TicketStatus.RESOLVED),
        _count_status(TicketStatus.CLOSED),
    )
    if user_id is not None:
        stmt = stmt.where(SupportTicket.user_id == user_id)
    total, pending, in_progress, resolved, closed = (await db.execute(stmt)).one()
    return {
        "total_mensajes": total,
        "pendientes": int(pending),
        "en_proceso": int(in_progress),
        "resueltos": int(resolved),
        "cerrados": int(closed),
    }


# ---------------------------------------------------------------------------
# Staff triage
# ---------------------------------------------------------------------------


async def add_staff_reply(
    db: AsyncSession,
    ticket_id: int | None,
    author_id: int,
    body: str | None,
    now: datetime,
) -> SupportReply:
    """
    Answer a ticket as staff. A pending ticket becomes in-progress.

    Raises:
        TicketValidationError: On missing fields or a bad reply length.
        TicketNotFoundError: If the ticket does not exist.
    """
    if not ticket_id or not body:
        msg = "Faltan campos requeridos"
        raise TicketValidationError(msg)
    _require_length(body, REPLY_LENGTH, "La respuesta debe tener entre 10 y 5000 caracteres")

    ticket = await get_ticket(db, ticket_id)
    reply = SupportReply(ticket_id=ticket.id, user_id=author_id, body=body, is_admin=True, created_at=now)
    db.add(reply)
    if ticket.status == TicketStatus.PENDING.value:
        ticket.status = TicketStatus.IN_PROGRESS.value
    ticket.updated_at = now
    await db.commit()
    logger.info("support_reply_added", ticket_id=ticket.id, author_id=author_id, status=ticket.status)
    return reply


async def _update_ticket(db: AsyncSession, ticket_id: int, values: dict[str, Any]) -> None:
    result = await db.execute(update(SupportTicket).where(SupportTicket.id == ticket_id).values(**values))
    if result.rowcount == 0:
        await db.rollback()
        msg = "Mensaje no encontrado"
        raise TicketNotFoundError(msg)
    await db.commit()


async def set_status(db: AsyncSession, ticket_id: int, status: str | None, now: datetime) -> None:
    """
    Raises:
        TicketValidationError: If `status` is not one of the four statuses.
        TicketNotFoundError: If the ticket does not exist.
    """
    if status not in _STATUSES:
        msg = "Estado no válido"
        raise TicketValidationError(msg)
    await _update_ticket(db, ticket_id, {"status": status, "updated_at": now})
    logger.info("support_ticket_status_changed", ticket_id=ticket_id, status=status)


async def set_priority(db: AsyncSession, ticket_id: int, priority: str | None, now: datetime) -> None:
    """
    Raises:
        TicketValidationError: If `priority` is not one of the four priorities.
        TicketNotFoundError: If the ticket does not exist.
    """
    if priority not in _PRIORITIES:
        msg = "Prioridad no válida"
        raise TicketValidationError(msg)
    await _update_ticket(db, ticket_id, {"priority": priority, "updated_at": now})
    logger.info("support_ticket_priority_changed", ticket_id=ticket_id, priority=priority)
