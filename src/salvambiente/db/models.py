"""ORM models for users, footprints, game scores and support tickets.

Column names are English; the JSON API keeps the Spanish field names the
frontend already consumes, so every router maps between the two.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from salvambiente.db.base import Base


# ---------------------------------------------------------------------------
# Users and roles
# ---------------------------------------------------------------------------


class Role(Base):
    """Static role reference data (admin, moderador, usuario)."""

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    role_id: Mapped[int | None] = mapped_column(ForeignKey("roles.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    role: Mapped[Role | None] = relationship(lazy="joined")


# ---------------------------------------------------------------------------
# Carbon footprint
# ---------------------------------------------------------------------------


class Footprint(Base):
    """A single monthly carbon-emissions calculation."""

    __tablename__ = "footprints"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    distance_km: Mapped[float] = mapped_column(Float, nullable=False)
    transport: Mapped[str] = mapped_column(String(50), nullable=False)
    electricity_kwh: Mapped[float] = mapped_column(Float, nullable=False)
    renewable: Mapped[str] = mapped_column(String(2), nullable=False)
    recycling: Mapped[str] = mapped_column(String(255), nullable=False, default="no_reciclo")
    total_emissions: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class UserFootprint(Base):
    """Profile link between a user and one of their footprint records.

    The (user, year, month) unique constraint backs the once-per-month rule at
    the storage layer, so two concurrent submissions cannot both commit.
    """

    __tablename__ = "user_footprints"
    __table_args__ = (
        UniqueConstraint("user_id", "period_year", "period_month", name="uq_user_footprint_period"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    footprint_id: Mapped[int] = mapped_column(ForeignKey("footprints.id"), unique=True, nullable=False)
    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_month: Mapped[int] = mapped_column(Integer, nullable=False)

    footprint: Mapped[Footprint] = relationship(lazy="joined")


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------


class WasteSortScore(Base):
    """Latest waste-sorting game result per user (game 1)."""

    __tablename__ = "waste_sort_scores"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    time_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    efficiency: Mapped[float] = mapped_column(Float, nullable=False)
    hits: Mapped[int] = mapped_column(Integer, nullable=False)
    total_items: Mapped[int] = mapped_column(Integer, nullable=False)
    played_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class PlantQuizScore(Base):
    """Latest plant-growth quiz result per user (game 2)."""

    __tablename__ = "plant_quiz_scores"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    final_growth: Mapped[int] = mapped_column(Integer, nullable=False)
    hits: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    stage_reached: Mapped[int] = mapped_column(Integer, nullable=False)
    play_time: Mapped[int] = mapped_column(Integer, nullable=False)
    played_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Support
# ---------------------------------------------------------------------------


class SupportCategory(Base):
    __tablename__ = "support_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(50), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class SupportTicket(Base):
    __tablename__ = "support_tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("support_categories.id"), nullable=False)
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pendiente")
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="media")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    category: Mapped[SupportCategory] = relationship(lazy="joined")
    author: Mapped[User] = relationship(lazy="joined")


class SupportReply(Base):
    __tablename__ = "support_replies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(ForeignKey("support_tickets.id"), nullable=False, index=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    author: Mapped[User | None] = relationship(lazy="joined")
