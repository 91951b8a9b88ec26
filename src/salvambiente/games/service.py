"""
Score storage shared by both games.

Each user keeps exactly one row per game: a new submission deletes the old
row and inserts the new one in the same transaction.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from sqlalchemy import delete, select

from salvambiente.db.models import PlantQuizScore, User, WasteSortScore

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

ScoreModel = TypeVar("ScoreModel", WasteSortScore, PlantQuizScore)

LEADERBOARD_SIZE = 10

# Score descending, then the game-specific tie-breakers
WASTE_SORT_ORDER = (WasteSortScore.score.desc(), WasteSortScore.time_seconds.asc(), WasteSortScore.id.asc())
PLANT_QUIZ_ORDER = (
    PlantQuizScore.score.desc(),
    PlantQuizScore.final_growth.desc(),
    PlantQuizScore.play_time.asc(),
    PlantQuizScore.id.asc(),
)


async def replace_score(
    db: AsyncSession,
    model: type[ScoreModel],
    user_id: int,
    values: dict[str, Any],
    now: datetime,
) -> ScoreModel:
    """Drop the user's previous row for this game and store the new one."""
    await db.execute(delete(model).where(model.user_id == user_id))
    row = model(user_id=user_id, played_at=now, **values)
    db.add(row)
    await db.commit()
    logger.info("game_score_saved", game=model.__tablename__, user_id=user_id, score=row.score)
    return row


async def get_leaderboard(
    db: AsyncSession,
    model: type[ScoreModel],
    order_by: tuple[Any, ...],
    limit: int = LEADERBOARD_SIZE,
) -> list[tuple[ScoreModel, str]]:
    """Top rows with the player's handle."""
    result = await db.execute(
        select(model, User.username).join(User, User.id == model.user_id).order_by(*order_by).limit(limit)
    )
    return [(row, username) for row, username in result.all()]


async def get_latest_score(db: AsyncSession, model: type[ScoreModel], user_id: int) -> ScoreModel | None:
    result = await db.execute(
        select(model).where(model.user_id == user_id).order_by(model.played_at.desc()).limit(1)
    )
    return result.scalar_one_or_none()
