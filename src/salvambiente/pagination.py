"""Page/limit query parameters and the pagination block returned with lists."""

from __future__ import annotations

import math
from dataclasses import dataclass

from fastapi import Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> PageParams:
    """1-based `page` and `limit` query parameters (FastAPI dependency)."""
    return PageParams(page=page, limit=limit)


class Pagination(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, params: PageParams, total: int) -> Pagination:
        total_pages = math.ceil(total / params.limit)
        return cls(
            current_page=params.page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=params.limit,
            has_next_page=params.page < total_pages,
            has_prev_page=params.page > 1,
        )
