"""Pure rules for footprint records: emission categories, monthly gating and input cleanup."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from salvambiente.time_utils import add_months, as_utc, month_start

NO_RECYCLING = "no_reciclo"
RENEWABLE_VALUES = ("si", "no")


class EmissionCategory(str, Enum):
    LOW = "Baja"
    MEDIUM = "Media"
    HIGH = "Alta"


LOW_EMISSIONS_BELOW = 50
HIGH_EMISSIONS_FROM = 100


def classify_emissions(total: float) -> EmissionCategory:
    """Below 50 is low, below 100 medium, anything else high."""
    if total < LOW_EMISSIONS_BELOW:
        return EmissionCategory.LOW
    if total < HIGH_EMISSIONS_FROM:
        return EmissionCategory.MEDIUM
    return EmissionCategory.HIGH


# ---------------------------------------------------------------------------
# Monthly gating
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Eligibility:
    """Whether a user may record a footprint now, and if not, when they may."""

    allowed: bool
    last_record_at: datetime | None = None
    next_allowed_at: datetime | None = None
    days_remaining: int | None = None


def next_eligible_date(last_record_at: datetime) -> datetime:
    """Day 1 of the month after the given record."""
    last_record_at = as_utc(last_record_at)
    year, month = add_months(last_record_at.year, last_record_at.month, 1)
    return month_start(year, month)


def days_until(target: datetime, now: datetime) -> int:
    """Whole days from `now` to `target`, rounding partial days up."""
    return math.ceil((as_utc(target) - as_utc(now)) / timedelta(days=1))


def blocked_until_next_month(last_record_at: datetime, now: datetime) -> Eligibility:
    next_allowed_at = next_eligible_date(last_record_at)
    return Eligibility(
        allowed=False,
        last_record_at=as_utc(last_record_at),
        next_allowed_at=next_allowed_at,
        days_remaining=days_until(next_allowed_at, now),
    )


def format_date(dt: datetime) -> str:
    """Day/month/year without zero padding, e.g. 1/3/2026."""
    return f"{dt.day}/{dt.month}/{dt.year}"


# ---------------------------------------------------------------------------
# Input normalization
# ---------------------------------------------------------------------------


class InvalidFootprintInput(ValueError):
    """Raised when a submitted footprint cannot be stored."""

    def __init__(self, message: str, received: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.received = received


def parse_number(value: Any) -> float | None:
    """Parse a JSON number or numeric string into a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def normalize_recycling(value: Any) -> str:
    """
    Flatten the recycling selection to a comma-separated string.

    The "no_reciclo" marker and empty items are dropped; an empty result
    becomes the marker itself.
    """
    if isinstance(value, list):
        flattened = ",".join(str(item) for item in value if item and item != NO_RECYCLING)
    elif value is None or value == NO_RECYCLING:
        flattened = ""
    else:
        flattened = str(value)
    return flattened or NO_RECYCLING


def split_recycling(value: str | None) -> list[str]:
    return value.split(",") if value else []
