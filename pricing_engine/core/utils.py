"""
Core Utilities

Shared time and money helpers used across the engine.
"""
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

CENT = Decimal("0.01")
WHOLE = Decimal("1")

Number = Union[Decimal, int, float, str]


def utcnow() -> datetime:
    """
    Return timezone-aware UTC datetime.

    Use this instead of datetime.utcnow() which returns naive datetime.
    """
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so window comparisons never mix kinds."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_decimal(amount: Optional[Number]) -> Decimal:
    """Convert a stored/posted amount to Decimal without float artefacts."""
    if amount is None:
        return Decimal("0")
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def quantize_money(amount: Number) -> Decimal:
    """Round to 2 places, half up."""
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def round_whole(amount: Number) -> Decimal:
    """Round to whole currency units, half up."""
    return to_decimal(amount).quantize(WHOLE, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Number) -> int:
    """Convert a major-unit amount (rupees, dollars) to integer minor units."""
    return int(quantize_money(amount) * 100)


def from_minor_units(amount_minor: int) -> Decimal:
    return Decimal(amount_minor) / Decimal(100)


def within_window(
    now: datetime,
    starts_at: Optional[datetime],
    ends_at: Optional[datetime],
) -> bool:
    """Inclusive time-window check; a missing bound is open."""
    now = ensure_aware(now)
    starts_at = ensure_aware(starts_at)
    ends_at = ensure_aware(ends_at)
    if starts_at is not None and now < starts_at:
        return False
    if ends_at is not None and now > ends_at:
        return False
    return True
