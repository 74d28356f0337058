"""
Loyalty Service

Read-only views over a customer's lifetime spend and the points ledger.
Nothing here feeds back into cart pricing.

Tiers (cumulative spend, inclusive lower bound):
    Bronze   < 20,000
    Silver   [20,000, 50,000)
    Gold     [50,000, 100,000)
    Platinum >= 100,000 (terminal)
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pricing_engine.core.utils import to_decimal
from pricing_engine.models.loyalty import LoyaltyPoint

logger = logging.getLogger(__name__)


class LoyaltyTier(str, Enum):
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"


# Ordered highest first
TIER_THRESHOLDS = (
    (LoyaltyTier.PLATINUM, Decimal("100000")),
    (LoyaltyTier.GOLD, Decimal("50000")),
    (LoyaltyTier.SILVER, Decimal("20000")),
    (LoyaltyTier.BRONZE, Decimal("0")),
)


@dataclass(frozen=True)
class LedgerEntry:
    user_id: str
    points: int
    transaction_type: str  # 'earn', 'redeem'
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, row: LoyaltyPoint) -> "LedgerEntry":
        return cls(
            user_id=str(row.user_id),
            points=row.points,
            transaction_type=row.transaction_type,
            created_at=row.created_at,
        )


@dataclass(frozen=True)
class TierInfo:
    tier: LoyaltyTier
    next_tier: Optional[LoyaltyTier]
    points_to_next_tier: Decimal


@dataclass(frozen=True)
class LoyaltyBalance:
    balance: int
    earned: int
    redeemed: int


@dataclass(frozen=True)
class LoyaltyStats:
    total_users: int
    total_earned: int
    total_redeemed: int
    net_points: int


@dataclass(frozen=True)
class CustomerLoyaltySummary:
    user_id: str
    total_spent: Decimal
    tier: TierInfo
    points: LoyaltyBalance


def calculate_tier(total_spent) -> TierInfo:
    """Tier for a lifetime spend and the spend still needed for the next one."""
    total_spent = to_decimal(total_spent)
    next_tier: Optional[LoyaltyTier] = None
    next_threshold: Optional[Decimal] = None

    for tier, threshold in TIER_THRESHOLDS:
        if total_spent >= threshold:
            if next_tier is None:
                return TierInfo(tier=tier, next_tier=None, points_to_next_tier=Decimal("0"))
            return TierInfo(
                tier=tier,
                next_tier=next_tier,
                points_to_next_tier=next_threshold - total_spent,
            )
        next_tier, next_threshold = tier, threshold

    # Negative spend (refund-heavy accounts) still counts as Bronze
    return TierInfo(
        tier=LoyaltyTier.BRONZE,
        next_tier=LoyaltyTier.SILVER,
        points_to_next_tier=Decimal("20000") - total_spent,
    )


def summarize_ledger(entries: Iterable[LedgerEntry], user_id: Optional[str] = None) -> LoyaltyBalance:
    """
    Derive a points balance.

    Earned and redeemed are split by sign, independent of the running balance.
    """
    balance = earned = redeemed = 0
    for entry in entries:
        if user_id is not None and entry.user_id != user_id:
            continue
        balance += entry.points
        if entry.points > 0:
            earned += entry.points
        elif entry.points < 0:
            redeemed += -entry.points
    return LoyaltyBalance(balance=balance, earned=earned, redeemed=redeemed)


def loyalty_stats(entries: Iterable[LedgerEntry]) -> LoyaltyStats:
    """Programme-wide totals for the admin dashboard."""
    users: Dict[str, int] = {}
    earned = redeemed = 0
    for entry in entries:
        users[entry.user_id] = users.get(entry.user_id, 0) + entry.points
        if entry.points > 0:
            earned += entry.points
        elif entry.points < 0:
            redeemed += -entry.points
    return LoyaltyStats(
        total_users=len(users),
        total_earned=earned,
        total_redeemed=redeemed,
        net_points=earned - redeemed,
    )


def customer_loyalty_summary(
    user_id: str,
    total_spent,
    entries: Iterable[LedgerEntry],
) -> CustomerLoyaltySummary:
    return CustomerLoyaltySummary(
        user_id=user_id,
        total_spent=to_decimal(total_spent),
        tier=calculate_tier(total_spent),
        points=summarize_ledger(entries, user_id=user_id),
    )


async def load_ledger(db: AsyncSession, user_id: Optional[str] = None) -> List[LedgerEntry]:
    """Fetch ledger entries, newest first."""
    query = select(LoyaltyPoint).order_by(LoyaltyPoint.created_at.desc())
    if user_id is not None:
        query = query.where(LoyaltyPoint.user_id == user_id)
    result = await db.execute(query)
    return [LedgerEntry.from_model(row) for row in result.scalars().all()]
