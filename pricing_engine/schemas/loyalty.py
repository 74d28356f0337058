"""
Loyalty schemas
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from pricing_engine.services.loyalty_service import CustomerLoyaltySummary


class LoyaltySummaryResponse(BaseModel):
    user_id: str
    total_spent: Decimal
    tier: str
    next_tier: Optional[str] = None
    points_to_next_tier: Decimal
    balance: int
    earned: int
    redeemed: int

    @classmethod
    def from_summary(cls, summary: CustomerLoyaltySummary) -> "LoyaltySummaryResponse":
        return cls(
            user_id=summary.user_id,
            total_spent=summary.total_spent,
            tier=summary.tier.tier.value,
            next_tier=summary.tier.next_tier.value if summary.tier.next_tier else None,
            points_to_next_tier=summary.tier.points_to_next_tier,
            balance=summary.points.balance,
            earned=summary.points.earned,
            redeemed=summary.points.redeemed,
        )
