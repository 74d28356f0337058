"""
Loyalty API Routes

Tier badge and points balance for a customer. Lifetime spend comes from the
caller's order history.
"""
from decimal import Decimal

from fastapi import APIRouter, Depends, Query

from pricing_engine.api.deps import LedgerLoader, get_ledger_loader
from pricing_engine.schemas.loyalty import LoyaltySummaryResponse
from pricing_engine.services.loyalty_service import customer_loyalty_summary

router = APIRouter()


@router.get("/{user_id}", response_model=LoyaltySummaryResponse)
async def get_loyalty_summary(
    user_id: str,
    total_spent: Decimal = Query(Decimal("0"), ge=0, description="Lifetime spend"),
    load_ledger: LedgerLoader = Depends(get_ledger_loader),
):
    entries = await load_ledger(user_id)
    summary = customer_loyalty_summary(user_id, total_spent, entries)
    return LoyaltySummaryResponse.from_summary(summary)
