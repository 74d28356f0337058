"""
Loyalty Points Ledger

Append-only; balances are always derived by summing entries.
"""
from sqlalchemy import Column, String, Integer, DateTime, Text

from pricing_engine.core.database import Base
from pricing_engine.core.utils import utcnow
from pricing_engine.models.product import new_id


class LoyaltyPoint(Base):
    __tablename__ = "loyalty_points"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)

    points = Column(Integer, nullable=False)  # Signed: earn > 0, redeem < 0
    transaction_type = Column(String(20), nullable=False)  # 'earn', 'redeem'
    description = Column(Text)
    order_id = Column(String(36), index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
