"""
Coupon Model

Percentage / fixed coupons with an optional usage cap and validity window.
`usage_count` is only ever changed through the repository's conditional
increment.
"""
from sqlalchemy import Column, String, Boolean, Integer, DateTime, Text, Numeric, CheckConstraint

from pricing_engine.core.database import Base
from pricing_engine.core.utils import utcnow
from pricing_engine.models.product import new_id
from pricing_engine.services.rules import CouponRule


class Coupon(Base):
    """Individual coupon codes."""
    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint(
            "usage_limit IS NULL OR usage_count <= usage_limit",
            name="ck_coupons_usage_within_limit",
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)

    # Stored upper-cased so lookups are case-insensitive
    code = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(Text)

    # Discount type: 'percentage', 'fixed'
    discount_type = Column(String(20), nullable=False)
    discount_value = Column(Numeric(10, 2), nullable=False)

    min_order_value = Column(Numeric(10, 2))
    max_discount = Column(Numeric(10, 2))  # Cap for percentage discounts

    usage_limit = Column(Integer)  # NULL = unlimited
    usage_count = Column(Integer, nullable=False, default=0)

    valid_from = Column(DateTime(timezone=True))
    valid_until = Column(DateTime(timezone=True))
    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_rule(self) -> CouponRule:
        return CouponRule(
            id=str(self.id),
            code=self.code,
            discount_type=self.discount_type,
            discount_value=self.discount_value,
            min_order_value=self.min_order_value,
            max_discount=self.max_discount,
            valid_from=self.valid_from,
            valid_until=self.valid_until,
            usage_limit=self.usage_limit,
            usage_count=self.usage_count or 0,
            is_active=bool(self.is_active),
        )
