"""
Buy-X-Get-Y Offer Model
"""
from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey, Text, Numeric, CheckConstraint

from pricing_engine.core.database import Base
from pricing_engine.core.utils import utcnow
from pricing_engine.models.product import new_id
from pricing_engine.services.rules import BxgyOfferRule


class BxgyOffer(Base):
    __tablename__ = "bxgy_offers"
    __table_args__ = (
        CheckConstraint(
            "(buy_product_id IS NULL) <> (buy_category_id IS NULL)",
            name="ck_bxgy_single_buy_trigger",
        ),
        CheckConstraint(
            "(get_product_id IS NULL) <> (get_category_id IS NULL)",
            name="ck_bxgy_single_get_target",
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(150), nullable=False)
    description = Column(Text)

    # Trigger (exactly one)
    buy_product_id = Column(String(36), ForeignKey("products.id"), index=True)
    buy_category_id = Column(String(36), ForeignKey("categories.id"), index=True)
    buy_quantity = Column(Integer, nullable=False, default=1)

    # Reward (exactly one)
    get_product_id = Column(String(36), ForeignKey("products.id"))
    get_category_id = Column(String(36), ForeignKey("categories.id"))
    get_quantity = Column(Integer, nullable=False, default=1)

    # 'free', 'percentage', 'fixed'
    get_discount_type = Column(String(20), nullable=False, default="free")
    get_discount_value = Column(Numeric(10, 2), nullable=False, default=0)

    is_active = Column(Boolean, default=True, index=True)
    starts_at = Column(DateTime(timezone=True))
    ends_at = Column(DateTime(timezone=True))

    max_uses = Column(Integer)
    current_uses = Column(Integer, nullable=False, default=0)
    usage_per_customer = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_rule(self) -> BxgyOfferRule:
        return BxgyOfferRule(
            id=str(self.id),
            name=self.name,
            buy_product_id=self.buy_product_id,
            buy_category_id=self.buy_category_id,
            buy_quantity=self.buy_quantity,
            get_product_id=self.get_product_id,
            get_category_id=self.get_category_id,
            get_quantity=self.get_quantity,
            get_discount_type=self.get_discount_type,
            get_discount_value=self.get_discount_value or 0,
            is_active=bool(self.is_active),
            starts_at=self.starts_at,
            ends_at=self.ends_at,
            max_uses=self.max_uses,
            current_uses=self.current_uses or 0,
            usage_per_customer=self.usage_per_customer or 1,
        )
