"""
Flash Sale Models

A flash sale is a time-boxed price override for a set of products.
"""
from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey, Text, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship

from pricing_engine.core.database import Base
from pricing_engine.core.utils import utcnow
from pricing_engine.models.product import new_id
from pricing_engine.services.rules import FlashSaleRule, FlashSaleProductRule


class FlashSale(Base):
    __tablename__ = "flash_sales"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(150), nullable=False)
    description = Column(Text)

    # 'percentage', 'fixed'
    discount_type = Column(String(20), nullable=False)
    discount_value = Column(Numeric(10, 2), nullable=False)

    starts_at = Column(DateTime(timezone=True), nullable=False, index=True)
    ends_at = Column(DateTime(timezone=True), nullable=False, index=True)
    is_active = Column(Boolean, default=True, index=True)

    max_uses = Column(Integer)
    current_uses = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    products = relationship(
        "FlashSaleProduct",
        back_populates="flash_sale",
        cascade="all, delete-orphan",
    )

    def to_rule(self) -> FlashSaleRule:
        return FlashSaleRule(
            id=str(self.id),
            name=self.name,
            discount_type=self.discount_type,
            discount_value=self.discount_value,
            starts_at=self.starts_at,
            ends_at=self.ends_at,
            is_active=bool(self.is_active),
            max_uses=self.max_uses,
            current_uses=self.current_uses or 0,
            products=tuple(p.to_rule() for p in self.products),
        )


class FlashSaleProduct(Base):
    __tablename__ = "flash_sale_products"
    __table_args__ = (
        UniqueConstraint("flash_sale_id", "product_id", name="uq_flash_sale_product"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    flash_sale_id = Column(String(36), ForeignKey("flash_sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)

    special_price = Column(Numeric(10, 2))  # NULL = use the sale's discount
    max_quantity_per_user = Column(Integer, nullable=False, default=1)

    flash_sale = relationship("FlashSale", back_populates="products")

    def to_rule(self) -> FlashSaleProductRule:
        return FlashSaleProductRule(
            product_id=str(self.product_id),
            special_price=self.special_price,
            max_quantity_per_user=self.max_quantity_per_user,
        )
