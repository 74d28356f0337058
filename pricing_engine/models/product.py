"""
Catalog Models

Products and categories as the pricing engine reads them.
"""
from uuid import uuid4

from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship

from pricing_engine.core.database import Base
from pricing_engine.core.exceptions import NegativeStockAdjustmentError
from pricing_engine.core.utils import utcnow
from pricing_engine.services.rules import ProductSnapshot


def new_id() -> str:
    return str(uuid4())


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    slug = Column(String(120), unique=True, index=True)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    products = relationship("Product", back_populates="category")


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(280), unique=True, index=True)

    price = Column(Numeric(10, 2), nullable=False)
    mrp = Column(Numeric(10, 2))  # Struck-through reference price
    stock_quantity = Column(Integer, nullable=False, default=0)

    category_id = Column(String(36), ForeignKey("categories.id"), index=True)
    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    category = relationship("Category", back_populates="products")

    def to_snapshot(self) -> ProductSnapshot:
        return ProductSnapshot(
            id=str(self.id),
            price=self.price,
            mrp=self.mrp,
            stock_quantity=self.stock_quantity or 0,
            category_id=str(self.category_id) if self.category_id else None,
            name=self.name,
        )

    def adjust_stock(self, delta: int) -> int:
        """Apply a stock delta, refusing to go below zero."""
        current = self.stock_quantity or 0
        if current + delta < 0:
            raise NegativeStockAdjustmentError(
                f"Cannot remove {-delta} units of {self.name}: only {current} in stock",
                product_id=str(self.id),
                requested_qty=-delta,
                available_qty=current,
            )
        self.stock_quantity = current + delta
        return self.stock_quantity
