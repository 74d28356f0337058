"""
Pricing schemas

Request/response models for the quote and coupon validation endpoints.
"""
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from pricing_engine.services.pricing_service import PricingResult
from pricing_engine.services.rules import CartLine


class CartLineIn(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, le=999)
    unit_price: Decimal = Field(..., ge=0)
    mrp: Optional[Decimal] = Field(None, ge=0)
    category_id: Optional[str] = None

    def to_line(self) -> CartLine:
        return CartLine(
            product_id=self.product_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            mrp=self.mrp,
            category_id=self.category_id,
        )


class QuoteRequest(BaseModel):
    items: List[CartLineIn] = Field(default_factory=list)
    coupon_code: Optional[str] = Field(None, max_length=50)
    # BXGY offer id -> times this customer already redeemed it
    customer_usage: Dict[str, int] = Field(default_factory=dict)

    @field_validator("coupon_code")
    @classmethod
    def blank_code_is_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class OrderSummaryResponse(BaseModel):
    subtotal: Decimal
    total_mrp: Decimal
    product_discount: Decimal
    coupon_discount: Decimal
    bxgy_discount: Decimal
    shipping: Decimal
    total: Decimal
    total_savings: Decimal
    item_count: int


class PricedLineResponse(BaseModel):
    product_id: str
    quantity: int
    base_price: Decimal
    unit_price: Decimal
    discounted_quantity: int
    line_total: Decimal
    flash_sale_id: Optional[str] = None


class BxgyApplicationResponse(BaseModel):
    offer_id: Optional[str] = None
    offer_name: Optional[str] = None
    product_id: str
    discount_amount: Decimal


class QuoteResponse(BaseModel):
    summary: OrderSummaryResponse
    lines: List[PricedLineResponse]
    coupon_code: Optional[str] = None
    coupon_applied: bool = False
    coupon_error_code: Optional[str] = None
    message: Optional[str] = None
    bxgy: List[BxgyApplicationResponse] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: PricingResult, coupon_code: Optional[str] = None) -> "QuoteResponse":
        s = result.summary
        return cls(
            summary=OrderSummaryResponse(
                subtotal=s.subtotal,
                total_mrp=s.total_mrp,
                product_discount=s.product_discount,
                coupon_discount=s.coupon_discount,
                bxgy_discount=s.bxgy_discount,
                shipping=s.shipping,
                total=s.total,
                total_savings=s.total_savings,
                item_count=s.item_count,
            ),
            lines=[
                PricedLineResponse(
                    product_id=pl.line.product_id,
                    quantity=pl.line.quantity,
                    base_price=pl.resolved.base_price,
                    unit_price=pl.resolved.unit_price,
                    discounted_quantity=pl.discounted_quantity,
                    line_total=pl.line_total,
                    flash_sale_id=pl.resolved.flash_sale_id,
                )
                for pl in result.lines
            ],
            coupon_code=coupon_code,
            coupon_applied=result.coupon is not None,
            coupon_error_code=result.coupon_error.code if result.coupon_error else None,
            message=result.coupon_message,
            bxgy=[
                BxgyApplicationResponse(
                    offer_id=a.offer.id,
                    offer_name=a.offer.name,
                    product_id=a.product_id,
                    discount_amount=a.discount_amount,
                )
                for a in result.bxgy
            ],
        )


class ValidateCouponRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    cart_total: Decimal = Field(..., ge=0)


class CouponResponse(BaseModel):
    valid: bool
    code: str
    discount_type: Optional[str] = None
    discount_value: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    error_code: Optional[str] = None
    message: Optional[str] = None
