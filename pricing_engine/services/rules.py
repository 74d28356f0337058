"""
Promotion Rule Types

Plain value objects the evaluators work on. Storage models convert into these
(see `to_rule()` on each model) so every evaluator stays a pure function over
in-memory data.

Each promotion variant carries a fixed `kind` tag.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from pricing_engine.core.utils import to_decimal, within_window


class PromotionKind(str, Enum):
    COUPON = "coupon"
    BXGY = "bxgy"
    FLASH_SALE = "flash_sale"


class DiscountType(str, Enum):
    """Discount shape for coupons and flash sales."""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class BxgyDiscountType(str, Enum):
    """Discount shape for the "get" side of a BXGY offer."""
    FREE = "free"
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class ProductSnapshot:
    """Pricing-relevant view of a catalog product."""
    id: str
    price: Decimal
    mrp: Optional[Decimal] = None
    stock_quantity: int = 0
    category_id: Optional[str] = None
    name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "price", to_decimal(self.price))
        if self.mrp is not None:
            object.__setattr__(self, "mrp", to_decimal(self.mrp))


@dataclass(frozen=True)
class CartLine:
    """One product in a cart. Quantity is always >= 1."""
    product_id: str
    quantity: int
    unit_price: Decimal
    mrp: Optional[Decimal] = None
    category_id: Optional[str] = None

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError(f"Cart line quantity must be >= 1, got {self.quantity}")
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))
        if self.mrp is not None:
            object.__setattr__(self, "mrp", to_decimal(self.mrp))

    @property
    def reference_price(self) -> Decimal:
        """MRP when known, otherwise the selling price."""
        return self.mrp if self.mrp else self.unit_price


@dataclass(frozen=True)
class CouponRule:
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    id: Optional[str] = None
    min_order_value: Optional[Decimal] = None
    max_discount: Optional[Decimal] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    is_active: bool = True
    kind: PromotionKind = field(default=PromotionKind.COUPON, init=False)

    def __post_init__(self):
        object.__setattr__(self, "discount_type", DiscountType(self.discount_type))
        object.__setattr__(self, "discount_value", to_decimal(self.discount_value))
        for name in ("min_order_value", "max_discount"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, to_decimal(value))

    @property
    def normalized_code(self) -> str:
        return normalize_code(self.code)

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit


@dataclass(frozen=True)
class BxgyOfferRule:
    """
    Buy-X-Get-Y offer.

    Exactly one of buy_product_id / buy_category_id and exactly one of
    get_product_id / get_category_id must be set.
    """
    buy_quantity: int
    get_quantity: int
    get_discount_type: BxgyDiscountType
    id: Optional[str] = None
    name: Optional[str] = None
    buy_product_id: Optional[str] = None
    buy_category_id: Optional[str] = None
    get_product_id: Optional[str] = None
    get_category_id: Optional[str] = None
    get_discount_value: Decimal = Decimal("0")
    is_active: bool = True
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    max_uses: Optional[int] = None
    current_uses: int = 0
    usage_per_customer: int = 1
    kind: PromotionKind = field(default=PromotionKind.BXGY, init=False)

    def __post_init__(self):
        if (self.buy_product_id is None) == (self.buy_category_id is None):
            raise ValueError("BXGY offer needs exactly one of buy_product_id or buy_category_id")
        if (self.get_product_id is None) == (self.get_category_id is None):
            raise ValueError("BXGY offer needs exactly one of get_product_id or get_category_id")
        if self.buy_quantity < 1 or self.get_quantity < 1:
            raise ValueError("BXGY buy/get quantities must be >= 1")
        object.__setattr__(self, "get_discount_type", BxgyDiscountType(self.get_discount_type))
        object.__setattr__(self, "get_discount_value", to_decimal(self.get_discount_value))

    def is_live(self, now: datetime) -> bool:
        return self.is_active and within_window(now, self.starts_at, self.ends_at)

    @property
    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.current_uses >= self.max_uses


@dataclass(frozen=True)
class FlashSaleProductRule:
    product_id: str
    special_price: Optional[Decimal] = None
    max_quantity_per_user: Optional[int] = None

    def __post_init__(self):
        if self.special_price is not None:
            object.__setattr__(self, "special_price", to_decimal(self.special_price))


@dataclass(frozen=True)
class FlashSaleRule:
    discount_type: DiscountType
    discount_value: Decimal
    starts_at: datetime
    ends_at: datetime
    id: Optional[str] = None
    name: Optional[str] = None
    is_active: bool = True
    max_uses: Optional[int] = None
    current_uses: int = 0
    products: Tuple[FlashSaleProductRule, ...] = ()
    kind: PromotionKind = field(default=PromotionKind.FLASH_SALE, init=False)

    def __post_init__(self):
        object.__setattr__(self, "discount_type", DiscountType(self.discount_type))
        object.__setattr__(self, "discount_value", to_decimal(self.discount_value))
        object.__setattr__(self, "products", tuple(self.products))

    def is_live(self, now: datetime) -> bool:
        if not self.is_active:
            return False
        if self.max_uses is not None and self.current_uses >= self.max_uses:
            return False
        return within_window(now, self.starts_at, self.ends_at)

    def product_entry(self, product_id: str) -> Optional[FlashSaleProductRule]:
        for entry in self.products:
            if entry.product_id == product_id:
                return entry
        return None


@dataclass(frozen=True)
class OfferSnapshot:
    """Offers fetched once by the caller for a single pricing pass."""
    coupons: Tuple[CouponRule, ...] = ()
    bxgy_offers: Tuple[BxgyOfferRule, ...] = ()
    flash_sales: Tuple[FlashSaleRule, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "coupons", tuple(self.coupons))
        object.__setattr__(self, "bxgy_offers", tuple(self.bxgy_offers))
        object.__setattr__(self, "flash_sales", tuple(self.flash_sales))


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()
