"""
Cart Pricing Service

Single pricing pass over a cart:

    START -> LINE_RESOLUTION -> DISCOUNT_APPLICATION -> TOTALS -> DONE

1. LINE_RESOLUTION: merge duplicate product lines, refresh each line from
   the catalog, apply flash-sale prices, accumulate subtotal and MRP total.
2. DISCOUNT_APPLICATION: product discount (MRP - subtotal), at most one
   coupon against the subtotal, every qualifying BXGY offer.
3. TOTALS: shipping and the clamped chargeable total.

The pass is stateless and never raises for a bad coupon or a broken offer:
a rejected coupon contributes nothing and its reason is returned with the
summary, a broken offer is skipped.
"""
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Mapping, Optional, Sequence

from pricing_engine.core.config import Settings, settings as default_settings
from pricing_engine.core.exceptions import CouponError
from pricing_engine.core.utils import quantize_money, to_decimal, utcnow
from pricing_engine.services.bxgy_evaluator import BxgyApplication, evaluate_bxgy
from pricing_engine.services.cart import merge_lines
from pricing_engine.services.catalog import CatalogSnapshot
from pricing_engine.services.coupon_evaluator import CouponApplication, CouponEvaluator
from pricing_engine.services.flash_sale_resolver import ResolvedPrice, resolve_unit_price
from pricing_engine.services.rules import CartLine, OfferSnapshot

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class PricingStage(str, Enum):
    START = "start"
    LINE_RESOLUTION = "line_resolution"
    DISCOUNT_APPLICATION = "discount_application"
    TOTALS = "totals"
    DONE = "done"


@dataclass(frozen=True)
class PricedLine:
    line: CartLine
    resolved: ResolvedPrice
    line_total: Decimal
    line_mrp: Decimal

    @property
    def discounted_quantity(self) -> int:
        return self.resolved.discounted_quantity(self.line.quantity)


@dataclass(frozen=True)
class OrderSummary:
    subtotal: Decimal = ZERO
    total_mrp: Decimal = ZERO
    product_discount: Decimal = ZERO
    coupon_discount: Decimal = ZERO
    bxgy_discount: Decimal = ZERO
    shipping: Decimal = ZERO
    total: Decimal = ZERO
    item_count: int = 0

    @property
    def total_savings(self) -> Decimal:
        return self.product_discount + self.coupon_discount + self.bxgy_discount


@dataclass
class PricingResult:
    summary: OrderSummary
    lines: List[PricedLine] = field(default_factory=list)
    coupon: Optional[CouponApplication] = None
    coupon_error: Optional[CouponError] = None
    bxgy: List[BxgyApplication] = field(default_factory=list)
    stage: PricingStage = PricingStage.START

    @property
    def coupon_message(self) -> Optional[str]:
        """Human-readable coupon outcome for display."""
        if self.coupon_error is not None:
            return f"Coupon rejected: {self.coupon_error.message}"
        if self.coupon is not None:
            return f"{self.coupon.coupon.normalized_code} applied"
        return None


class PricingService:
    """Combines line resolution, coupon and BXGY evaluation into an OrderSummary."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    def price_cart(
        self,
        lines: Sequence[CartLine],
        catalog: CatalogSnapshot,
        offers: OfferSnapshot,
        coupon_code: Optional[str] = None,
        now: Optional[datetime] = None,
        customer_usage: Optional[Mapping[str, int]] = None,
    ) -> PricingResult:
        """
        Price a cart.

        Args:
            lines: Cart lines (quantity >= 1)
            catalog: Current product data; takes precedence over line prices
            offers: Coupons, BXGY offers and flash sales for this pass
            coupon_code: Code typed by the customer, if any
            now: Evaluation instant (defaults to current UTC time)
            customer_usage: BXGY offer id -> prior uses by this customer

        Returns:
            PricingResult with the summary and per-stage details
        """
        now = now or utcnow()
        result = PricingResult(summary=OrderSummary())

        # Stage 1: line resolution
        result.stage = PricingStage.LINE_RESOLUTION
        result.lines = [self._price_line(line, catalog, offers, now) for line in merge_lines(lines)]

        subtotal = quantize_money(sum((pl.line_total for pl in result.lines), ZERO))
        total_mrp = quantize_money(sum((pl.line_mrp for pl in result.lines), ZERO))
        item_count = sum(pl.line.quantity for pl in result.lines)

        # Stage 2: discounts
        result.stage = PricingStage.DISCOUNT_APPLICATION
        product_discount = max(total_mrp - subtotal, ZERO)

        coupon_discount = ZERO
        if coupon_code:
            try:
                result.coupon = CouponEvaluator(offers.coupons).evaluate(coupon_code, subtotal, now)
                coupon_discount = result.coupon.discount_amount
            except CouponError as e:
                result.coupon_error = e
                logger.info(f"Coupon rejected [{e.code}]: {e.message}")

        resolved_lines = [replace(pl.line, unit_price=pl.resolved.unit_price) for pl in result.lines]
        result.bxgy = evaluate_bxgy(
            resolved_lines, offers.bxgy_offers, now, catalog, customer_usage=customer_usage
        )
        bxgy_discount = quantize_money(sum((a.discount_amount for a in result.bxgy), ZERO))

        coupon_discount, bxgy_discount = self._apply_discount_ceiling(
            subtotal, coupon_discount, bxgy_discount
        )

        # Stage 3: totals
        result.stage = PricingStage.TOTALS
        shipping = self.calculate_shipping(subtotal)
        total = max(subtotal + shipping - coupon_discount - bxgy_discount, ZERO)

        result.summary = OrderSummary(
            subtotal=subtotal,
            total_mrp=total_mrp,
            product_discount=quantize_money(product_discount),
            coupon_discount=quantize_money(coupon_discount),
            bxgy_discount=quantize_money(bxgy_discount),
            shipping=quantize_money(shipping),
            total=quantize_money(total),
            item_count=item_count,
        )
        result.stage = PricingStage.DONE
        return result

    def calculate_shipping(self, subtotal: Decimal) -> Decimal:
        """Flat rate below the free-shipping threshold."""
        if subtotal >= to_decimal(self.config.FREE_SHIPPING_THRESHOLD):
            return ZERO
        return to_decimal(self.config.FLAT_SHIPPING_RATE)

    def _price_line(
        self,
        line: CartLine,
        catalog: CatalogSnapshot,
        offers: OfferSnapshot,
        now: datetime,
    ) -> PricedLine:
        product = catalog.get_product(line.product_id)
        if product is not None:
            line = replace(
                line,
                unit_price=product.price,
                mrp=product.mrp,
                category_id=product.category_id or line.category_id,
            )

        resolved = resolve_unit_price(line.product_id, line.unit_price, now, offers.flash_sales)
        return PricedLine(
            line=line,
            resolved=resolved,
            line_total=resolved.line_total(line.quantity),
            line_mrp=quantize_money(line.reference_price * line.quantity),
        )

    def _apply_discount_ceiling(self, subtotal: Decimal, coupon_discount: Decimal, bxgy_discount: Decimal):
        """Cap coupon + BXGY at MAX_DISCOUNT_PERCENT of subtotal, trimming BXGY first."""
        ceiling_percent = self.config.MAX_DISCOUNT_PERCENT
        if ceiling_percent is None:
            return coupon_discount, bxgy_discount

        ceiling = quantize_money(subtotal * to_decimal(ceiling_percent) / Decimal("100"))
        excess = coupon_discount + bxgy_discount - ceiling
        if excess <= 0:
            return coupon_discount, bxgy_discount

        logger.info(f"Discount ceiling {ceiling_percent}% reached; trimming {excess} from promotions")
        trimmed_bxgy = max(bxgy_discount - excess, ZERO)
        excess -= bxgy_discount - trimmed_bxgy
        return max(coupon_discount - excess, ZERO), trimmed_bxgy


pricing_service = PricingService()
