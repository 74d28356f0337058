"""
Coupon Evaluator

Validates a coupon code against an order total and computes its discount.
Checks run in a fixed order and the first failure wins.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional

from pricing_engine.core.config import settings
from pricing_engine.core.exceptions import (
    InvalidCouponError,
    CouponNotYetActiveError,
    CouponExpiredError,
    CouponBelowMinimumOrderError,
    CouponUsageLimitReachedError,
)
from pricing_engine.core.utils import ensure_aware, quantize_money, round_whole, to_decimal
from pricing_engine.services.rules import CouponRule, DiscountType, normalize_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CouponApplication:
    """A coupon that passed validation and the discount it grants."""
    coupon: CouponRule
    discount_amount: Decimal


class CouponEvaluator:
    """
    Coupon validation over an in-memory set of coupons.

    Codes are matched case-insensitively; when two coupons normalise to the
    same code the later one wins.
    """

    def __init__(self, coupons: Iterable[CouponRule] = ()):
        self._coupons: Dict[str, CouponRule] = {}
        for coupon in coupons:
            self._coupons[coupon.normalized_code] = coupon

    def lookup(self, code: str) -> Optional[CouponRule]:
        return self._coupons.get(normalize_code(code))

    def evaluate(self, code: str, order_total, now: datetime) -> CouponApplication:
        """
        Validate a coupon code and calculate discount.

        Args:
            code: Coupon code as typed by the customer
            order_total: Cart subtotal before discount
            now: Evaluation instant

        Returns:
            CouponApplication

        Raises:
            CouponError subclass describing the first failed check
        """
        order_total = to_decimal(order_total)
        normalized = normalize_code(code)
        coupon = self.lookup(normalized)

        if coupon is None or not coupon.is_active:
            raise InvalidCouponError("Invalid coupon code", coupon_code=normalized)

        now = ensure_aware(now)

        if coupon.valid_from and now < ensure_aware(coupon.valid_from):
            raise CouponNotYetActiveError("This coupon is not yet active", coupon_code=normalized)

        if coupon.valid_until and now > ensure_aware(coupon.valid_until):
            raise CouponExpiredError("This coupon has expired", coupon_code=normalized)

        if coupon.min_order_value is not None and order_total < coupon.min_order_value:
            raise CouponBelowMinimumOrderError(
                f"Minimum order of {settings.CURRENCY_SYMBOL}{coupon.min_order_value:.2f} required",
                coupon_code=normalized,
                minimum_order_value=coupon.min_order_value,
                order_total=order_total,
            )

        if coupon.is_exhausted:
            raise CouponUsageLimitReachedError(
                "This coupon has reached its usage limit", coupon_code=normalized
            )

        discount = calculate_coupon_discount(coupon, order_total)
        return CouponApplication(coupon=coupon, discount_amount=discount)


def calculate_coupon_discount(coupon: CouponRule, order_total: Decimal) -> Decimal:
    """Discount for a coupon that already passed validation."""
    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = round_whole(order_total * coupon.discount_value / Decimal("100"))
        if coupon.max_discount is not None:
            discount = min(discount, coupon.max_discount)
    else:
        discount = coupon.discount_value

    # Never discount more than the order total
    discount = min(discount, order_total)
    return quantize_money(max(discount, Decimal("0")))


def evaluate_coupon(
    code: str,
    order_total,
    now: datetime,
    coupons: Iterable[CouponRule],
) -> CouponApplication:
    """One-off evaluation without keeping an evaluator around."""
    return CouponEvaluator(coupons).evaluate(code, order_total, now)
