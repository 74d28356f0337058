"""
Flash-Sale Price Resolver

Turns a product's base price into its effective unit price for a given
moment, honouring the per-user quantity cap of the matching sale.

When more than one live sale lists the same product, the lowest resulting
price wins; equal prices fall back to the sale ending first, then sale id,
so the result is deterministic for a fixed `now`.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from pricing_engine.core.utils import quantize_money, to_decimal, ensure_aware
from pricing_engine.services.rules import DiscountType, FlashSaleRule, FlashSaleProductRule

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class ResolvedPrice:
    """Effective price of one product at one moment."""
    product_id: str
    base_price: Decimal
    unit_price: Decimal
    flash_sale_id: Optional[str] = None
    max_discounted_quantity: Optional[int] = None  # None = uncapped

    @property
    def is_discounted(self) -> bool:
        return self.flash_sale_id is not None

    def discounted_quantity(self, quantity: int) -> int:
        if not self.is_discounted:
            return 0
        if self.max_discounted_quantity is None:
            return quantity
        return min(quantity, self.max_discounted_quantity)

    def line_total(self, quantity: int) -> Decimal:
        """Units within the cap at the sale price, the rest at base price."""
        special_units = self.discounted_quantity(quantity)
        regular_units = quantity - special_units
        return quantize_money(self.unit_price * special_units + self.base_price * regular_units)


def sale_price(sale: FlashSaleRule, entry: FlashSaleProductRule, base_price: Decimal) -> Decimal:
    """Price a product under one sale, clamped to [0, base_price]."""
    if entry.special_price is not None:
        price = entry.special_price
        if price > base_price:
            logger.warning(
                f"Flash sale {sale.id} special price {price} for product {entry.product_id} "
                f"is above the base price {base_price}; using the base price"
            )
    elif sale.discount_type == DiscountType.PERCENTAGE:
        price = base_price * (Decimal("1") - sale.discount_value / Decimal("100"))
    else:
        price = base_price - sale.discount_value
    return quantize_money(min(max(price, ZERO), base_price))


def _candidates(
    product_id: str,
    base_price: Decimal,
    now: datetime,
    flash_sales: Iterable[FlashSaleRule],
) -> Iterable[Tuple[Decimal, FlashSaleRule, FlashSaleProductRule]]:
    for sale in flash_sales:
        if not sale.is_live(now):
            continue
        entry = sale.product_entry(product_id)
        if entry is None:
            continue
        yield sale_price(sale, entry, base_price), sale, entry


def resolve_unit_price(
    product_id: str,
    base_price,
    now: datetime,
    flash_sales: Iterable[FlashSaleRule],
) -> ResolvedPrice:
    """
    Resolve the effective unit price of a product.

    Args:
        product_id: Product being priced
        base_price: Current catalog price
        now: Evaluation instant
        flash_sales: Candidate sales (inactive/out-of-window ones are ignored)

    Returns:
        ResolvedPrice; unit_price == base_price when no sale matches
    """
    base_price = to_decimal(base_price)
    candidates = list(_candidates(product_id, base_price, now, flash_sales))

    if not candidates:
        return ResolvedPrice(product_id=product_id, base_price=base_price, unit_price=base_price)

    if len(candidates) > 1:
        logger.info(
            f"Product {product_id} is listed in {len(candidates)} live flash sales; "
            f"using the lowest price"
        )

    price, sale, entry = min(
        candidates,
        key=lambda c: (c[0], ensure_aware(c[1].ends_at), c[1].id or ""),
    )

    return ResolvedPrice(
        product_id=product_id,
        base_price=base_price,
        unit_price=price,
        flash_sale_id=sale.id,
        max_discounted_quantity=entry.max_quantity_per_user,
    )
