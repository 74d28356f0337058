"""
BXGY Evaluator

Finds every Buy-X-Get-Y offer a cart qualifies for and the discount each one
grants. Offers are independent: all qualifying offers are returned and the
caller decides how to stack them.

A category "get" target resolves to the cheapest product of that category in
the catalog snapshot (ties go to the smallest product id).
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Sequence

from pricing_engine.core.exceptions import OfferReferenceMissingError
from pricing_engine.core.utils import quantize_money
from pricing_engine.services.catalog import CatalogSnapshot
from pricing_engine.services.rules import BxgyDiscountType, BxgyOfferRule, CartLine, ProductSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BxgyApplication:
    offer: BxgyOfferRule
    discount_amount: Decimal
    product_id: str  # The free or discounted product


def buy_quantity_in_cart(offer: BxgyOfferRule, cart_lines: Sequence[CartLine]) -> int:
    """Quantity of the trigger product, or summed quantity across the trigger category."""
    if offer.buy_product_id is not None:
        return sum(line.quantity for line in cart_lines if line.product_id == offer.buy_product_id)
    return sum(line.quantity for line in cart_lines if line.category_id == offer.buy_category_id)


def resolve_get_product(offer: BxgyOfferRule, catalog: CatalogSnapshot) -> ProductSnapshot:
    """
    Find the product an offer gives away or discounts.

    Raises:
        OfferReferenceMissingError: the product/category is not in the catalog
    """
    if offer.get_product_id is not None:
        product = catalog.get_product(offer.get_product_id)
        reference = f"product:{offer.get_product_id}"
    else:
        product = catalog.cheapest_in_category(offer.get_category_id)
        reference = f"category:{offer.get_category_id}"

    if product is None:
        raise OfferReferenceMissingError(
            f"BXGY offer {offer.name or offer.id} references missing {reference}",
            offer_id=offer.id,
            reference=reference,
        )
    return product


def calculate_bxgy_discount(offer: BxgyOfferRule, get_product: ProductSnapshot) -> Decimal:
    if offer.get_discount_type == BxgyDiscountType.FREE:
        discount = get_product.price * offer.get_quantity
    elif offer.get_discount_type == BxgyDiscountType.PERCENTAGE:
        discount = get_product.price * offer.get_quantity * offer.get_discount_value / Decimal("100")
    else:
        discount = offer.get_discount_value * offer.get_quantity
    return quantize_money(max(discount, Decimal("0")))


def _is_eligible(
    offer: BxgyOfferRule,
    now: datetime,
    customer_usage: Mapping[str, int],
) -> bool:
    if not offer.is_live(now):
        return False
    if offer.is_exhausted:
        logger.debug(f"BXGY offer {offer.id} skipped: max uses reached")
        return False
    if offer.id is not None and customer_usage.get(offer.id, 0) >= offer.usage_per_customer:
        logger.debug(f"BXGY offer {offer.id} skipped: per-customer limit reached")
        return False
    return True


def evaluate_bxgy(
    cart_lines: Sequence[CartLine],
    offers: Iterable[BxgyOfferRule],
    now: datetime,
    catalog: CatalogSnapshot,
    customer_usage: Optional[Mapping[str, int]] = None,
) -> List[BxgyApplication]:
    """
    Evaluate BXGY offers against a cart.

    Args:
        cart_lines: Resolved cart lines
        offers: Candidate offers (inactive/out-of-window ones are ignored)
        now: Evaluation instant
        catalog: Snapshot used to price the "get" product
        customer_usage: offer id -> times this customer already used it

    Returns:
        One BxgyApplication per qualifying offer, in input order
    """
    customer_usage = customer_usage or {}
    applications: List[BxgyApplication] = []

    for offer in offers:
        if not _is_eligible(offer, now, customer_usage):
            continue

        if buy_quantity_in_cart(offer, cart_lines) < offer.buy_quantity:
            continue

        try:
            get_product = resolve_get_product(offer, catalog)
        except OfferReferenceMissingError as e:
            logger.warning(f"Skipping BXGY offer: {e.message}", extra={"error": e.to_dict()})
            continue

        applications.append(BxgyApplication(
            offer=offer,
            discount_amount=calculate_bxgy_discount(offer, get_product),
            product_id=get_product.id,
        ))

    return applications
