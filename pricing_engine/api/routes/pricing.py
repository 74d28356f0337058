"""
Pricing API Routes

Cart quote for the checkout flow. The route loads the offer and catalog
snapshots once, then runs a single pricing pass.
"""
import logging

from fastapi import APIRouter, Depends

from pricing_engine.api.deps import (
    CatalogLoader,
    get_catalog_loader,
    get_offer_repository,
    get_pricing_service,
)
from pricing_engine.core.utils import utcnow
from pricing_engine.schemas.pricing import QuoteRequest, QuoteResponse
from pricing_engine.services.offer_repository import OfferRepository
from pricing_engine.services.pricing_service import PricingService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/quote", response_model=QuoteResponse)
async def quote_cart(
    payload: QuoteRequest,
    repository: OfferRepository = Depends(get_offer_repository),
    load_catalog: CatalogLoader = Depends(get_catalog_loader),
    service: PricingService = Depends(get_pricing_service),
):
    """
    Price a cart with flash sales, an optional coupon and BXGY offers.

    A rejected coupon does not fail the request; the reason is returned in
    `message` and the cart is priced without it. Per-customer BXGY limits are
    checked against `customer_usage`, which the checkout caller supplies from
    the customer's order history.
    """
    now = utcnow()
    offers = await repository.load_snapshot(now, coupon_code=payload.coupon_code)

    product_ids = {item.product_id for item in payload.items}
    category_ids = set()
    for offer in offers.bxgy_offers:
        if offer.get_product_id:
            product_ids.add(offer.get_product_id)
        if offer.get_category_id:
            category_ids.add(offer.get_category_id)

    catalog = await load_catalog(product_ids, category_ids)

    result = service.price_cart(
        lines=[item.to_line() for item in payload.items],
        catalog=catalog,
        offers=offers,
        coupon_code=payload.coupon_code,
        now=now,
        customer_usage=payload.customer_usage,
    )

    logger.info(
        f"Quoted cart: {result.summary.item_count} items, total {result.summary.total}"
        + (f", {result.coupon_message}" if result.coupon_message else "")
    )
    return QuoteResponse.from_result(result, coupon_code=payload.coupon_code)
