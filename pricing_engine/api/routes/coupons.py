"""
Coupon API Routes

Public validation endpoint used by the cart's "Have a coupon?" box.
"""
import logging

from fastapi import APIRouter, Depends

from pricing_engine.api.deps import get_offer_repository
from pricing_engine.core.config import settings
from pricing_engine.core.exceptions import CouponError
from pricing_engine.core.utils import utcnow
from pricing_engine.schemas.pricing import CouponResponse, ValidateCouponRequest
from pricing_engine.services.coupon_evaluator import CouponEvaluator
from pricing_engine.services.offer_repository import OfferRepository
from pricing_engine.services.rules import normalize_code

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/validate", response_model=CouponResponse)
async def validate_coupon(
    payload: ValidateCouponRequest,
    repository: OfferRepository = Depends(get_offer_repository),
):
    """
    Validate a coupon code against the current cart total.

    Returns discount amount if valid, error message if not.
    """
    code = normalize_code(payload.code)
    coupon = await repository.get_coupon_by_code(code)
    evaluator = CouponEvaluator([coupon] if coupon else [])

    try:
        application = evaluator.evaluate(code, payload.cart_total, utcnow())
    except CouponError as e:
        return CouponResponse(
            valid=False,
            code=code,
            error_code=e.code,
            message=e.message,
        )

    return CouponResponse(
        valid=True,
        code=code,
        discount_type=application.coupon.discount_type.value,
        discount_value=application.coupon.discount_value,
        discount_amount=application.discount_amount,
        message=f"{settings.CURRENCY_SYMBOL}{application.discount_amount:.2f} discount applied!",
    )
