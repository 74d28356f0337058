"""
Pricing Engine Exception Hierarchy

Every error carries a machine-readable code, a human-readable message and
details for logging. None of these is fatal to a pricing pass: coupon errors
are recovered by the aggregator, offer errors skip a single offer.

Exception Hierarchy:
    PricingBaseError
    ├── CouponError
    │   ├── InvalidCouponError
    │   ├── CouponNotYetActiveError
    │   ├── CouponExpiredError
    │   ├── CouponBelowMinimumOrderError
    │   └── CouponUsageLimitReachedError
    ├── OfferError
    │   └── OfferReferenceMissingError
    ├── InventoryError
    │   └── NegativeStockAdjustmentError
    └── PaymentError
        ├── PaymentIntentError
        └── PaymentVerificationError
"""
import logging
from decimal import Decimal
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class PricingBaseError(Exception):
    """
    Base exception for all pricing engine errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging/audit
        severity: P0-P3 severity level
    """

    default_code: str = "PRICING_ERROR"
    default_severity: str = "P2"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[str] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.severity = severity or self.default_severity
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# COUPON ERRORS
# =============================================================================

class CouponError(PricingBaseError):
    """Base exception for coupon validation failures."""
    default_code = "COUPON_ERROR"
    default_severity = "P3"

    def __init__(self, message: str, coupon_code: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        details["coupon_code"] = coupon_code
        self.coupon_code = coupon_code
        super().__init__(message, details=details, **kwargs)


class InvalidCouponError(CouponError):
    """Unknown or deactivated coupon code."""
    default_code = "INVALID_COUPON"


class CouponNotYetActiveError(CouponError):
    default_code = "COUPON_NOT_YET_ACTIVE"


class CouponExpiredError(CouponError):
    default_code = "COUPON_EXPIRED"


class CouponBelowMinimumOrderError(CouponError):
    """Order total is under the coupon's minimum order value."""
    default_code = "COUPON_BELOW_MINIMUM_ORDER"

    def __init__(
        self,
        message: str,
        minimum_order_value: Optional[Decimal] = None,
        order_total: Optional[Decimal] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details.update({
            "minimum_order_value": str(minimum_order_value) if minimum_order_value is not None else None,
            "order_total": str(order_total) if order_total is not None else None,
        })
        self.minimum_order_value = minimum_order_value
        super().__init__(message, details=details, **kwargs)


class CouponUsageLimitReachedError(CouponError):
    default_code = "COUPON_USAGE_LIMIT_REACHED"


# =============================================================================
# OFFER ERRORS
# =============================================================================

class OfferError(PricingBaseError):
    """Base exception for BXGY / flash-sale rule problems."""
    default_code = "OFFER_ERROR"


class OfferReferenceMissingError(OfferError):
    """A rule points at a product or category the catalog cannot resolve."""
    default_code = "OFFER_REFERENCE_MISSING"

    def __init__(
        self,
        message: str,
        offer_id: Optional[str] = None,
        reference: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details.update({
            "offer_id": offer_id,
            "reference": reference,
        })
        super().__init__(message, details=details, **kwargs)


# =============================================================================
# INVENTORY ERRORS
# =============================================================================

class InventoryError(PricingBaseError):
    """Base exception for inventory-related errors."""
    default_code = "INVENTORY_ERROR"
    default_severity = "P1"


class NegativeStockAdjustmentError(InventoryError):
    """Stock adjustment would drive stock below zero."""
    default_code = "NEGATIVE_STOCK_ADJUSTMENT"

    def __init__(
        self,
        message: str,
        product_id: Optional[str] = None,
        requested_qty: Optional[int] = None,
        available_qty: Optional[int] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details.update({
            "product_id": product_id,
            "requested_qty": requested_qty,
            "available_qty": available_qty,
        })
        super().__init__(message, details=details, **kwargs)


# =============================================================================
# PAYMENT ERRORS
# =============================================================================

class PaymentError(PricingBaseError):
    """Base exception for payment collaborator errors."""
    default_code = "PAYMENT_ERROR"
    default_severity = "P0"


class PaymentIntentError(PaymentError):
    default_code = "PAYMENT_INTENT_FAILED"


class PaymentVerificationError(PaymentError):
    default_code = "PAYMENT_VERIFICATION_FAILED"


EXCEPTION_CATALOG = {
    "INVALID_COUPON": {"class": InvalidCouponError, "severity": "P3"},
    "COUPON_NOT_YET_ACTIVE": {"class": CouponNotYetActiveError, "severity": "P3"},
    "COUPON_EXPIRED": {"class": CouponExpiredError, "severity": "P3"},
    "COUPON_BELOW_MINIMUM_ORDER": {"class": CouponBelowMinimumOrderError, "severity": "P3"},
    "COUPON_USAGE_LIMIT_REACHED": {"class": CouponUsageLimitReachedError, "severity": "P3"},
    "OFFER_REFERENCE_MISSING": {"class": OfferReferenceMissingError, "severity": "P2"},
    "NEGATIVE_STOCK_ADJUSTMENT": {"class": NegativeStockAdjustmentError, "severity": "P1"},
    "PAYMENT_INTENT_FAILED": {"class": PaymentIntentError, "severity": "P0"},
    "PAYMENT_VERIFICATION_FAILED": {"class": PaymentVerificationError, "severity": "P0"},
}
