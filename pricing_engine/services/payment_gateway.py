"""
Payment Gateway

The two calls checkout makes after pricing: create a payment intent for the
order total, then verify the customer's payment against it. The engine only
hands over `OrderSummary.total`; everything else is the gateway's business.
"""
import hmac
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import stripe

from pricing_engine.core.config import Settings, settings as default_settings
from pricing_engine.core.exceptions import PaymentIntentError, PaymentVerificationError
from pricing_engine.core.utils import to_minor_units

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentIntent:
    intent_id: str
    amount_cents: int
    currency: str
    receipt: Optional[str] = None
    client_secret: Optional[str] = None


@dataclass(frozen=True)
class PaymentVerification:
    verified: bool
    status: Optional[str] = None


class PaymentGateway(ABC):

    @abstractmethod
    def create_payment_intent(self, amount, currency: str, receipt: Optional[str] = None) -> PaymentIntent:
        pass

    @abstractmethod
    def verify_payment(self, intent_id: str, payment_ref: str, signature: str) -> PaymentVerification:
        pass


class StripePaymentGateway(PaymentGateway):
    """
    Stripe PaymentIntents.

    verify_payment treats `signature` as the intent's client secret (what the
    browser received at creation) and `payment_ref` as the resulting charge id.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        stripe.api_key = self.config.STRIPE_SECRET_KEY

    def create_payment_intent(self, amount, currency: Optional[str] = None, receipt: Optional[str] = None) -> PaymentIntent:
        currency = (currency or self.config.CURRENCY).lower()
        amount_cents = to_minor_units(amount)

        if amount_cents < self.config.STRIPE_MINIMUM_AMOUNT_CENTS:
            raise PaymentIntentError(
                f"Order total must be at least {self.config.STRIPE_MINIMUM_AMOUNT_CENTS} minor units",
                details={"amount_cents": amount_cents, "currency": currency},
            )

        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=currency,
                metadata={"receipt": receipt or ""},
                automatic_payment_methods={"enabled": True},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe PaymentIntent creation failed: {e}")
            raise PaymentIntentError(str(e), details={"amount_cents": amount_cents}) from e

        logger.info(f"Created payment intent {intent.id} for {amount_cents} {currency}")
        return PaymentIntent(
            intent_id=intent.id,
            amount_cents=intent.amount,
            currency=currency,
            receipt=receipt,
            client_secret=intent.client_secret,
        )

    def verify_payment(self, intent_id: str, payment_ref: str, signature: str) -> PaymentVerification:
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id)
        except stripe.StripeError as e:
            logger.error(f"Stripe PaymentIntent retrieval failed for {intent_id}: {e}")
            raise PaymentVerificationError(str(e), details={"intent_id": intent_id}) from e

        secret_ok = hmac.compare_digest(signature or "", intent.client_secret or "")
        charge_ok = payment_ref == intent.latest_charge
        verified = secret_ok and charge_ok and intent.status == "succeeded"

        if not verified:
            logger.warning(
                f"Payment verification failed for {intent_id}: status={intent.status} "
                f"secret_ok={secret_ok} charge_ok={charge_ok}"
            )
        return PaymentVerification(verified=verified, status=intent.status)
