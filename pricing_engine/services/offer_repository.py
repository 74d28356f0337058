"""
Offer Repository

Storage boundary for coupons, BXGY offers and flash sales. The pricing pass
reads an OfferSnapshot once; usage counters are only changed here, through
conditional increments that refuse to pass a configured limit. Two concurrent
checkouts can never both take the last use of a coupon.

Two implementations:
- InMemoryOfferRepository: lock-guarded, for tests and single-process use
- SqlOfferRepository: one conditional UPDATE per increment
"""
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pricing_engine.core.utils import utcnow
from pricing_engine.models.bxgy_offer import BxgyOffer
from pricing_engine.models.coupon import Coupon
from pricing_engine.models.flash_sale import FlashSale
from pricing_engine.services.rules import (
    BxgyOfferRule,
    CouponRule,
    FlashSaleRule,
    OfferSnapshot,
    normalize_code,
)

logger = logging.getLogger(__name__)


@dataclass
class RedemptionOutcome:
    """Counters bumped after an order completes."""
    coupon_redeemed: Optional[bool] = None  # None = no coupon on the order
    bxgy_redeemed: List[str] = field(default_factory=list)
    flash_sales_redeemed: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)

    @property
    def fully_redeemed(self) -> bool:
        return not self.rejected


class OfferRepository(ABC):
    """Read offers and atomically bump their usage counters."""

    @abstractmethod
    async def get_coupon_by_code(self, code: str) -> Optional[CouponRule]:
        pass

    @abstractmethod
    async def list_active_bxgy_offers(self, now: datetime) -> List[BxgyOfferRule]:
        pass

    @abstractmethod
    async def list_active_flash_sales(self, now: datetime) -> List[FlashSaleRule]:
        pass

    @abstractmethod
    async def increment_coupon_usage_if_below_limit(self, coupon_id: str) -> bool:
        """Increment usage_count unless usage_limit is reached. True if incremented."""
        pass

    @abstractmethod
    async def increment_bxgy_uses_if_below_limit(self, offer_id: str) -> bool:
        pass

    @abstractmethod
    async def increment_flash_sale_uses_if_below_limit(self, sale_id: str) -> bool:
        pass

    async def load_snapshot(self, now: Optional[datetime] = None, coupon_code: Optional[str] = None) -> OfferSnapshot:
        """Everything a pricing pass needs, fetched once."""
        now = now or utcnow()
        coupons = ()
        if coupon_code:
            coupon = await self.get_coupon_by_code(coupon_code)
            if coupon is not None:
                coupons = (coupon,)
        return OfferSnapshot(
            coupons=coupons,
            bxgy_offers=tuple(await self.list_active_bxgy_offers(now)),
            flash_sales=tuple(await self.list_active_flash_sales(now)),
        )

    async def redeem_promotions(
        self,
        coupon_id: Optional[str] = None,
        bxgy_offer_ids: Iterable[str] = (),
        flash_sale_ids: Iterable[str] = (),
    ) -> RedemptionOutcome:
        """
        Record one use of each promotion on a completed order.

        Idempotency against retried orders belongs to the checkout caller.
        """
        outcome = RedemptionOutcome()

        if coupon_id is not None:
            outcome.coupon_redeemed = await self.increment_coupon_usage_if_below_limit(coupon_id)
            if not outcome.coupon_redeemed:
                outcome.rejected.append(f"coupon:{coupon_id}")

        for offer_id in bxgy_offer_ids:
            if await self.increment_bxgy_uses_if_below_limit(offer_id):
                outcome.bxgy_redeemed.append(offer_id)
            else:
                outcome.rejected.append(f"bxgy:{offer_id}")

        for sale_id in flash_sale_ids:
            if await self.increment_flash_sale_uses_if_below_limit(sale_id):
                outcome.flash_sales_redeemed.append(sale_id)
            else:
                outcome.rejected.append(f"flash_sale:{sale_id}")

        if outcome.rejected:
            logger.warning(f"Promotion limits reached during redemption: {outcome.rejected}")
        return outcome


class InMemoryOfferRepository(OfferRepository):
    """Dictionary-backed repository; increments are serialized by a lock."""

    def __init__(
        self,
        coupons: Iterable[CouponRule] = (),
        bxgy_offers: Iterable[BxgyOfferRule] = (),
        flash_sales: Iterable[FlashSaleRule] = (),
    ):
        self._lock = threading.Lock()
        self._coupons: Dict[str, CouponRule] = {}
        for coupon in coupons:
            self._coupons[coupon.id or coupon.normalized_code] = coupon
        self._bxgy: Dict[str, BxgyOfferRule] = {o.id: o for o in bxgy_offers}
        self._flash_sales: Dict[str, FlashSaleRule] = {s.id: s for s in flash_sales}

    async def get_coupon_by_code(self, code: str) -> Optional[CouponRule]:
        normalized = normalize_code(code)
        for coupon in self._coupons.values():
            if coupon.normalized_code == normalized:
                return coupon
        return None

    async def get_coupon(self, coupon_id: str) -> Optional[CouponRule]:
        return self._coupons.get(coupon_id)

    async def get_bxgy_offer(self, offer_id: str) -> Optional[BxgyOfferRule]:
        return self._bxgy.get(offer_id)

    async def get_flash_sale(self, sale_id: str) -> Optional[FlashSaleRule]:
        return self._flash_sales.get(sale_id)

    async def list_active_bxgy_offers(self, now: datetime) -> List[BxgyOfferRule]:
        return [o for o in self._bxgy.values() if o.is_live(now)]

    async def list_active_flash_sales(self, now: datetime) -> List[FlashSaleRule]:
        return [s for s in self._flash_sales.values() if s.is_live(now)]

    async def increment_coupon_usage_if_below_limit(self, coupon_id: str) -> bool:
        with self._lock:
            coupon = self._coupons.get(coupon_id)
            if coupon is None or coupon.is_exhausted:
                return False
            self._coupons[coupon_id] = replace(coupon, usage_count=coupon.usage_count + 1)
        logger.info(f"Coupon {coupon.normalized_code} usage incremented")
        return True

    async def increment_bxgy_uses_if_below_limit(self, offer_id: str) -> bool:
        with self._lock:
            offer = self._bxgy.get(offer_id)
            if offer is None or offer.is_exhausted:
                return False
            self._bxgy[offer_id] = replace(offer, current_uses=offer.current_uses + 1)
        logger.info(f"BXGY offer {offer_id} uses incremented")
        return True

    async def increment_flash_sale_uses_if_below_limit(self, sale_id: str) -> bool:
        with self._lock:
            sale = self._flash_sales.get(sale_id)
            if sale is None:
                return False
            if sale.max_uses is not None and sale.current_uses >= sale.max_uses:
                return False
            self._flash_sales[sale_id] = replace(sale, current_uses=sale.current_uses + 1)
        logger.info(f"Flash sale {sale_id} uses incremented")
        return True


class SqlOfferRepository(OfferRepository):
    """SQLAlchemy-backed repository. The caller owns the transaction."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_coupon_by_code(self, code: str) -> Optional[CouponRule]:
        result = await self.db.execute(
            select(Coupon).where(func.upper(Coupon.code) == normalize_code(code))
        )
        coupon = result.scalar_one_or_none()
        return coupon.to_rule() if coupon else None

    async def list_active_bxgy_offers(self, now: datetime) -> List[BxgyOfferRule]:
        result = await self.db.execute(
            select(BxgyOffer)
            .where(
                BxgyOffer.is_active == True,
                or_(BxgyOffer.starts_at.is_(None), BxgyOffer.starts_at <= now),
                or_(BxgyOffer.ends_at.is_(None), BxgyOffer.ends_at >= now),
            )
            .order_by(BxgyOffer.created_at.desc())
        )
        return [offer.to_rule() for offer in result.scalars().all()]

    async def list_active_flash_sales(self, now: datetime) -> List[FlashSaleRule]:
        result = await self.db.execute(
            select(FlashSale)
            .where(
                FlashSale.is_active == True,
                FlashSale.starts_at <= now,
                FlashSale.ends_at >= now,
            )
            .options(selectinload(FlashSale.products))
            .order_by(FlashSale.ends_at.asc())
        )
        return [sale.to_rule() for sale in result.scalars().all()]

    async def increment_coupon_usage_if_below_limit(self, coupon_id: str) -> bool:
        result = await self.db.execute(
            update(Coupon)
            .where(
                Coupon.id == coupon_id,
                or_(Coupon.usage_limit.is_(None), Coupon.usage_count < Coupon.usage_limit),
            )
            .values(usage_count=Coupon.usage_count + 1)
        )
        incremented = result.rowcount == 1
        if incremented:
            logger.info(f"Coupon {coupon_id} usage incremented")
        return incremented

    async def increment_bxgy_uses_if_below_limit(self, offer_id: str) -> bool:
        result = await self.db.execute(
            update(BxgyOffer)
            .where(
                BxgyOffer.id == offer_id,
                or_(BxgyOffer.max_uses.is_(None), BxgyOffer.current_uses < BxgyOffer.max_uses),
            )
            .values(current_uses=BxgyOffer.current_uses + 1)
        )
        incremented = result.rowcount == 1
        if incremented:
            logger.info(f"BXGY offer {offer_id} uses incremented")
        return incremented

    async def increment_flash_sale_uses_if_below_limit(self, sale_id: str) -> bool:
        result = await self.db.execute(
            update(FlashSale)
            .where(
                FlashSale.id == sale_id,
                or_(FlashSale.max_uses.is_(None), FlashSale.current_uses < FlashSale.max_uses),
            )
            .values(current_uses=FlashSale.current_uses + 1)
        )
        incremented = result.rowcount == 1
        if incremented:
            logger.info(f"Flash sale {sale_id} uses incremented")
        return incremented
