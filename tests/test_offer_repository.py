"""
Tests for offer storage and usage counters.
"""
import asyncio
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from pricing_engine.models.coupon import Coupon
from pricing_engine.services.offer_repository import InMemoryOfferRepository, SqlOfferRepository
from pricing_engine.services.rules import BxgyOfferRule, CouponRule, FlashSaleProductRule, FlashSaleRule


@pytest.fixture
def limited_coupon() -> CouponRule:
    return CouponRule(
        id="c-last", code="LASTONE", discount_type="fixed",
        discount_value=Decimal("100"), usage_limit=1,
    )


class TestInMemoryOfferRepository:

    @pytest.mark.asyncio
    async def test_lookup_is_case_insensitive(self, welcome_coupon):
        repo = InMemoryOfferRepository(coupons=[welcome_coupon])
        assert (await repo.get_coupon_by_code("welcome20")).id == "c-welcome"
        assert await repo.get_coupon_by_code("OTHER") is None

    @pytest.mark.asyncio
    async def test_increment_stops_at_limit(self, limited_coupon):
        repo = InMemoryOfferRepository(coupons=[limited_coupon])
        assert await repo.increment_coupon_usage_if_below_limit("c-last") is True
        assert await repo.increment_coupon_usage_if_below_limit("c-last") is False
        assert (await repo.get_coupon("c-last")).usage_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_checkouts_take_last_use_once(self, limited_coupon):
        repo = InMemoryOfferRepository(coupons=[limited_coupon])
        results = await asyncio.gather(*[
            repo.increment_coupon_usage_if_below_limit("c-last") for _ in range(10)
        ])
        assert results.count(True) == 1
        assert (await repo.get_coupon("c-last")).usage_count == 1

    @pytest.mark.asyncio
    async def test_unknown_ids_are_not_incremented(self):
        repo = InMemoryOfferRepository()
        assert await repo.increment_coupon_usage_if_below_limit("nope") is False
        assert await repo.increment_bxgy_uses_if_below_limit("nope") is False
        assert await repo.increment_flash_sale_uses_if_below_limit("nope") is False

    @pytest.mark.asyncio
    async def test_flash_sale_uses_limited(self, flash_sale):
        sale = FlashSaleRule(
            id="fs-cap", discount_type="fixed", discount_value=Decimal("10"),
            starts_at=flash_sale.starts_at, ends_at=flash_sale.ends_at,
            max_uses=2, current_uses=1,
        )
        repo = InMemoryOfferRepository(flash_sales=[sale])
        assert await repo.increment_flash_sale_uses_if_below_limit("fs-cap") is True
        assert await repo.increment_flash_sale_uses_if_below_limit("fs-cap") is False

    @pytest.mark.asyncio
    async def test_load_snapshot_filters_inactive(self, now, welcome_coupon, buy_two_get_one, flash_sale):
        expired = FlashSaleRule(
            id="fs-old", discount_type="fixed", discount_value=Decimal("10"),
            starts_at=now - timedelta(days=3), ends_at=now - timedelta(days=2),
            products=(FlashSaleProductRule(product_id="comic-a"),),
        )
        paused = BxgyOfferRule(
            id="bx-paused", buy_quantity=1, get_quantity=1, get_discount_type="free",
            buy_product_id="comic-a", get_product_id="comic-b", is_active=False,
        )
        repo = InMemoryOfferRepository(
            coupons=[welcome_coupon],
            bxgy_offers=[buy_two_get_one, paused],
            flash_sales=[flash_sale, expired],
        )
        snapshot = await repo.load_snapshot(now, coupon_code="Welcome20")
        assert snapshot.coupons == (welcome_coupon,)
        assert [o.id for o in snapshot.bxgy_offers] == ["bx-1"]
        assert [s.id for s in snapshot.flash_sales] == ["fs-1"]

    @pytest.mark.asyncio
    async def test_load_snapshot_without_coupon(self, now, welcome_coupon):
        snapshot = await InMemoryOfferRepository(coupons=[welcome_coupon]).load_snapshot(now)
        assert snapshot.coupons == ()

    @pytest.mark.asyncio
    async def test_redeem_promotions_reports_rejections(self, limited_coupon, buy_two_get_one, flash_sale):
        repo = InMemoryOfferRepository(
            coupons=[limited_coupon], bxgy_offers=[buy_two_get_one], flash_sales=[flash_sale],
        )
        first = await repo.redeem_promotions("c-last", ["bx-1"], ["fs-1"])
        assert first.fully_redeemed
        assert first.coupon_redeemed is True
        assert (await repo.get_bxgy_offer("bx-1")).current_uses == 1
        assert (await repo.get_flash_sale("fs-1")).current_uses == 1

        second = await repo.redeem_promotions("c-last")
        assert second.coupon_redeemed is False
        assert second.rejected == ["coupon:c-last"]


class TestSqlOfferRepository:
    """Conditional UPDATEs report success through rowcount."""

    @pytest.mark.asyncio
    async def test_increment_succeeds_when_row_updated(self, mock_db):
        mock_db.execute.return_value = MagicMock(rowcount=1)
        repo = SqlOfferRepository(mock_db)
        assert await repo.increment_coupon_usage_if_below_limit("c1") is True
        mock_db.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_increment_fails_when_limit_reached(self, mock_db):
        mock_db.execute.return_value = MagicMock(rowcount=0)
        repo = SqlOfferRepository(mock_db)
        assert await repo.increment_coupon_usage_if_below_limit("c1") is False
        assert await repo.increment_bxgy_uses_if_below_limit("b1") is False
        assert await repo.increment_flash_sale_uses_if_below_limit("f1") is False

    @pytest.mark.asyncio
    async def test_coupon_lookup_converts_row(self, mock_db):
        row = Coupon(id="c1", code="FIRST20", discount_type="percentage", discount_value=Decimal("20"), usage_count=0, is_active=True)
        result = MagicMock()
        result.scalar_one_or_none.return_value = row
        mock_db.execute.return_value = result

        rule = await SqlOfferRepository(mock_db).get_coupon_by_code("first20")

        assert rule.id == "c1"
        assert rule.normalized_code == "FIRST20"

    @pytest.mark.asyncio
    async def test_coupon_lookup_missing(self, mock_db):
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_db.execute.return_value = result
        assert await SqlOfferRepository(mock_db).get_coupon_by_code("NOPE") is None
