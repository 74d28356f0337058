"""
Tests for flash-sale price resolution.
"""
from datetime import timedelta
from decimal import Decimal

from pricing_engine.services.flash_sale_resolver import ResolvedPrice, resolve_unit_price, sale_price
from pricing_engine.services.rules import FlashSaleProductRule, FlashSaleRule


def make_sale(now, sale_id="fs", discount_type="percentage", value="10", entries=None, **kwargs):
    return FlashSaleRule(
        id=sale_id,
        discount_type=discount_type,
        discount_value=Decimal(value),
        starts_at=kwargs.pop("starts_at", now - timedelta(hours=1)),
        ends_at=kwargs.pop("ends_at", now + timedelta(hours=1)),
        products=entries or (FlashSaleProductRule(product_id="p1"),),
        **kwargs,
    )


class TestSalePrice:
    """Price under a single sale."""

    def test_special_price_wins_over_discount(self, now):
        sale = make_sale(now, value="50")
        entry = FlashSaleProductRule(product_id="p1", special_price=Decimal("79"))
        assert sale_price(sale, entry, Decimal("100")) == Decimal("79.00")

    def test_percentage_discount(self, now):
        sale = make_sale(now, value="15")
        entry = sale.products[0]
        assert sale_price(sale, entry, Decimal("200")) == Decimal("170.00")

    def test_fixed_discount(self, now):
        sale = make_sale(now, discount_type="fixed", value="30")
        assert sale_price(sale, sale.products[0], Decimal("200")) == Decimal("170.00")

    def test_fixed_discount_clamped_at_zero(self, now):
        sale = make_sale(now, discount_type="fixed", value="500")
        assert sale_price(sale, sale.products[0], Decimal("200")) == Decimal("0.00")

    def test_special_price_above_base_clamped(self, now):
        sale = make_sale(now)
        entry = FlashSaleProductRule(product_id="p1", special_price=Decimal("150"))
        assert sale_price(sale, entry, Decimal("100")) == Decimal("100.00")


class TestResolveUnitPrice:
    """Effective unit price for a product at a moment."""

    def test_no_sales_returns_base_price(self, now):
        resolved = resolve_unit_price("p1", Decimal("100"), now, [])
        assert resolved.unit_price == Decimal("100")
        assert resolved.flash_sale_id is None
        assert not resolved.is_discounted

    def test_product_not_listed_returns_base_price(self, now):
        sale = make_sale(now, entries=(FlashSaleProductRule(product_id="other"),))
        resolved = resolve_unit_price("p1", Decimal("100"), now, [sale])
        assert resolved.unit_price == Decimal("100")

    def test_live_sale_applies(self, now):
        resolved = resolve_unit_price("p1", Decimal("100"), now, [make_sale(now)])
        assert resolved.unit_price == Decimal("90.00")
        assert resolved.flash_sale_id == "fs"

    def test_window_bounds_are_inclusive(self, now):
        starts_now = make_sale(now, starts_at=now, ends_at=now + timedelta(hours=1))
        ends_now = make_sale(now, starts_at=now - timedelta(hours=1), ends_at=now)
        assert resolve_unit_price("p1", 100, now, [starts_now]).is_discounted
        assert resolve_unit_price("p1", 100, now, [ends_now]).is_discounted

    def test_expired_sale_ignored(self, now):
        sale = make_sale(now, starts_at=now - timedelta(days=2), ends_at=now - timedelta(seconds=1))
        assert resolve_unit_price("p1", 100, now, [sale]).unit_price == Decimal("100")

    def test_future_sale_ignored(self, now):
        sale = make_sale(now, starts_at=now + timedelta(seconds=1), ends_at=now + timedelta(days=1))
        assert resolve_unit_price("p1", 100, now, [sale]).unit_price == Decimal("100")

    def test_inactive_sale_ignored(self, now):
        sale = make_sale(now, is_active=False)
        assert resolve_unit_price("p1", 100, now, [sale]).unit_price == Decimal("100")

    def test_exhausted_sale_ignored(self, now):
        sale = make_sale(now, max_uses=5, current_uses=5)
        assert resolve_unit_price("p1", 100, now, [sale]).unit_price == Decimal("100")

    def test_lowest_price_wins_on_overlap(self, now):
        ten = make_sale(now, sale_id="ten", value="10")
        thirty = make_sale(now, sale_id="thirty", value="30")
        resolved = resolve_unit_price("p1", Decimal("100"), now, [ten, thirty])
        assert resolved.unit_price == Decimal("70.00")
        assert resolved.flash_sale_id == "thirty"

    def test_equal_price_tie_goes_to_earliest_end(self, now):
        late = make_sale(now, sale_id="a-late", ends_at=now + timedelta(hours=5))
        early = make_sale(now, sale_id="b-early", ends_at=now + timedelta(hours=2))
        assert resolve_unit_price("p1", 100, now, [late, early]).flash_sale_id == "b-early"

    def test_resolution_is_order_independent(self, now):
        sales = [
            make_sale(now, sale_id="x", value="20"),
            make_sale(now, sale_id="y", value="20"),
            make_sale(now, sale_id="z", discount_type="fixed", value="20"),
        ]
        first = resolve_unit_price("p1", 100, now, sales)
        second = resolve_unit_price("p1", 100, now, list(reversed(sales)))
        assert first == second
        assert first.flash_sale_id == "x"

    def test_naive_now_treated_as_utc(self, now):
        naive = now.replace(tzinfo=None)
        assert resolve_unit_price("p1", 100, naive, [make_sale(now)]).is_discounted

    def test_per_user_cap_is_carried(self, now):
        sale = make_sale(now, entries=(FlashSaleProductRule(product_id="p1", max_quantity_per_user=2),))
        resolved = resolve_unit_price("p1", 100, now, [sale])
        assert resolved.max_discounted_quantity == 2


class TestResolvedPriceLineTotal:
    """Split pricing when the per-user cap is below the line quantity."""

    def test_units_above_cap_pay_base_price(self):
        resolved = ResolvedPrice("p1", Decimal("100"), Decimal("80"), flash_sale_id="fs", max_discounted_quantity=2)
        assert resolved.discounted_quantity(5) == 2
        assert resolved.line_total(5) == Decimal("460.00")

    def test_uncapped_sale_discounts_every_unit(self):
        resolved = ResolvedPrice("p1", Decimal("100"), Decimal("80"), flash_sale_id="fs")
        assert resolved.line_total(3) == Decimal("240.00")

    def test_undiscounted_line(self):
        resolved = ResolvedPrice("p1", Decimal("100"), Decimal("100"))
        assert resolved.discounted_quantity(3) == 0
        assert resolved.line_total(3) == Decimal("300.00")
