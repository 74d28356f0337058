"""
Tests for Buy-X-Get-Y offer evaluation.
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from pricing_engine.core.exceptions import OfferReferenceMissingError
from pricing_engine.services.bxgy_evaluator import (
    buy_quantity_in_cart,
    calculate_bxgy_discount,
    evaluate_bxgy,
    resolve_get_product,
)
from pricing_engine.services.catalog import CatalogSnapshot
from pricing_engine.services.rules import BxgyOfferRule, ProductSnapshot


class TestBuyQuantity:

    def test_product_trigger_counts_that_product(self, make_line, buy_two_get_one):
        lines = [make_line("comic-a", 2, 200), make_line("comic-b", 5, 150)]
        assert buy_quantity_in_cart(buy_two_get_one, lines) == 2

    def test_category_trigger_sums_across_lines(self, make_line):
        offer = BxgyOfferRule(
            buy_quantity=3, get_quantity=1, get_discount_type="free",
            buy_category_id="comics", get_product_id="bookmark",
        )
        lines = [
            make_line("comic-a", 1, 200, category_id="comics"),
            make_line("comic-b", 2, 150, category_id="comics"),
            make_line("figure-1", 4, 1000, category_id="figures"),
        ]
        assert buy_quantity_in_cart(offer, lines) == 3


class TestResolveGetProduct:

    def test_product_target(self, catalog, buy_two_get_one):
        assert resolve_get_product(buy_two_get_one, catalog).id == "comic-b"

    def test_category_target_picks_cheapest(self, catalog):
        offer = BxgyOfferRule(
            buy_quantity=1, get_quantity=1, get_discount_type="free",
            buy_product_id="figure-1", get_category_id="comics",
        )
        assert resolve_get_product(offer, catalog).id == "comic-b"

    def test_category_tie_goes_to_smallest_id(self):
        catalog = CatalogSnapshot([
            ProductSnapshot(id="zeta", price=Decimal("50"), category_id="c"),
            ProductSnapshot(id="alpha", price=Decimal("50"), category_id="c"),
        ])
        offer = BxgyOfferRule(
            buy_quantity=1, get_quantity=1, get_discount_type="free",
            buy_product_id="x", get_category_id="c",
        )
        assert resolve_get_product(offer, catalog).id == "alpha"

    def test_missing_reference_raises(self):
        offer = BxgyOfferRule(
            id="bx-9", buy_quantity=1, get_quantity=1, get_discount_type="free",
            buy_product_id="x", get_product_id="ghost",
        )
        with pytest.raises(OfferReferenceMissingError) as exc:
            resolve_get_product(offer, CatalogSnapshot())
        assert exc.value.details == {"offer_id": "bx-9", "reference": "product:ghost"}


class TestBxgyDiscount:

    @pytest.fixture
    def get_product(self):
        return ProductSnapshot(id="g", price=Decimal("150"))

    def make_offer(self, discount_type, value="0", get_quantity=1):
        return BxgyOfferRule(
            buy_quantity=1, get_quantity=get_quantity, get_discount_type=discount_type,
            get_discount_value=Decimal(value), buy_product_id="b", get_product_id="g",
        )

    def test_free(self, get_product):
        assert calculate_bxgy_discount(self.make_offer("free", get_quantity=2), get_product) == Decimal("300.00")

    def test_percentage(self, get_product):
        assert calculate_bxgy_discount(self.make_offer("percentage", "50"), get_product) == Decimal("75.00")

    def test_fixed_per_unit(self, get_product):
        assert calculate_bxgy_discount(self.make_offer("fixed", "40", get_quantity=2), get_product) == Decimal("80.00")


class TestEvaluateBxgy:

    def test_buy_two_get_one_free(self, now, catalog, make_line, buy_two_get_one):
        lines = [make_line("comic-a", 2, 200)]
        applications = evaluate_bxgy(lines, [buy_two_get_one], now, catalog)
        assert len(applications) == 1
        assert applications[0].discount_amount == Decimal("150.00")
        assert applications[0].product_id == "comic-b"

    def test_below_buy_quantity_does_not_qualify(self, now, catalog, make_line, buy_two_get_one):
        assert evaluate_bxgy([make_line("comic-a", 1, 200)], [buy_two_get_one], now, catalog) == []

    def test_get_product_need_not_be_in_cart(self, now, catalog, make_line, buy_two_get_one):
        lines = [make_line("comic-a", 3, 200)]
        assert evaluate_bxgy(lines, [buy_two_get_one], now, catalog)[0].product_id == "comic-b"

    def test_each_offer_applies_once_per_cart(self, now, catalog, make_line, buy_two_get_one):
        lines = [make_line("comic-a", 6, 200)]
        applications = evaluate_bxgy(lines, [buy_two_get_one], now, catalog)
        assert [a.discount_amount for a in applications] == [Decimal("150.00")]

    def test_all_qualifying_offers_returned(self, now, catalog, make_line, buy_two_get_one):
        bookmark_offer = BxgyOfferRule(
            id="bx-2", buy_quantity=1, get_quantity=1, get_discount_type="free",
            buy_category_id="figures", get_product_id="bookmark",
        )
        lines = [make_line("comic-a", 2, 200), make_line("figure-1", 1, 1000, category_id="figures")]
        applications = evaluate_bxgy(lines, [buy_two_get_one, bookmark_offer], now, catalog)
        assert [a.offer.id for a in applications] == ["bx-1", "bx-2"]

    def test_out_of_window_offer_ignored(self, now, catalog, make_line):
        offer = BxgyOfferRule(
            buy_quantity=1, get_quantity=1, get_discount_type="free",
            buy_product_id="comic-a", get_product_id="comic-b",
            ends_at=now - timedelta(minutes=1),
        )
        assert evaluate_bxgy([make_line("comic-a", 1, 200)], [offer], now, catalog) == []

    def test_exhausted_offer_ignored(self, now, catalog, make_line):
        offer = BxgyOfferRule(
            buy_quantity=1, get_quantity=1, get_discount_type="free",
            buy_product_id="comic-a", get_product_id="comic-b",
            max_uses=3, current_uses=3,
        )
        assert evaluate_bxgy([make_line("comic-a", 1, 200)], [offer], now, catalog) == []

    def test_per_customer_limit(self, now, catalog, make_line, buy_two_get_one):
        lines = [make_line("comic-a", 2, 200)]
        assert evaluate_bxgy(lines, [buy_two_get_one], now, catalog, customer_usage={"bx-1": 1}) == []

    def test_missing_reference_skips_only_that_offer(self, now, catalog, make_line, buy_two_get_one):
        broken = BxgyOfferRule(
            id="bx-broken", buy_quantity=1, get_quantity=1, get_discount_type="free",
            buy_product_id="comic-a", get_product_id="discontinued",
        )
        lines = [make_line("comic-a", 2, 200)]
        applications = evaluate_bxgy(lines, [broken, buy_two_get_one], now, catalog)
        assert [a.offer.id for a in applications] == ["bx-1"]
