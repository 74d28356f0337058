from pricing_engine.models.product import Category, Product
from pricing_engine.models.coupon import Coupon
from pricing_engine.models.bxgy_offer import BxgyOffer
from pricing_engine.models.flash_sale import FlashSale, FlashSaleProduct
from pricing_engine.models.loyalty import LoyaltyPoint

__all__ = [
    "Category",
    "Product",
    "Coupon",
    "BxgyOffer",
    "FlashSale",
    "FlashSaleProduct",
    "LoyaltyPoint",
]
