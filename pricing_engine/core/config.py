"""
Application configuration

Pricing knobs (shipping threshold, flat rate, discount ceiling) and the
storage/payment settings the engine's collaborators need. Every field can be
overridden from the environment or a .env file.
"""
import logging
from decimal import Decimal
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Storefront Pricing Engine"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = ""

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def convert_database_url(cls, v):
        """Convert postgres:// URLs to asyncpg format."""
        if not v:
            return v
        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql+asyncpg://", 1)
        elif v.startswith("postgresql://") and "+asyncpg" not in v:
            v = v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 3600  # 1 hour

    # Pricing
    CURRENCY: str = "INR"
    CURRENCY_SYMBOL: str = "₹"
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal("499")
    FLAT_SHIPPING_RATE: Decimal = Decimal("49")
    # Ceiling on coupon + BXGY discounts as a percentage of subtotal (None = no ceiling)
    MAX_DISCOUNT_PERCENT: Optional[Decimal] = None

    @field_validator("MAX_DISCOUNT_PERCENT")
    @classmethod
    def validate_discount_ceiling(cls, v):
        if v is not None and not (Decimal("0") <= v <= Decimal("100")):
            raise ValueError("MAX_DISCOUNT_PERCENT must be between 0 and 100")
        return v

    # Stripe Payments
    STRIPE_SECRET_KEY: str = ""
    STRIPE_MINIMUM_AMOUNT_CENTS: int = 50

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()

if settings.is_production and not settings.DATABASE_URL:
    logger.warning("DATABASE_URL is not set; storage-backed repositories are unavailable")
