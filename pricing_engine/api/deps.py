"""
API dependencies

Storage-backed collaborators for the routes. Tests swap these for in-memory
versions through `app.dependency_overrides`.
"""
from typing import Awaitable, Callable, Iterable, List, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pricing_engine.core.database import get_db
from pricing_engine.services.catalog import CatalogSnapshot, load_catalog_snapshot
from pricing_engine.services.loyalty_service import LedgerEntry, load_ledger
from pricing_engine.services.offer_repository import OfferRepository, SqlOfferRepository
from pricing_engine.services.pricing_service import PricingService, pricing_service

CatalogLoader = Callable[[Iterable[str], Iterable[str]], Awaitable[CatalogSnapshot]]
LedgerLoader = Callable[[Optional[str]], Awaitable[List[LedgerEntry]]]


async def get_offer_repository(db: AsyncSession = Depends(get_db)) -> OfferRepository:
    return SqlOfferRepository(db)


async def get_catalog_loader(db: AsyncSession = Depends(get_db)) -> CatalogLoader:
    async def loader(product_ids: Iterable[str], category_ids: Iterable[str] = ()) -> CatalogSnapshot:
        return await load_catalog_snapshot(db, product_ids, category_ids)
    return loader


async def get_ledger_loader(db: AsyncSession = Depends(get_db)) -> LedgerLoader:
    async def loader(user_id: Optional[str] = None) -> List[LedgerEntry]:
        return await load_ledger(db, user_id)
    return loader


def get_pricing_service() -> PricingService:
    return pricing_service
