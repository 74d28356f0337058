"""
Catalog Snapshot

Read-only product lookup for one pricing pass. The caller loads the snapshot
once (from the database or anywhere else) and hands it to the evaluators.
"""
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from pricing_engine.services.rules import ProductSnapshot
from pricing_engine.models.product import Product

logger = logging.getLogger(__name__)


class CatalogSnapshot:
    """Products keyed by id, with a secondary category index."""

    def __init__(self, products: Iterable[ProductSnapshot] = ()):
        self._products: Dict[str, ProductSnapshot] = {}
        self._by_category: Dict[str, List[ProductSnapshot]] = {}
        for product in products:
            self._products[product.id] = product
            if product.category_id is not None:
                self._by_category.setdefault(product.category_id, []).append(product)

    def __len__(self) -> int:
        return len(self._products)

    def __contains__(self, product_id: str) -> bool:
        return product_id in self._products

    def get_product(self, product_id: str) -> Optional[ProductSnapshot]:
        return self._products.get(product_id)

    def get_products_by_category(self, category_id: str) -> List[ProductSnapshot]:
        return list(self._by_category.get(category_id, []))

    def cheapest_in_category(self, category_id: str) -> Optional[ProductSnapshot]:
        """Lowest-priced product in a category; ties go to the smallest id."""
        candidates = self._by_category.get(category_id)
        if not candidates:
            return None
        return min(candidates, key=lambda p: (p.price, p.id))


async def load_catalog_snapshot(
    db: AsyncSession,
    product_ids: Iterable[str],
    category_ids: Iterable[str] = (),
) -> CatalogSnapshot:
    """
    Load the products a pricing pass needs.

    Args:
        db: Database session
        product_ids: Products referenced by the cart and by offer rules
        category_ids: Categories whose products may be a BXGY "get" target

    Returns:
        CatalogSnapshot over every matching product
    """
    product_ids = list({str(pid) for pid in product_ids if pid is not None})
    category_ids = list({str(cid) for cid in category_ids if cid is not None})

    if not product_ids and not category_ids:
        return CatalogSnapshot()

    filters = []
    if product_ids:
        filters.append(Product.id.in_(product_ids))
    if category_ids:
        filters.append(Product.category_id.in_(category_ids))

    result = await db.execute(
        select(Product).where(or_(*filters), Product.is_active == True)
    )
    products = result.scalars().all()

    logger.debug(
        f"Loaded catalog snapshot: {len(products)} products "
        f"({len(product_ids)} ids, {len(category_ids)} categories requested)"
    )
    return CatalogSnapshot(p.to_snapshot() for p in products)
