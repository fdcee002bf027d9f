"""
Catalog read path.

Stored rows hold supplier prices; sale prices are computed per request
from the markup snapshot so markup edits apply without a re-sync.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from exceptions import CatalogProductNotFoundError, DatabaseError
from models.product import CatalogProductResponse
from services.markup_service import MarkupCache, apply_sale_pricing, get_markup_cache

logger = structlog.get_logger(__name__)


class CatalogService:
    """Priced access to catalog_products."""

    def __init__(self, markup_cache: Optional[MarkupCache] = None):
        self.db = get_supabase_client()
        self.table = "catalog_products"
        self.markup_cache = markup_cache or get_markup_cache()

    def list_products(
        self,
        category: Optional[str] = None,
        active_only: bool = True,
        limit: int = 50,
        offset: int = 0
    ) -> tuple[list[CatalogProductResponse], int]:
        """
        Get a page of priced products ordered by name.

        Returns:
            Tuple of (products list, total count)
        """
        logger.info(
            "getting_catalog",
            category=category,
            active_only=active_only,
            limit=limit,
            offset=offset
        )

        try:
            query = self.db.table(self.table).select("*", count="exact")

            if active_only:
                query = query.eq("active", True)
            if category:
                query = query.eq("category", category)

            query = query.order("name").range(offset, offset + limit - 1)
            result = query.execute()
        except Exception as e:
            logger.error("get_catalog_failed", error=str(e))
            raise DatabaseError("select", str(e))

        settings = self.markup_cache.get()
        products = [
            CatalogProductResponse(**apply_sale_pricing(row, settings))
            for row in result.data or []
        ]
        total = result.count if result.count is not None else len(products)

        logger.info("catalog_retrieved", count=len(products), total=total)
        return products, total

    def get_product(self, product_id: str) -> CatalogProductResponse:
        """
        Get one priced product.

        Raises:
            CatalogProductNotFoundError: If the row doesn't exist
        """
        logger.debug("getting_catalog_product", product_id=product_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", product_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_catalog_product_failed", product_id=product_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise CatalogProductNotFoundError(product_id)

        return CatalogProductResponse(
            **apply_sale_pricing(result.data[0], self.markup_cache.get())
        )


# Singleton instance
_catalog_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get or create CatalogService instance."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService()
    return _catalog_service
