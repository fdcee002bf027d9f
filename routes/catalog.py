"""
Catalog API routes.

Prices are sale prices (markup applied at read time).
"""

from typing import Optional

from fastapi import APIRouter, Header, Query
import structlog

from models.product import CatalogListResponse, CatalogProductResponse
from routes.sync import check_cron_secret, handle_error
from services.catalog_service import get_catalog_service
from services.markup_service import get_markup_cache

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("", response_model=CatalogListResponse)
async def list_catalog(
    category: Optional[str] = Query(None, description="Filter by exact category name"),
    include_inactive: bool = Query(False, description="Include inactive products"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0)
):
    """List priced catalog products."""
    try:
        products, total = get_catalog_service().list_products(
            category=category,
            active_only=not include_inactive,
            limit=limit,
            offset=offset
        )
        return CatalogListResponse(data=products, total=total, limit=limit, offset=offset)
    except Exception as e:
        return handle_error(e)


@router.get("/{product_id}", response_model=CatalogProductResponse)
async def get_catalog_product(product_id: str):
    """Get one priced product."""
    try:
        return get_catalog_service().get_product(product_id)
    except Exception as e:
        return handle_error(e)


@router.post("/markup/invalidate")
async def invalidate_markup(
    secret: Optional[str] = Query(None),
    x_cron_secret: Optional[str] = Header(None)
):
    """Drop the cached markup snapshot after markup edits."""
    try:
        check_cron_secret(x_cron_secret, secret)
        get_markup_cache().invalidate()
        return {"invalidated": True}
    except Exception as e:
        return handle_error(e)
