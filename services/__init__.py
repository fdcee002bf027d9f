"""
Business logic services.

Each service handles one domain area.
"""

from services.markup_service import (
    MarkupCache,
    MarkupService,
    apply_sale_pricing,
    build_markup_settings,
    get_markup_cache,
    resolve_markup,
)
from services.catalog_merge_service import (
    CatalogMergeService,
    dedupe_by_sku,
    get_catalog_merge_service,
)
from services.sync_service import SyncService
from services.catalog_service import CatalogService, get_catalog_service
from services.invid_image_service import InvidImageService

__all__ = [
    "MarkupCache",
    "MarkupService",
    "apply_sale_pricing",
    "build_markup_settings",
    "get_markup_cache",
    "resolve_markup",
    "CatalogMergeService",
    "dedupe_by_sku",
    "get_catalog_merge_service",
    "SyncService",
    "CatalogService",
    "get_catalog_service",
    "InvidImageService",
]
