"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
)
from models.product import (
    Provider,
    CanonicalProduct,
    CatalogProductResponse,
    CatalogListResponse,
)
from models.category import CategoryRow
from models.markup import MarkupSettings, MarkupResolution
from models.sync import (
    MergeResult,
    SkuConflict,
    ProviderReport,
    SyncResult,
    ImageLookup,
    ImageBackfillResult,
)

__all__ = [
    # Base
    "BaseSchema",

    # Product
    "Provider",
    "CanonicalProduct",
    "CatalogProductResponse",
    "CatalogListResponse",

    # Category
    "CategoryRow",

    # Markup
    "MarkupSettings",
    "MarkupResolution",

    # Sync
    "MergeResult",
    "SkuConflict",
    "ProviderReport",
    "SyncResult",
    "ImageLookup",
    "ImageBackfillResult",
]
