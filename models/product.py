"""
Catalog product schemas.

CanonicalProduct is the provider-agnostic shape every adapter emits and
the merge stages. CatalogProductResponse is a stored row after sale
pricing has been applied.
"""

from pydantic import Field, field_validator
from typing import Optional
from decimal import Decimal
from datetime import datetime

from models.base import BaseSchema
from utils.number_utils import to_cents_decimal


class Provider:
    """Supplier identifiers as stored in catalog_products.provider."""
    ELIT = "elit"
    NEWBYTES = "newbytes"
    INVID = "invid"

    # Fixed order used when combining batches; later providers win SKU collisions
    ORDER = (ELIT, NEWBYTES, INVID)


class CanonicalProduct(BaseSchema):
    """
    Normalized supplier product ready for staging.

    Required: sku, name, price_usd (> 0), provider
    """

    sku: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=300)
    category: Optional[str] = Field(None, max_length=100)
    brand: Optional[str] = Field(None, max_length=100)
    price_usd: Decimal = Field(..., gt=0, description="Supplier price in USD, 2 decimals")
    price_ars: int = Field(..., ge=0, description="Local price derived from the reference rate")
    stock: int = Field(default=0, ge=0)
    image_url: Optional[str] = Field(None, max_length=500)
    provider: str = Field(..., min_length=1, max_length=20)
    warranty: Optional[str] = Field(None, max_length=50)
    dolar_rate: Decimal = Field(..., ge=0, description="Reference rate used for this row")

    @field_validator("price_usd", "dolar_rate")
    @classmethod
    def two_decimals(cls, v: Decimal) -> Decimal:
        """Store money at cent precision."""
        return to_cents_decimal(v)

    @field_validator("category", "brand", "image_url", "warranty", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Empty optional strings are stored as NULL."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def to_row(self) -> dict:
        """Row for the staging table (JSON-safe)."""
        return {
            "sku": self.sku,
            "name": self.name,
            "category": self.category,
            "brand": self.brand,
            "price_usd": float(self.price_usd),
            "price_ars": self.price_ars,
            "stock": self.stock,
            "image_url": self.image_url,
            "provider": self.provider,
            "warranty": self.warranty,
            "dolar_rate": float(self.dolar_rate),
        }


class CatalogProductResponse(BaseSchema):
    """
    Catalog row with sale pricing applied.

    Prices are the marked-up sale prices; markup_applied is a percentage.
    """

    id: int | str
    sku: str
    name: str
    category: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    price_usd: float
    price_ars: int
    stock: int = 0
    image_url: Optional[str] = None
    provider: Optional[str] = None
    warranty: Optional[str] = None
    featured: bool = False
    active: bool = True
    markup_pct: Optional[float] = Field(None, description="Product-level override, percent")
    markup_applied: float = Field(..., description="Effective markup, percent")
    markup_source: str = Field(..., pattern="^(product|category|global)$")
    updated_at: Optional[datetime] = None


class CatalogListResponse(BaseSchema):
    """Priced catalog page."""

    data: list[CatalogProductResponse]
    total: int
    limit: int
    offset: int
