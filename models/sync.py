"""
Sync run schemas.

MergeResult is derived from the merge outcome; SyncResult is the run
report persisted under settings.last_sync_result.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone


class MergeResult(BaseModel):
    """Rows touched by one catalog merge."""

    inserted: int = Field(default=0, ge=0)
    updated: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)


class SkuConflict(BaseModel):
    """Same SKU delivered by two providers in one run."""

    sku: str
    kept_provider: str
    dropped_provider: str


class ProviderReport(BaseModel):
    """Outcome of one provider's fetch."""

    provider: str
    parsed: int = 0
    error: Optional[str] = None
    error_code: Optional[str] = None
    skipped: Optional[str] = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and self.skipped is None


class SyncResult(BaseModel):
    """Full report of a sync run."""

    success: bool
    dolar_rate: Optional[float] = None
    providers: dict[str, ProviderReport] = Field(default_factory=dict)
    merge: MergeResult = Field(default_factory=MergeResult)
    categories_created: int = 0
    conflicts: list[SkuConflict] = Field(default_factory=list)
    total: int = 0
    error: Optional[str] = None
    duration_sec: float = 0.0
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class ImageLookup(BaseModel):
    """Result of scraping one product page for its image."""

    sku: str
    image_url: Optional[str] = None
    product_url: Optional[str] = None
    error: Optional[str] = None


class ImageBackfillResult(BaseModel):
    """Report of one image backfill run."""

    processed: int = 0
    found: int = 0
    not_found: int = 0
    pending: int = 0
    misses: list[ImageLookup] = Field(default_factory=list)
    duration_sec: float = 0.0
