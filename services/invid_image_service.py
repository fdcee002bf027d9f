"""
Image backfill for Invid products.

Invid rows arrive without images, so the merge inserts them inactive.
Each backfill run takes the next batch of Invid products that still
have no image, logs in once, scrapes their storefront pages in
parallel, and sets image_url + active for every image found. Run it
again until pending reaches 0.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Optional

import structlog

from config import get_supabase_client
from config.settings import Settings, get_settings
from exceptions import DatabaseError, ProviderSessionInvalidError
from integrations.providers import provider_params
from integrations.providers.invid import login
from integrations.providers.invid_images import SESSION_INVALID, fetch_product_image
from models.product import Provider
from models.sync import ImageBackfillResult, ImageLookup

logger = structlog.get_logger(__name__)

CATALOG_TABLE = "catalog_products"


class InvidImageService:
    """Finds and stores images for image-less Invid products."""

    def __init__(self, settings: Optional[Settings] = None):
        self.db = get_supabase_client()
        self.settings = settings or get_settings()

    def pending(self, limit: int) -> tuple[list[dict], int]:
        """
        Next image-less Invid products (oldest first) and how many remain.

        Raises:
            DatabaseError: If the query fails
        """
        try:
            response = (
                self.db.table(CATALOG_TABLE)
                .select("id, sku, name", count="exact")
                .eq("provider", Provider.INVID)
                .is_("image_url", "null")
                .order("id")
                .limit(limit)
                .execute()
            )
        except Exception as e:
            logger.error("invid_images_query_failed", error=str(e))
            raise DatabaseError("select", str(e))

        rows = response.data or []
        return rows, response.count if response.count is not None else len(rows)

    def lookup(self, products: list[dict], cookie: str) -> list[ImageLookup]:
        """Scrape product pages concurrently; results keep input order."""
        if not products:
            return []

        workers = min(self.settings.invid_image_workers, len(products))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="invid-image") as executor:
            return list(executor.map(
                lambda p: fetch_product_image(
                    p["sku"],
                    p.get("name") or "",
                    cookie,
                    self.settings.invid_base_url,
                    self.settings.invid_image_timeout_seconds,
                ),
                products,
            ))

    def save_image(self, found: ImageLookup) -> None:
        """Store the image and activate the product."""
        try:
            (
                self.db.table(CATALOG_TABLE)
                .update({
                    "image_url": found.image_url,
                    "active": True,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                })
                .eq("sku", found.sku)
                .eq("provider", Provider.INVID)
                .execute()
            )
        except Exception as e:
            logger.error("invid_image_save_failed", sku=found.sku, error=str(e))
            raise DatabaseError("update", str(e), details={"sku": found.sku})

    def backfill(self, limit: Optional[int] = None) -> ImageBackfillResult:
        """
        Process one batch.

        Args:
            limit: Batch size (default INVID_IMAGE_BATCH_SIZE)

        Raises:
            ProviderAuthError: Credentials missing or login rejected
            ProviderSessionInvalidError: Every page answered with the login form
            DatabaseError: Query or update failed
        """
        started = time.monotonic()
        products, total_pending = self.pending(limit or self.settings.invid_image_batch_size)

        if not products:
            logger.info("invid_images_up_to_date")
            return ImageBackfillResult()

        logger.info("invid_images_started", batch=len(products), pending=total_pending)

        params = provider_params(Provider.INVID, self.settings)
        cookie = login(params)
        lookups = self.lookup(products, cookie)

        if all(item.error == SESSION_INVALID for item in lookups):
            logger.error("invid_images_session_invalid", batch=len(lookups))
            raise ProviderSessionInvalidError(
                Provider.INVID,
                source=self.settings.invid_base_url,
                content_type="text/html",
            )

        found = 0
        misses: list[ImageLookup] = []
        for item in lookups:
            if item.image_url:
                self.save_image(item)
                found += 1
            else:
                misses.append(item)
                logger.warning("invid_image_not_found", sku=item.sku, error=item.error)

        result = ImageBackfillResult(
            processed=len(products),
            found=found,
            not_found=len(misses),
            pending=max(0, total_pending - found),
            misses=misses,
            duration_sec=round(time.monotonic() - started, 1),
        )
        logger.info(
            "invid_images_complete",
            processed=result.processed,
            found=result.found,
            not_found=result.not_found,
            pending=result.pending
        )
        return result
