"""
Catalog merge: staging load plus set-based upsert into catalog_products.

Steps for a non-empty batch:
    1. take the merge lease (one merge system-wide)
    2. truncate catalog_staging and bulk-insert the batch in chunks
    3. call merge_staged_products() which updates matched SKUs (keeping
       any existing image_url) and inserts new ones (inactive when they
       have no image); it returns the inserted/updated/total counts
    4. release the lease

Category reconciliation runs separately and only ever inserts.
See migrations/001_catalog_sync.sql for the database side.
"""

import socket
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional

import structlog

from config import get_supabase_client
from exceptions import CatalogMergeError, MergeInProgressError
from models.product import CanonicalProduct
from models.sync import MergeResult, SkuConflict

logger = structlog.get_logger(__name__)

STAGING_TABLE = "catalog_staging"
CATALOG_TABLE = "catalog_products"
CATEGORY_TABLE = "categories"
LOCK_TABLE = "sync_locks"
MERGE_LOCK_KEY = "catalog_merge"

STAGING_CHUNK_SIZE = 1000
CATEGORY_LOOKUP_CHUNK_SIZE = 200

# Serializes merges inside one process; the lease row covers other processes
_process_merge_lock = threading.Lock()


def chunk(items: list, size: int) -> Iterator[list]:
    """Yield consecutive slices of at most `size` items."""
    for i in range(0, len(items), size):
        yield items[i:i + size]


def dedupe_by_sku(products: list[CanonicalProduct]) -> tuple[list[CanonicalProduct], list[SkuConflict]]:
    """
    Keep one product per SKU, last one wins.

    The merge cannot touch the same key twice in one statement, so
    duplicates must be resolved before staging. Order of first
    appearance is preserved.
    """
    kept: dict[str, CanonicalProduct] = {}
    conflicts: list[SkuConflict] = []

    for product in products:
        previous = kept.get(product.sku)
        if previous is not None:
            conflicts.append(SkuConflict(
                sku=product.sku,
                kept_provider=product.provider,
                dropped_provider=previous.provider,
            ))
        kept[product.sku] = product

    return list(kept.values()), conflicts


def _is_duplicate_key(error: Exception) -> bool:
    text = str(error).lower()
    return "23505" in text or "duplicate key" in text


class CatalogMergeService:
    """
    Writes normalized batches into the catalog.

    Never touches description, markup_pct or featured on existing rows.
    """

    def __init__(self, lock_ttl_seconds: int = 900):
        self.db = get_supabase_client()
        self.lock_ttl_seconds = lock_ttl_seconds
        self.holder = f"{socket.gethostname()}:{uuid.uuid4().hex[:8]}"

    # ===================
    # LEASE
    # ===================

    def acquire_lease(self) -> None:
        """
        Insert the merge lease row.

        Stale leases (past expires_at) are removed first so a crashed run
        cannot block merges forever.

        Raises:
            MergeInProgressError: Another holder has a live lease
            CatalogMergeError: Lock table unreachable
        """
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=self.lock_ttl_seconds)

        try:
            (
                self.db.table(LOCK_TABLE)
                .delete()
                .eq("lock_key", MERGE_LOCK_KEY)
                .lt("expires_at", now.isoformat())
                .execute()
            )
            self.db.table(LOCK_TABLE).insert({
                "lock_key": MERGE_LOCK_KEY,
                "holder": self.holder,
                "acquired_at": now.isoformat(),
                "expires_at": expires_at.isoformat(),
            }).execute()
        except Exception as e:
            if _is_duplicate_key(e):
                current = self._current_lease()
                logger.warning("merge_lease_busy", holder=current.get("holder"))
                raise MergeInProgressError(
                    holder=current.get("holder"),
                    expires_at=current.get("expires_at")
                )
            logger.error("merge_lease_failed", error=str(e))
            raise CatalogMergeError("lock", str(e))

        logger.debug("merge_lease_acquired", holder=self.holder)

    def release_lease(self) -> None:
        """Delete our lease row. Failures are logged; the lease expires anyway."""
        try:
            (
                self.db.table(LOCK_TABLE)
                .delete()
                .eq("lock_key", MERGE_LOCK_KEY)
                .eq("holder", self.holder)
                .execute()
            )
            logger.debug("merge_lease_released", holder=self.holder)
        except Exception as e:
            logger.error("merge_lease_release_failed", holder=self.holder, error=str(e))

    def _current_lease(self) -> dict:
        try:
            result = (
                self.db.table(LOCK_TABLE)
                .select("holder, expires_at")
                .eq("lock_key", MERGE_LOCK_KEY)
                .execute()
            )
        except Exception as e:
            logger.warning("merge_lease_lookup_failed", error=str(e))
            return {}
        return result.data[0] if result.data else {}

    @contextmanager
    def lease(self) -> Iterator[None]:
        """Hold the process lock and the lease row for the block."""
        with _process_merge_lock:
            self.acquire_lease()
            try:
                yield
            finally:
                self.release_lease()

    # ===================
    # MERGE
    # ===================

    def merge(self, products: list[CanonicalProduct]) -> MergeResult:
        """
        Stage and upsert a batch keyed by SKU.

        Args:
            products: Normalized batch (duplicate SKUs: last wins)

        Returns:
            MergeResult with counts reported by the merge itself

        Raises:
            MergeInProgressError: Another merge is running
            CatalogMergeError: Any staging or merge failure
        """
        if not products:
            logger.info("merge_skipped_empty_batch")
            return MergeResult()

        batch, conflicts = dedupe_by_sku(products)
        if conflicts:
            logger.warning("merge_duplicate_skus", count=len(conflicts))

        logger.info("merge_started", rows=len(batch))

        with self.lease():
            self._clear_staging()
            self._load_staging(batch)
            result = self._merge_staged()

        logger.info(
            "merge_complete",
            inserted=result.inserted,
            updated=result.updated,
            total=result.total
        )
        return result

    def _clear_staging(self) -> None:
        try:
            self.db.rpc("truncate_catalog_staging", {}).execute()
        except Exception as e:
            logger.error("staging_clear_failed", error=str(e))
            raise CatalogMergeError("clear_staging", str(e))

    def _load_staging(self, batch: list[CanonicalProduct]) -> None:
        rows = [p.to_row() for p in batch]
        for index, part in enumerate(chunk(rows, STAGING_CHUNK_SIZE)):
            try:
                self.db.table(STAGING_TABLE).insert(part).execute()
            except Exception as e:
                logger.error("staging_load_failed", chunk=index, rows=len(part), error=str(e))
                raise CatalogMergeError("load_staging", str(e), details={"chunk": index})

        logger.debug("staging_loaded", rows=len(rows))

    def _merge_staged(self) -> MergeResult:
        try:
            response = self.db.rpc("merge_staged_products", {}).execute()
        except Exception as e:
            logger.error("merge_statement_failed", error=str(e))
            raise CatalogMergeError("merge", str(e))

        data = response.data
        if isinstance(data, list):
            data = data[0] if data else {}
        data = data or {}

        return MergeResult(
            inserted=int(data.get("inserted") or 0),
            updated=int(data.get("updated") or 0),
            total=int(data.get("total") or 0),
        )

    # ===================
    # CATEGORIES
    # ===================

    def sync_categories(self, products: list[CanonicalProduct]) -> int:
        """
        Insert category names seen in the batch that do not exist yet.

        Exact name match; never updates or deletes existing categories.

        Returns:
            Number of categories created
        """
        names: list[str] = []
        seen: set[str] = set()
        for product in products:
            name = (product.category or "").strip()
            if name and name not in seen:
                seen.add(name)
                names.append(name)

        if not names:
            return 0

        try:
            existing: set[str] = set()
            for part in chunk(names, CATEGORY_LOOKUP_CHUNK_SIZE):
                result = (
                    self.db.table(CATEGORY_TABLE)
                    .select("name")
                    .in_("name", part)
                    .execute()
                )
                existing.update(row["name"] for row in result.data or [])

            missing = [n for n in names if n not in existing]
            if missing:
                self.db.table(CATEGORY_TABLE).insert([{"name": n} for n in missing]).execute()
        except Exception as e:
            logger.error("category_sync_failed", error=str(e))
            raise CatalogMergeError("categories", str(e))

        logger.info("categories_synced", seen=len(names), created=len(missing))
        return len(missing)


def get_catalog_merge_service(lock_ttl_seconds: Optional[int] = None) -> CatalogMergeService:
    """Create a merge service (one lease holder id per instance)."""
    if lock_ttl_seconds is None:
        from config.settings import get_settings
        lock_ttl_seconds = get_settings().merge_lock_ttl_seconds
    return CatalogMergeService(lock_ttl_seconds=lock_ttl_seconds)
