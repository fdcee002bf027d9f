"""
Markup resolution and sale pricing.

Precedence (first match wins):
    1. product.markup_pct           → source "product"
    2. categories[product.category] → source "category"
       (a category without its own markup inherits its direct parent's)
    3. settings.global_markup_pct   → source "global"

apply_sale_pricing is pure: same row + same snapshot, same output.
The snapshot is cached by MarkupCache for a short freshness window.
"""

import math
import threading
import time
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional

import structlog

from config import get_supabase_client
from exceptions import DatabaseError
from models.category import CategoryRow
from models.markup import MarkupResolution, MarkupSettings
from utils.number_utils import round_half_up, round_to_cents, round_to_tenths

logger = structlog.get_logger(__name__)

GLOBAL_MARKUP_KEY = "global_markup_pct"
DEFAULT_TTL_SECONDS = 120


def _pct(value: Any) -> Optional[float]:
    """Percent value from a DB cell; None when absent or not a finite number."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        pct = float(value)
    except (TypeError, ValueError):
        return None
    return pct if math.isfinite(pct) else None


def _dec(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


# ===================
# SNAPSHOT BUILDING
# ===================

def build_markup_settings(
    global_pct: Any,
    categories: Iterable[Mapping[str, Any]],
) -> MarkupSettings:
    """
    Build the category lookup from category rows.

    Inheritance is one level deep: a category with no markup_pct uses
    its parent's own markup_pct, never a grandparent's. Categories that
    resolve to nothing are omitted so the global markup applies.

    Args:
        global_pct: Global markup in percent (e.g. "25" or 25.0)
        categories: Rows with id, name, markup_pct, parent_id

    Returns:
        MarkupSettings with fractions
    """
    by_id: dict[Any, dict[str, Any]] = {}
    for row in categories:
        by_id[row.get("id")] = {
            "name": str(row.get("name") or "").strip(),
            "markup_pct": _pct(row.get("markup_pct")),
            "parent_id": row.get("parent_id"),
        }

    category_markup: dict[str, float] = {}
    for cat in by_id.values():
        if not cat["name"]:
            continue

        pct = cat["markup_pct"]
        if pct is None and cat["parent_id"] is not None:
            parent = by_id.get(cat["parent_id"])
            if parent is not None:
                pct = parent["markup_pct"]

        if pct is not None:
            category_markup[cat["name"]] = pct / 100

    return MarkupSettings(
        global_markup=(_pct(global_pct) or 0.0) / 100,
        category_markup=category_markup,
    )


# ===================
# PRICING
# ===================

def resolve_markup(product: Mapping[str, Any], settings: MarkupSettings) -> MarkupResolution:
    """Effective markup fraction for one catalog row."""
    own = _pct(product.get("markup_pct"))
    if own is not None:
        return MarkupResolution(markup=own / 100, source="product")

    category = str(product.get("category") or "").strip()
    if category and category in settings.category_markup:
        return MarkupResolution(markup=settings.category_markup[category], source="category")

    return MarkupResolution(markup=settings.global_markup, source="global")


def apply_sale_pricing(product: Mapping[str, Any], settings: MarkupSettings) -> dict[str, Any]:
    """
    Return a copy of the row with sale prices.

    - price_ars: integer, half-up
    - price_usd: 2 decimals, half-up
    - markup_applied: percent with 1 decimal
    - markup_source: product | category | global
    - active: True unless the row is explicitly inactive
    """
    resolution = resolve_markup(product, settings)
    multiplier = Decimal(1) + _dec(resolution.markup)

    price_ars = product.get("price_ars") or 0
    price_usd = product.get("price_usd") or 0
    active = product.get("active")

    return {
        **product,
        "price_ars": round_half_up(_dec(price_ars) * multiplier),
        "price_usd": round_to_cents(_dec(price_usd) * multiplier),
        "markup_applied": round_to_tenths(_dec(resolution.markup) * 100),
        "markup_source": resolution.source,
        "active": True if active is None else bool(active),
    }


# ===================
# CACHE
# ===================

class MarkupCache:
    """
    Time-bounded markup snapshot.

    get() returns the cached snapshot while it is younger than the TTL
    and reloads otherwise; invalidate() forces the next get() to reload.
    The snapshot reference is swapped whole, so readers never see a
    half-built one. A snapshot whose load overlapped an invalidate() is
    returned to its caller but not cached.
    """

    def __init__(
        self,
        loader: Callable[[], MarkupSettings],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._entry: Optional[tuple[float, MarkupSettings]] = None
        self._generation = 0
        self._refresh_lock = threading.Lock()
        self._generation_lock = threading.Lock()

    def get(self, now: Optional[float] = None) -> MarkupSettings:
        now = self._clock() if now is None else now

        entry = self._entry
        if entry is not None and now - entry[0] < self._ttl:
            return entry[1]

        with self._refresh_lock:
            entry = self._entry
            if entry is not None and now - entry[0] < self._ttl:
                return entry[1]

            with self._generation_lock:
                generation = self._generation

            snapshot = self._loader()

            with self._generation_lock:
                stale = generation != self._generation
                if not stale:
                    self._entry = (now, snapshot)

            logger.debug(
                "markup_settings_loaded",
                global_markup=snapshot.global_markup,
                categories=len(snapshot.category_markup),
                cached=not stale
            )
            return snapshot

    def invalidate(self) -> None:
        with self._generation_lock:
            self._generation += 1
            self._entry = None
        logger.info("markup_cache_invalidated")

    @property
    def loaded_at(self) -> Optional[float]:
        entry = self._entry
        return entry[0] if entry else None


class MarkupService:
    """Loads markup settings from the settings and categories tables."""

    def __init__(self):
        self.db = get_supabase_client()

    def load_settings(self) -> MarkupSettings:
        """
        Read the global markup and every category in one pass.

        Raises:
            DatabaseError: If either query fails
        """
        try:
            setting = (
                self.db.table("settings")
                .select("value")
                .eq("key", GLOBAL_MARKUP_KEY)
                .execute()
            )
            categories = (
                self.db.table("categories")
                .select("id, name, markup_pct, parent_id")
                .execute()
            )
        except Exception as e:
            logger.error("markup_settings_load_failed", error=str(e))
            raise DatabaseError("select", str(e))

        global_pct = setting.data[0]["value"] if setting.data else "0"
        rows = [CategoryRow.model_validate(row).model_dump() for row in categories.data or []]
        return build_markup_settings(global_pct, rows)


# Singleton cache
_markup_cache: Optional[MarkupCache] = None
_markup_cache_lock = threading.Lock()


def get_markup_cache() -> MarkupCache:
    """Get or create the process-wide markup cache."""
    global _markup_cache
    with _markup_cache_lock:
        if _markup_cache is None:
            from config.settings import get_settings
            _markup_cache = MarkupCache(
                loader=lambda: MarkupService().load_settings(),
                ttl_seconds=get_settings().markup_cache_ttl_seconds,
            )
        return _markup_cache
