"""
Supplier sync orchestration.

One run:
    1. resolve the reference rate (DolarAPI, else configured fallback)
    2. fetch configured providers concurrently; each one fails alone
    3. combine successful batches in fixed provider order, resolving
       duplicate SKUs last-write-wins and reporting each collision
    4. merge once with the union, then add new categories
    5. persist the run report under settings.last_sync_result
"""

import json
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import structlog

from config import get_supabase_client
from config.settings import Settings, get_settings
from exceptions import AppError, NoProviderDataError
from integrations.dolar_api import DolarApiClient
from integrations.providers import build_providers
from integrations.providers.base import CatalogProvider, ProviderParams
from models.product import CanonicalProduct
from models.sync import ProviderReport, SyncResult
from services.catalog_merge_service import CatalogMergeService, dedupe_by_sku, get_catalog_merge_service

logger = structlog.get_logger(__name__)

LAST_SYNC_KEY = "last_sync_result"

ProviderBatch = tuple[list[CanonicalProduct], ProviderReport]


def fetch_provider(
    provider: CatalogProvider,
    params: ProviderParams,
    reference_rate: float,
) -> ProviderBatch:
    """
    Fetch one provider, turning any failure into its report.

    Login and download happen in order inside provider.fetch(); this
    wrapper only isolates the provider from the rest of the run.
    """
    started = time.monotonic()
    report = ProviderReport(provider=provider.name)

    try:
        products = provider.fetch(params, reference_rate)
    except AppError as e:
        logger.error("provider_failed", provider=provider.name, code=e.code, error=e.message)
        report.error = e.message
        report.error_code = e.code
        products = []
    except Exception as e:
        logger.exception("provider_crashed", provider=provider.name, error=str(e))
        report.error = f"{provider.name}: {type(e).__name__}: {e}"
        report.error_code = "PROVIDER_UNEXPECTED_ERROR"
        products = []

    report.parsed = len(products)
    report.duration_ms = int((time.monotonic() - started) * 1000)
    return products, report


class SyncService:
    """Runs a full supplier sync."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        rate_client: Optional[DolarApiClient] = None,
        merge_service: Optional[CatalogMergeService] = None,
        providers: Optional[list[tuple[CatalogProvider, ProviderParams]]] = None,
    ):
        self.settings = settings or get_settings()
        self.db = get_supabase_client()
        self.rate_client = rate_client or DolarApiClient(
            url=self.settings.dolar_api_url,
            fallback_rate=self.settings.dolar_fallback_rate,
        )
        self.merge_service = merge_service or get_catalog_merge_service(
            self.settings.merge_lock_ttl_seconds
        )
        self._providers = providers

    def providers(self, names: Optional[list[str]] = None) -> list[tuple[CatalogProvider, ProviderParams]]:
        if self._providers is not None:
            return [(p, params) for p, params in self._providers if names is None or p.name in names]
        return build_providers(self.settings, names)

    # ===================
    # FETCH
    # ===================

    def fetch_all(
        self,
        providers: list[tuple[CatalogProvider, ProviderParams]],
        reference_rate: float,
    ) -> tuple[dict[str, list[CanonicalProduct]], dict[str, ProviderReport]]:
        """
        Fetch every configured provider concurrently.

        Returns:
            (products by provider, report by provider) in input order
        """
        batches: dict[str, list[CanonicalProduct]] = {}
        reports: dict[str, ProviderReport] = {}

        runnable = []
        for provider, params in providers:
            reason = provider.skip_reason(params)
            if reason:
                logger.info("provider_skipped", provider=provider.name, reason=reason)
                reports[provider.name] = ProviderReport(provider=provider.name, skipped=reason)
            else:
                runnable.append((provider, params))

        if runnable:
            workers = min(self.settings.sync_max_workers, len(runnable))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="provider") as executor:
                futures = [
                    (provider.name, executor.submit(fetch_provider, provider, params, reference_rate))
                    for provider, params in runnable
                ]
                for name, future in futures:
                    products, report = future.result()
                    batches[name] = products
                    reports[name] = report

        ordered = {p.name: reports[p.name] for p, _ in providers}
        return batches, ordered

    # ===================
    # RUN
    # ===================

    def run(self, names: Optional[list[str]] = None) -> SyncResult:
        """
        Execute a sync and persist its report.

        Raises:
            NoProviderDataError: Every attempted provider failed
            CatalogMergeError / MergeInProgressError: Merge failed (fatal)
        """
        started = time.monotonic()
        logger.info("sync_started", providers=names or "all")

        try:
            result = self._run(names, started)
        except AppError as e:
            self.save_result(SyncResult(
                success=False,
                error=e.message,
                duration_sec=round(time.monotonic() - started, 1),
            ))
            raise
        except Exception as e:
            logger.exception("sync_crashed", error=str(e))
            self.save_result(SyncResult(
                success=False,
                error=f"{type(e).__name__}: {e}",
                duration_sec=round(time.monotonic() - started, 1),
            ))
            raise

        self.save_result(result)
        logger.info(
            "sync_complete",
            total=result.total,
            inserted=result.merge.inserted,
            updated=result.merge.updated,
            conflicts=len(result.conflicts),
            duration_sec=result.duration_sec
        )
        return result

    def _run(self, names: Optional[list[str]], started: float) -> SyncResult:
        rate = self.rate_client.get_reference_rate()
        providers = self.providers(names)

        batches, reports = self.fetch_all(providers, rate.rate)

        attempted = [r for r in reports.values() if not r.skipped]
        if not any(r.error is None for r in attempted):
            errors = {r.provider: r.error or r.skipped for r in reports.values()}
            logger.error("sync_no_provider_data", errors=errors)
            raise NoProviderDataError(errors)

        combined: list[CanonicalProduct] = []
        for provider, _ in providers:
            combined.extend(batches.get(provider.name, []))

        batch, conflicts = dedupe_by_sku(combined)
        for conflict in conflicts:
            logger.warning(
                "sku_conflict",
                sku=conflict.sku,
                kept=conflict.kept_provider,
                dropped=conflict.dropped_provider
            )

        merged = self.merge_service.merge(batch)
        created = self.merge_service.sync_categories(batch)

        return SyncResult(
            success=True,
            dolar_rate=rate.rate,
            providers=reports,
            merge=merged,
            categories_created=created,
            conflicts=conflicts,
            total=merged.total,
            duration_sec=round(time.monotonic() - started, 1),
        )

    # ===================
    # RUN REPORT
    # ===================

    def save_result(self, result: SyncResult) -> None:
        """Persist the report; a failure here never masks the run outcome."""
        try:
            self.db.table("settings").upsert(
                {"key": LAST_SYNC_KEY, "value": result.model_dump_json()},
                on_conflict="key"
            ).execute()
        except Exception as e:
            logger.error("sync_result_save_failed", error=str(e))

    def get_last_result(self) -> Optional[dict]:
        """Last persisted report, or None if no sync ever ran."""
        response = (
            self.db.table("settings")
            .select("value")
            .eq("key", LAST_SYNC_KEY)
            .execute()
        )
        if not response.data:
            return None
        value = response.data[0].get("value")
        return json.loads(value) if isinstance(value, str) else value
