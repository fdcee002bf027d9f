"""
Common supplier adapter machinery.

Every supplier is a CatalogProvider: fetch(params, rate) downloads the
feed and maps each row independently into CanonicalProduct. Transport
failures raise ProviderFetchError; a bad row is dropped, never fatal.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

import requests
import structlog
from pydantic import ValidationError as PydanticValidationError

from exceptions import ProviderFetchError
from models.product import CanonicalProduct
from utils.number_utils import round_half_up

logger = structlog.get_logger(__name__)

USER_AGENT = "catalog-sync/1.0"

RowMapper = Callable[[dict[str, Any], float], Optional[CanonicalProduct]]


@dataclass(frozen=True)
class ProviderParams:
    """Where and how to reach one supplier."""
    url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    login_url: Optional[str] = None
    timeout: int = 60

    def __repr__(self) -> str:
        # Feed URLs carry tokens and passwords must not reach logs
        return (
            f"ProviderParams(url={'set' if self.url else None}, "
            f"username={self.username!r}, timeout={self.timeout})"
        )


def local_price(price_usd: float, reference_rate: float, native_ars: Optional[float] = None) -> int:
    """
    ARS price for a row.

    The supplier's own ARS price wins when present; otherwise USD times
    the run's reference rate. Never negative.
    """
    value = native_ars if native_ars is not None else price_usd * reference_rate
    return max(0, round_half_up(value))


def http_get(
    provider: str,
    url: str,
    timeout: int,
    headers: Optional[dict[str, str]] = None,
) -> requests.Response:
    """
    GET a supplier URL.

    Raises:
        ProviderFetchError: On transport errors or a non-2xx status
    """
    try:
        response = requests.get(
            url,
            headers={"User-Agent": USER_AGENT, **(headers or {})},
            timeout=timeout,
        )
    except requests.exceptions.RequestException as e:
        logger.error("provider_request_failed", provider=provider, error=str(e), error_type=type(e).__name__)
        raise ProviderFetchError(provider, source=url, reason=str(e)) from e

    if not 200 <= response.status_code < 300:
        logger.error("provider_http_error", provider=provider, status=response.status_code)
        raise ProviderFetchError(provider, source=url, status=response.status_code)

    return response


def decode_text(payload: bytes) -> str:
    """Supplier CSVs are UTF-8, sometimes with a BOM."""
    return payload.decode("utf-8-sig", errors="replace")


class CatalogProvider(ABC):
    """
    One supplier feed.

    Subclasses set `name` and implement fetch().
    """

    name: str = ""

    @abstractmethod
    def fetch(self, params: ProviderParams, reference_rate: float) -> list[CanonicalProduct]:
        """Download and normalize the supplier catalog."""

    def is_configured(self, params: ProviderParams) -> bool:
        """Whether params carry enough to attempt a fetch."""
        return bool(params.url)

    def skip_reason(self, params: ProviderParams) -> Optional[str]:
        """Why the provider will not be fetched, or None."""
        return None if self.is_configured(params) else "missing_url"

    def map_records(
        self,
        records: Iterable[dict[str, Any]],
        mapper: RowMapper,
        reference_rate: float,
    ) -> list[CanonicalProduct]:
        """
        Map rows one by one, dropping invalid ones.

        A row that fails validation or raises is logged and skipped so a
        single malformed line never aborts the batch.
        """
        products: list[CanonicalProduct] = []
        dropped = 0
        failed = 0

        for index, record in enumerate(records):
            try:
                product = mapper(record, reference_rate)
            except (PydanticValidationError, ValueError, TypeError) as e:
                failed += 1
                logger.debug(
                    "provider_row_rejected",
                    provider=self.name,
                    row=index + 2,  # 1-based plus header
                    error=str(e)
                )
                continue

            if product is None:
                dropped += 1
                continue
            products.append(product)

        logger.info(
            "provider_rows_mapped",
            provider=self.name,
            accepted=len(products),
            dropped=dropped,
            failed=failed
        )
        return products
