"""
DolarAPI integration for the run's reference exchange rate.

Response shape: { moneda, casa, nombre, compra, venta, fechaActualizacion }
"""

from dataclasses import dataclass
from typing import Optional
import requests
import structlog

from utils.number_utils import parse_locale_number

logger = structlog.get_logger(__name__)

SOURCE_API = "dolarapi_oficial"
SOURCE_FALLBACK = "fallback"


@dataclass(frozen=True)
class ReferenceRate:
    """ARS per USD used for one sync run."""
    rate: float
    source: str
    retrieved_at: Optional[str] = None


class DolarApiClient:
    """
    Fetches the official USD sell rate.

    Never raises: a failed lookup falls back to the configured rate so
    that an FX outage does not block the supplier sync.
    """

    def __init__(self, url: str, fallback_rate: float, timeout: int = 10):
        self.url = url
        self.fallback_rate = fallback_rate
        self.timeout = timeout

    def fetch_rate(self) -> Optional[ReferenceRate]:
        """
        Read venta, then promedio.

        Returns:
            ReferenceRate, or None if the API failed or had no usable value
        """
        try:
            response = requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning("dolar_api_failed", error=str(e), error_type=type(e).__name__)
            return None

        if not isinstance(data, dict):
            logger.warning("dolar_api_unexpected_payload", payload_type=type(data).__name__)
            return None

        for key in ("venta", "promedio"):
            rate = parse_locale_number(data.get(key))
            if rate and rate > 0:
                return ReferenceRate(
                    rate=rate,
                    source=f"{SOURCE_API}_{key}",
                    retrieved_at=data.get("fechaActualizacion"),
                )

        logger.warning("dolar_api_no_rate", keys=sorted(data.keys()))
        return None

    def get_reference_rate(self) -> ReferenceRate:
        """Rate for this run, falling back to the configured value."""
        fetched = self.fetch_rate()
        if fetched:
            logger.info("reference_rate_resolved", rate=fetched.rate, source=fetched.source)
            return fetched

        logger.warning("reference_rate_fallback", rate=self.fallback_rate)
        return ReferenceRate(rate=self.fallback_rate, source=SOURCE_FALLBACK)
