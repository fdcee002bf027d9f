"""
Elit adapter: comma-separated price list over HTTP.

Columns used: codigo_alfa, nombre, categoria, marca, pvp_usd,
stock_total, imagen, garantia.
"""

from typing import Any, Optional

import structlog

from integrations.providers.base import (
    CatalogProvider,
    ProviderParams,
    decode_text,
    http_get,
    local_price,
)
from models.product import CanonicalProduct, Provider
from parsers.csv_parser import parse_delimited
from utils.number_utils import (
    normalize_string,
    parse_int_or_default,
    parse_locale_number,
    round_to_cents,
)

logger = structlog.get_logger(__name__)

DELIMITER = ","


def map_elit_row(row: dict[str, Any], reference_rate: float) -> Optional[CanonicalProduct]:
    """Map one Elit record; None when sku, name or a positive price is missing."""
    sku = normalize_string(row.get("codigo_alfa"))
    name = normalize_string(row.get("nombre"))
    price_usd = parse_locale_number(row.get("pvp_usd"))

    if not sku or not name or not price_usd or price_usd <= 0:
        return None

    return CanonicalProduct(
        sku=sku,
        name=name,
        category=normalize_string(row.get("categoria")),
        brand=normalize_string(row.get("marca")),
        price_usd=round_to_cents(price_usd),
        price_ars=local_price(price_usd, reference_rate),
        stock=max(0, parse_int_or_default(row.get("stock_total"), 0)),
        image_url=normalize_string(row.get("imagen")),
        provider=Provider.ELIT,
        warranty=normalize_string(row.get("garantia")),
        dolar_rate=round_to_cents(reference_rate),
    )


class ElitProvider(CatalogProvider):
    """Elit CSV feed."""

    name = Provider.ELIT

    def fetch(self, params: ProviderParams, reference_rate: float) -> list[CanonicalProduct]:
        logger.info("fetching_provider", provider=self.name)

        response = http_get(self.name, params.url, params.timeout)
        records = parse_delimited(decode_text(response.content), DELIMITER)

        return self.map_records(records, map_elit_row, reference_rate)
