"""
NewBytes adapter: semicolon-separated price list over HTTP.

The feed exposes user-customized columns next to the defaults; the
customized one wins when it is non-empty:
    name      DETALLE_USUARIO            → DETALLE
    category  CATEGORIA_USUARIO          → CATEGORIA
    USD       PRECIO USD CON UTILIDAD    → PRECIO FINAL
    ARS       PRECIO PESOS CON UTILIDAD  → PRECIO PESOS CON IVA
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

DELIMITER = ";"


def first_present(row: dict[str, Any], *keys: str) -> Optional[str]:
    """Value of the first key whose cell is non-blank."""
    for key in keys:
        value = row.get(key)
        if value is not None and str(value).strip():
            return value
    return None


def map_newbytes_row(row: dict[str, Any], reference_rate: float) -> Optional[CanonicalProduct]:
    """Map one NewBytes record; prefers the feed's own ARS price."""
    sku = normalize_string(row.get("CODIGO"))
    name = normalize_string(first_present(row, "DETALLE_USUARIO", "DETALLE"))
    price_usd = parse_locale_number(first_present(row, "PRECIO USD CON UTILIDAD", "PRECIO FINAL"))

    if not sku or not name or not price_usd or price_usd <= 0:
        return None

    native_ars = parse_locale_number(
        first_present(row, "PRECIO PESOS CON UTILIDAD", "PRECIO PESOS CON IVA")
    )

    return CanonicalProduct(
        sku=sku,
        name=name,
        category=normalize_string(first_present(row, "CATEGORIA_USUARIO", "CATEGORIA")),
        brand=normalize_string(row.get("MARCA")),
        price_usd=round_to_cents(price_usd),
        price_ars=local_price(price_usd, reference_rate, native_ars),
        stock=max(0, parse_int_or_default(row.get("STOCK"), 0)),
        image_url=normalize_string(row.get("IMAGEN")),
        provider=Provider.NEWBYTES,
        warranty=normalize_string(row.get("GARANTIA")),
        dolar_rate=round_to_cents(reference_rate),
    )


class NewBytesProvider(CatalogProvider):
    """NewBytes semicolon CSV feed."""

    name = Provider.NEWBYTES

    def fetch(self, params: ProviderParams, reference_rate: float) -> list[CanonicalProduct]:
        logger.info("fetching_provider", provider=self.name)

        response = http_get(self.name, params.url, params.timeout)
        records = parse_delimited(decode_text(response.content), DELIMITER)

        return self.map_records(records, map_newbytes_row, reference_rate)
