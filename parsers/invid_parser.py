"""
Invid XLSX price list extractor.

The export has no category column. Layout:
    rows 1-8   supplier letterhead, exchange rate, etc. (ignored)
    row 9      column headers, first cell "Código"
    after that either
      - a category row: column A empty, column B = label, price empty
      - a product row:  column A = numeric code

Columns (0-based):
    0 Codigo  1 Producto  2 Fabricante  3 Nro.Parte  4 Moneda
    5 Precio sin IVA  6 %IVA  7 Imp.Int.  8 Precio Final (USD, IVA incl.)
    9 Precio en ARS (ignored)  10 Observaciones
"""

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from io import BytesIO
from typing import Any, Optional

import pandas as pd
import structlog
from pydantic import ValidationError as PydanticValidationError

from exceptions import SpreadsheetParseError
from models.product import CanonicalProduct, Provider
from utils.number_utils import (
    parse_locale_number,
    normalize_string,
    round_half_up,
    round_to_cents,
)
from utils.text_utils import fold_label, clean_category_label, strip_catalog_code

logger = structlog.get_logger(__name__)

HEADER_MARKER = "codigo"
COL_CODE = 0
COL_NAME = 1
COL_BRAND = 2
COL_PRICE_USD = 8
SKU_PREFIX = "INVID-"

_NUMERIC_CODE = re.compile(r"^\d+$")


class ScanState(str, Enum):
    """Where the scan is relative to the header row."""
    BEFORE_DATA = "before_data"
    IN_DATA = "in_data"


class RowKind(str, Enum):
    """Classification of one grid row."""
    EMPTY = "empty"
    FRONT_MATTER = "front_matter"
    HEADER = "header"
    CATEGORY = "category"
    PRODUCT = "product"
    OTHER = "other"


@dataclass
class ScanCursor:
    """State threaded through the forward scan."""
    state: ScanState = ScanState.BEFORE_DATA
    current_category: Optional[str] = None


@dataclass
class InvidExtraction:
    """Products plus the categories seen while scanning."""
    products: list[CanonicalProduct] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    dropped: int = 0


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def cell_text(value: Any) -> str:
    """Render a cell as trimmed text; integral floats lose their ".0"."""
    if _is_empty(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _cell(row: list[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def classify_row(row: list[Any], cursor: ScanCursor) -> RowKind:
    """Decide what a row is, given the current scan state."""
    if not row or all(_is_empty(v) for v in row):
        return RowKind.EMPTY

    col0 = cell_text(_cell(row, COL_CODE))

    if fold_label(col0) == HEADER_MARKER:
        return RowKind.HEADER

    if cursor.state is ScanState.BEFORE_DATA:
        return RowKind.FRONT_MATTER

    col1 = cell_text(_cell(row, COL_NAME))
    if not col0 and col1 and _is_empty(_cell(row, COL_PRICE_USD)):
        return RowKind.CATEGORY

    if col0 and _NUMERIC_CODE.match(col0):
        return RowKind.PRODUCT

    return RowKind.OTHER


def advance(row: list[Any], cursor: ScanCursor) -> tuple[RowKind, ScanCursor]:
    """
    Apply one row to the cursor.

    Only HEADER and CATEGORY rows change state; product rows read it.
    A repeated header inside the data keeps the current category.
    """
    kind = classify_row(row, cursor)

    if kind is RowKind.HEADER:
        cursor = ScanCursor(state=ScanState.IN_DATA, current_category=cursor.current_category)
    elif kind is RowKind.CATEGORY:
        label = clean_category_label(cell_text(_cell(row, COL_NAME)))
        cursor = ScanCursor(state=ScanState.IN_DATA, current_category=label or None)

    return kind, cursor


def map_invid_row(
    row: list[Any],
    category: Optional[str],
    reference_rate: float,
) -> Optional[CanonicalProduct]:
    """Map a product row; None when price or name is unusable."""
    code = cell_text(_cell(row, COL_CODE))
    price_usd = parse_locale_number(_cell(row, COL_PRICE_USD))
    name = normalize_string(cell_text(_cell(row, COL_NAME)))

    if not price_usd or price_usd <= 0 or not name:
        return None

    name = strip_catalog_code(name)
    if not name:
        return None

    return CanonicalProduct(
        sku=f"{SKU_PREFIX}{code}",
        name=name,
        category=category,
        brand=normalize_string(cell_text(_cell(row, COL_BRAND))),
        price_usd=round_to_cents(price_usd),
        price_ars=max(0, round_half_up(price_usd * reference_rate)),
        stock=0,
        image_url=None,
        provider=Provider.INVID,
        warranty=None,
        dolar_rate=round_to_cents(reference_rate),
    )


def extract_invid_products(grid: list[list[Any]], reference_rate: float) -> InvidExtraction:
    """
    Scan the cell grid forward and emit products with their category.

    Args:
        grid: Rows of cells, None (or NaN) for empty cells
        reference_rate: ARS per USD for this run

    Returns:
        InvidExtraction with products in sheet order
    """
    result = InvidExtraction()
    cursor = ScanCursor()
    seen_categories: dict[str, None] = {}

    for row in grid:
        kind, cursor = advance(list(row), cursor)

        if kind is RowKind.CATEGORY and cursor.current_category:
            seen_categories.setdefault(cursor.current_category, None)
            continue

        if kind is not RowKind.PRODUCT:
            continue

        try:
            product = map_invid_row(list(row), cursor.current_category, reference_rate)
        except PydanticValidationError as e:
            logger.debug("invid_row_invalid", code=cell_text(row[0]), error=str(e))
            product = None

        if product is None:
            result.dropped += 1
            continue
        result.products.append(product)

    result.categories = list(seen_categories)

    if cursor.state is ScanState.BEFORE_DATA:
        logger.warning("invid_header_not_found", rows=len(grid))

    logger.info(
        "invid_sheet_extracted",
        products=len(result.products),
        categories=len(result.categories),
        dropped=result.dropped
    )
    return result


def read_xlsx_grid(payload: bytes) -> list[list[Any]]:
    """
    Load the first sheet as a raw grid (no header inference).

    Raises:
        SpreadsheetParseError: If the payload is not a readable workbook
    """
    try:
        df = pd.read_excel(BytesIO(payload), sheet_name=0, header=None, engine="openpyxl")
    except Exception as e:
        logger.error("xlsx_read_failed", error=str(e), size=len(payload))
        raise SpreadsheetParseError(
            message="Failed to read spreadsheet",
            details={"original_error": str(e), "size": len(payload)}
        )

    df = df.astype(object).where(pd.notna(df), None)
    return df.values.tolist()
