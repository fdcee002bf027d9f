"""
Unit tests for the Invid spreadsheet extractor.

Run: pytest tests/unit/test_invid_parser.py -v
"""

from decimal import Decimal
from io import BytesIO

import pandas as pd
import pytest

from exceptions import SpreadsheetParseError
from parsers.invid_parser import (
    RowKind,
    ScanCursor,
    ScanState,
    advance,
    cell_text,
    classify_row,
    extract_invid_products,
    read_xlsx_grid,
)

RATE = 1400.0
WIDTH = 11


# ===================
# GRID BUILDERS
# ===================

def blank_row() -> list:
    return [None] * WIDTH


def text_row(*cells) -> list:
    row = blank_row()
    row[:len(cells)] = cells
    return row


def header_row() -> list:
    return [
        "Código", "Producto", "Fabricante", "Nro.Parte", "Moneda",
        "Precio sin IVA", "%IVA", "Imp.Int.", "Precio Final", "Precio en ARS", "Observaciones",
    ]


def category_row(label: str) -> list:
    return text_row(None, label)


def product_row(code, name, brand="Generic", price=10.0) -> list:
    return [code, name, brand, "PN-1", "U$S", 8.26, 21, 0, price, 14000, None]


@pytest.fixture
def sample_grid() -> list[list]:
    return [
        text_row("INVID COMPUTERS S.A."),
        blank_row(),
        text_row(12345, "Cotización dólar", None, None, None, None, None, None, 1400),
        header_row(),
        product_row(1001, "Orphan cable", price=5.0),
        category_row("Conectividad /Router"),
        product_row(1002, "Router TP-Link Archer (7833)", brand="TP-Link", price=25.5),
        product_row(1003, "Switch without price", price=None),
        blank_row(),
        category_row("Notebooks"),
        product_row(1004, "Notebook X15", brand="Lenovo", price="1.234,56"),
        text_row("Total", "3 productos"),
    ]


# ===================
# TESTS
# ===================

class TestClassifyRow:
    """Tests for classify_row() / advance()"""

    def test_numeric_rows_before_header_are_front_matter(self):
        cursor = ScanCursor()
        assert classify_row(product_row(999, "Looks like a product"), cursor) is RowKind.FRONT_MATTER

    def test_header_switches_state(self):
        kind, cursor = advance(header_row(), ScanCursor())
        assert kind is RowKind.HEADER
        assert cursor.state is ScanState.IN_DATA
        assert cursor.current_category is None

    def test_category_row_sets_cleaned_label(self):
        cursor = ScanCursor(state=ScanState.IN_DATA)
        kind, cursor = advance(category_row("Audio / Parlantes"), cursor)
        assert kind is RowKind.CATEGORY
        assert cursor.current_category == "Audio/Parlantes"

    def test_product_row_does_not_change_cursor(self):
        cursor = ScanCursor(state=ScanState.IN_DATA, current_category="Notebooks")
        kind, after = advance(product_row(1, "Item"), cursor)
        assert kind is RowKind.PRODUCT
        assert after == cursor

    def test_repeated_header_inside_data(self):
        cursor = ScanCursor(state=ScanState.IN_DATA, current_category="Monitores")
        kind, after = advance(header_row(), cursor)
        assert kind is RowKind.HEADER
        assert after.current_category == "Monitores"

    def test_empty_row(self):
        assert classify_row(blank_row(), ScanCursor(state=ScanState.IN_DATA)) is RowKind.EMPTY

    def test_non_numeric_code_is_other(self):
        cursor = ScanCursor(state=ScanState.IN_DATA)
        assert classify_row(text_row("Total", "3 productos"), cursor) is RowKind.OTHER


class TestExtractInvidProducts:
    """Tests for extract_invid_products()"""

    def test_extracts_products_in_sheet_order(self, sample_grid):
        result = extract_invid_products(sample_grid, RATE)

        assert [p.sku for p in result.products] == ["INVID-1001", "INVID-1002", "INVID-1004"]
        assert result.dropped == 1

    def test_category_attribution_is_forward_only(self, sample_grid):
        result = extract_invid_products(sample_grid, RATE)
        by_sku = {p.sku: p for p in result.products}

        assert by_sku["INVID-1001"].category is None
        assert by_sku["INVID-1002"].category == "Conectividad/Router"
        assert by_sku["INVID-1004"].category == "Notebooks"
        assert result.categories == ["Conectividad/Router", "Notebooks"]

    def test_product_fields(self, sample_grid):
        result = extract_invid_products(sample_grid, RATE)
        router = result.products[1]
        notebook = result.products[2]

        assert router.name == "Router TP-Link Archer"
        assert router.brand == "TP-Link"
        assert router.price_usd == Decimal("25.50")
        assert router.price_ars == 35700
        assert router.stock == 0
        assert router.image_url is None
        assert router.provider == "invid"

        assert notebook.price_usd == Decimal("1234.56")
        assert notebook.price_ars == 1728384

    def test_category_covers_following_rows_until_next_category(self):
        grid = [
            header_row(),
            category_row("Monitores"),
            product_row(1, "Monitor 22"),
            product_row(2, "Monitor 24"),
            product_row(3, "Monitor 27"),
            category_row("Teclados"),
            product_row(4, "Teclado"),
        ]
        result = extract_invid_products(grid, RATE)

        assert [p.category for p in result.products] == [
            "Monitores", "Monitores", "Monitores", "Teclados",
        ]

    def test_no_header_means_no_products(self):
        grid = [product_row(1, "Item"), product_row(2, "Other")]
        result = extract_invid_products(grid, RATE)
        assert result.products == []

    def test_repeated_header_keeps_category(self):
        grid = [
            header_row(),
            category_row("Monitores"),
            header_row(),
            product_row(5, "Monitor 24"),
        ]
        result = extract_invid_products(grid, RATE)
        assert [p.category for p in result.products] == ["Monitores"]


class TestReadXlsxGrid:
    """Tests for read_xlsx_grid() with real workbooks"""

    @staticmethod
    def workbook(rows: list[list]) -> bytes:
        output = BytesIO()
        pd.DataFrame(rows).to_excel(output, header=False, index=False, engine="openpyxl")
        return output.getvalue()

    def test_round_trip_through_xlsx(self, sample_grid):
        grid = read_xlsx_grid(self.workbook(sample_grid))
        result = extract_invid_products(grid, RATE)

        assert [p.sku for p in result.products] == ["INVID-1001", "INVID-1002", "INVID-1004"]
        assert result.products[1].category == "Conectividad/Router"

    def test_empty_cells_are_none(self, sample_grid):
        grid = read_xlsx_grid(self.workbook(sample_grid))
        assert grid[0][1] is None

    def test_invalid_payload_raises(self):
        with pytest.raises(SpreadsheetParseError) as exc_info:
            read_xlsx_grid(b"<html>login</html>")
        assert exc_info.value.code == "SPREADSHEET_PARSE_ERROR"


def test_cell_text_drops_float_suffix():
    assert cell_text(1001.0) == "1001"
    assert cell_text(float("nan")) == ""
    assert cell_text("  abc ") == "abc"
