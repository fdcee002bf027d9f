"""
Supplier feed parsers.

Pure, synchronous functions: no network or database access.
"""

from parsers.csv_parser import (
    tokenize,
    rows_to_records,
    parse_delimited,
)
from parsers.invid_parser import (
    ScanState,
    RowKind,
    ScanCursor,
    InvidExtraction,
    extract_invid_products,
    read_xlsx_grid,
)

__all__ = [
    "tokenize",
    "rows_to_records",
    "parse_delimited",
    "ScanState",
    "RowKind",
    "ScanCursor",
    "InvidExtraction",
    "extract_invid_products",
    "read_xlsx_grid",
]
