"""
Delimited-text parser for supplier price lists.

Elit ships comma-separated text, NewBytes semicolon-separated. Both put
commas, semicolons and line breaks inside quoted product names, which is
why this is a character scanner rather than a line splitter.
"""

import structlog

logger = structlog.get_logger(__name__)

QUOTE = '"'


def _keep_row(row: list[str]) -> bool:
    # A lone blank field is a blank line or the trailing newline
    return len(row) > 1 or (len(row) == 1 and row[0].strip() != "")


def tokenize(text: str, delimiter: str = ",") -> list[list[str]]:
    """
    Split delimited text into rows of fields.

    Supports:
        - quoted fields containing the delimiter or newlines
        - "" inside quotes as a literal quote
        - CRLF line endings (\\r is ignored)

    Args:
        text: Raw feed body
        delimiter: Single-character field separator

    Returns:
        Rows in input order; blank lines are dropped
    """
    if len(delimiter) != 1:
        raise ValueError(f"Delimiter must be one character, got {delimiter!r}")

    rows: list[list[str]] = []
    row: list[str] = []
    field: list[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    while i < length:
        c = text[i]

        if in_quotes:
            if c == QUOTE:
                if i + 1 < length and text[i + 1] == QUOTE:
                    field.append(QUOTE)
                    i += 1
                else:
                    in_quotes = False
            else:
                field.append(c)
        elif c == QUOTE:
            in_quotes = True
        elif c == delimiter:
            row.append("".join(field))
            field = []
        elif c == "\n":
            row.append("".join(field))
            field = []
            if _keep_row(row):
                rows.append(row)
            row = []
        elif c != "\r":
            field.append(c)

        i += 1

    row.append("".join(field))
    if _keep_row(row):
        rows.append(row)

    return rows


def rows_to_records(rows: list[list[str]]) -> list[dict[str, str]]:
    """
    Project rows onto the header row.

    Header cells are trimmed. Short rows get "" for missing trailing
    fields; extra fields beyond the header are ignored.
    """
    if not rows:
        return []

    header = [str(h or "").strip() for h in rows[0]]
    records = []
    for r in rows[1:]:
        records.append({
            key: (r[j] if j < len(r) else "")
            for j, key in enumerate(header)
        })
    return records


def parse_delimited(text: str, delimiter: str = ",") -> list[dict[str, str]]:
    """Tokenize and project in one call."""
    records = rows_to_records(tokenize(text, delimiter))
    logger.debug("delimited_text_parsed", delimiter=delimiter, records=len(records))
    return records

