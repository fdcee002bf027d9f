"""
Text utilities for handling Spanish supplier text.

Used for header detection and display-name cleanup.
"""

import re
import unicodedata
from typing import Optional

_CATALOG_CODE_SUFFIX = re.compile(r"\s*\(\d{4,}\)\s*$")
_HIERARCHY_SEPARATOR = re.compile(r"\s*/\s*")


def strip_accents(text: Optional[str]) -> str:
    """
    Remove accent marks.

    - "Código" → "Codigo"
    - "Categoría" → "Categoria"
    """
    if not text:
        return ""

    # NFD decomposition separates base chars from accents
    normalized = unicodedata.normalize('NFD', text)
    return ''.join(
        c for c in normalized
        if unicodedata.category(c) != 'Mn'
    )


def fold_label(text: Optional[str]) -> str:
    """Accent-free, lowercase, trimmed form for comparing labels."""
    return strip_accents(text).strip().lower()


def clean_category_label(label: str) -> str:
    """
    Collapse whitespace around hierarchy separators.

    "Conectividad /Router" → "Conectividad/Router"
    """
    return _HIERARCHY_SEPARATOR.sub("/", label).strip()


def strip_catalog_code(name: str) -> str:
    """
    Drop a trailing parenthesized internal code of 4+ digits.

    "Mouse Logitech M90 (7833)" → "Mouse Logitech M90"
    "Cable (12)" is left untouched.
    """
    return _CATALOG_CODE_SUFFIX.sub("", name).strip()
