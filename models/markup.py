"""
Markup settings snapshot and resolution result.
"""

from dataclasses import dataclass, field
from typing import Literal


MarkupSource = Literal["product", "category", "global"]


@dataclass(frozen=True)
class MarkupSettings:
    """
    Immutable markup snapshot.

    Fractions, not percents: 0.25 means +25%.
    """
    global_markup: float = 0.0
    category_markup: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "global_markup": self.global_markup,
            "category_markup": dict(self.category_markup),
        }


@dataclass(frozen=True)
class MarkupResolution:
    """Effective markup for one product and where it came from."""
    markup: float
    source: MarkupSource
