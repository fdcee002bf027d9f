"""
Category dimension schemas.
"""

from pydantic import Field
from typing import Optional
from decimal import Decimal

from models.base import BaseSchema


class CategoryRow(BaseSchema):
    """
    Row of the categories table.

    markup_pct and parent_id are maintained by admins; ingestion only
    ever inserts new names.
    """

    id: int | str
    name: str = Field(..., min_length=1, max_length=100)
    markup_pct: Optional[Decimal] = Field(None, description="Category markup, percent")
    parent_id: Optional[int | str] = None
