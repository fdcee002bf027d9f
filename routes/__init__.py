"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.sync import router as sync_router
from routes.catalog import router as catalog_router

__all__ = [
    "sync_router",
    "catalog_router",
]
