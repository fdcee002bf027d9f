"""
Shared test fixtures.

The Supabase double keeps rows in memory so merge, lease and category
tests can observe real state changes across calls.
"""

import os
import sys
from pathlib import Path

# Settings are read at import time; required values must exist first
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

# Add project root to Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

import copy
import itertools
import pytest
from unittest.mock import MagicMock
from datetime import datetime, timezone
from typing import Any, Generator, Optional


# ===================
# MOCK SUPABASE CLIENT
# ===================

UNIQUE_KEYS = {
    "catalog_products": "sku",
    "categories": "name",
    "settings": "key",
    "sync_locks": "lock_key",
}

CATALOG_UPDATE_COLUMNS = (
    "name", "category", "brand", "price_usd", "price_ars", "stock",
    "provider", "warranty", "dolar_rate",
)


class MockAPIError(Exception):
    """Stands in for postgrest.APIError; the message carries the SQLSTATE."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _same(stored: Any, value: Any) -> bool:
    """Equality as PostgREST sees it: filter values arrive as text."""
    if stored == value:
        return True
    if stored is None or value is None or isinstance(stored, bool) or isinstance(value, bool):
        return False
    return str(stored) == str(value)


class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: Any = None, count: Optional[int] = None):
        self.data = data if data is not None else []
        self.count = count


class MockSupabaseQuery:
    """Chainable query builder that runs against the client's tables."""

    def __init__(self, client: "MockSupabaseClient", table: str):
        self._client = client
        self._table = table
        self._op = "select"
        self._columns = "*"
        self._count_mode = None
        self._payload = None
        self._on_conflict = None
        self._filters = []
        self._order = None
        self._range = None
        self._limit = None
        self._is_single = False

    # Operations

    def select(self, columns: str = "*", count: Optional[str] = None):
        self._op = "select"
        self._columns = columns
        self._count_mode = count
        return self

    def insert(self, data):
        self._op = "insert"
        self._payload = data
        return self

    def upsert(self, data, on_conflict: Optional[str] = None):
        self._op = "upsert"
        self._payload = data
        self._on_conflict = on_conflict
        return self

    def update(self, data):
        self._op = "update"
        self._payload = data
        return self

    def delete(self):
        self._op = "delete"
        return self

    # Filters and modifiers

    def eq(self, column, value):
        self._filters.append(lambda row: _same(row.get(column), value))
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: not _same(row.get(column), value))
        return self

    def lt(self, column, value):
        self._filters.append(lambda row: row.get(column) is not None and row.get(column) < value)
        return self

    def is_(self, column, value):
        if value == "null":
            self._filters.append(lambda row: row.get(column) is None)
        else:
            self._filters.append(lambda row: _same(row.get(column), value))
        return self

    def in_(self, column, values):
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order = (column, desc)
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def single(self):
        self._is_single = True
        return self

    # Execution

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)

    def _project(self, row: dict) -> dict:
        if self._columns.strip() == "*":
            return dict(row)
        names = [c.strip() for c in self._columns.split(",")]
        return {n: row.get(n) for n in names}

    def execute(self) -> MockSupabaseResponse:
        self._client.check_failure(self._table, self._op)
        rows = self._client.rows(self._table)

        if self._op == "select":
            matched = [r for r in rows if self._matches(r)]
            if self._order:
                column, desc = self._order
                matched.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
            count = len(matched) if self._count_mode else None
            if self._range:
                start, end = self._range
                matched = matched[start:end + 1]
            if self._limit is not None:
                matched = matched[:self._limit]
            data = [self._project(r) for r in matched]
            if self._is_single:
                return MockSupabaseResponse(data=data[0] if data else None, count=count)
            return MockSupabaseResponse(data=data, count=count)

        if self._op in ("insert", "upsert"):
            items = self._payload if isinstance(self._payload, list) else [self._payload]
            written = [
                self._client.write_row(self._table, item, upsert=self._op == "upsert")
                for item in items
            ]
            return MockSupabaseResponse(data=written, count=len(written))

        if self._op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self._payload))
                    updated.append(dict(row))
            return MockSupabaseResponse(data=updated, count=len(updated))

        if self._op == "delete":
            removed = [r for r in rows if self._matches(r)]
            rows[:] = [r for r in rows if not self._matches(r)]
            return MockSupabaseResponse(data=removed, count=len(removed))

        raise AssertionError(f"unsupported op {self._op}")


class MockRpcCall:
    def __init__(self, client: "MockSupabaseClient", name: str, params: dict):
        self._client = client
        self._name = name
        self._params = params

    def execute(self) -> MockSupabaseResponse:
        self._client.rpc_calls.append(self._name)
        self._client.check_failure("rpc", self._name)

        if self._name == "truncate_catalog_staging":
            self._client.rows("catalog_staging").clear()
            return MockSupabaseResponse(data=None)
        if self._name == "merge_staged_products":
            return MockSupabaseResponse(data=[self._client.merge_staged_products()])
        raise MockAPIError(f"function {self._name} does not exist")


class MockSupabaseClient:
    """
    In-memory Supabase client.

    Usage:
        mock_supabase.set_table_data("catalog_products", [{...}])
        mock_supabase.fail("catalog_staging", "insert", MockAPIError("boom"))
    """

    def __init__(self):
        self._tables: dict[str, list[dict]] = {}
        self._failures: dict[tuple[str, str], Exception] = {}
        self._ids = itertools.count(1)
        self.rpc_calls: list[str] = []

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Seed a table (count is accepted for compatibility and ignored)."""
        self._tables[table_name] = [dict(row) for row in data]

    def rows(self, table_name: str) -> list[dict]:
        return self._tables.setdefault(table_name, [])

    def fail(self, table_or_rpc: str, op: str, error: Exception) -> None:
        """Make the next matching call raise `error`."""
        self._failures[(table_or_rpc, op)] = error

    def check_failure(self, table_or_rpc: str, op: str) -> None:
        error = self._failures.pop((table_or_rpc, op), None)
        if error is not None:
            raise error

    def write_row(self, table_name: str, item: dict, upsert: bool = False) -> dict:
        rows = self.rows(table_name)
        item = copy.deepcopy(item)
        key = UNIQUE_KEYS.get(table_name)

        if key is not None:
            existing = next((r for r in rows if r.get(key) == item.get(key)), None)
            if existing is not None:
                if not upsert:
                    raise MockAPIError(
                        f"{{'code': '23505', 'message': 'duplicate key value violates "
                        f"unique constraint \"{table_name}_pkey\"'}}"
                    )
                existing.update(item)
                return dict(existing)

        item.setdefault("id", next(self._ids))
        item.setdefault("created_at", _now())
        rows.append(item)
        return dict(item)

    def table(self, name: str) -> MockSupabaseQuery:
        return MockSupabaseQuery(self, name)

    def rpc(self, name: str, params: Optional[dict] = None) -> MockRpcCall:
        return MockRpcCall(self, name, params or {})

    def merge_staged_products(self) -> dict:
        """Python rendition of the merge_staged_products() SQL function."""
        catalog = self.rows("catalog_products")
        by_sku = {r["sku"]: r for r in catalog}
        inserted = updated = 0

        for staged in self.rows("catalog_staging"):
            target = by_sku.get(staged["sku"])
            if target is None:
                row = {k: staged.get(k) for k in ("sku", "image_url", *CATALOG_UPDATE_COLUMNS)}
                row.update({
                    "id": next(self._ids),
                    "description": None,
                    "markup_pct": None,
                    "active": staged.get("image_url") is not None,
                    "featured": False,
                    "created_at": _now(),
                    "updated_at": _now(),
                })
                catalog.append(row)
                by_sku[row["sku"]] = row
                inserted += 1
            else:
                for column in CATALOG_UPDATE_COLUMNS:
                    target[column] = staged.get(column)
                if target.get("image_url") is None:
                    target["image_url"] = staged.get("image_url")
                target["updated_at"] = _now()
                updated += 1

        return {"inserted": inserted, "updated": updated, "total": inserted + updated}


# ===================
# FIXTURES
# ===================

DB_MODULES = (
    "config.database",
    "services.markup_service",
    "services.catalog_merge_service",
    "services.sync_service",
    "services.catalog_service",
    "services.invid_image_service",
)


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """Empty in-memory Supabase client."""
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase, monkeypatch) -> Generator:
    """
    Patch every get_supabase_client() import with the in-memory client.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("catalog_products", [...])
    """
    for module in DB_MODULES:
        monkeypatch.setattr(f"{module}.get_supabase_client", lambda: mock_supabase)

    import services.catalog_service as catalog_service
    import services.markup_service as markup_service
    monkeypatch.setattr(catalog_service, "_catalog_service", None)
    monkeypatch.setattr(markup_service, "_markup_cache", None)

    yield mock_supabase


@pytest.fixture
def mock_response():
    """
    Build a fake requests.Response.

    Usage:
        resp = mock_response(content=b"...", status_code=200, headers={...})
        login = mock_response(set_cookies=["PHPSESSID=abc; path=/"])
    """
    def _build(
        content: bytes = b"",
        status_code: int = 200,
        headers: Optional[dict] = None,
        set_cookies: Optional[list] = None,
        json_data: Any = None,
    ):
        response = MagicMock()
        response.content = content
        response.text = content.decode("utf-8", errors="replace")
        response.status_code = status_code
        response.headers = headers or {}
        response.raw.headers.getlist.return_value = list(set_cookies or [])
        if json_data is not None:
            response.json.return_value = json_data
        else:
            response.json.side_effect = ValueError("no json")
        return response
    return _build


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    FastAPI test client with the in-memory database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            response = test_client_with_mock_db.get("/api/catalog")
    """
    from fastapi.testclient import TestClient
    from main import app

    yield TestClient(app)


@pytest.fixture
def cron_secret(monkeypatch) -> str:
    """Configure the cron secret used by protected routes."""
    from config import settings
    monkeypatch.setattr(settings, "cron_secret", "test-cron-secret")
    return "test-cron-secret"
