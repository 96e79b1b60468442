"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

# Settings are loaded at import time; give them something to load
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import copy
import threading
import uuid
import pytest
from typing import Callable, Generator, Optional
from unittest.mock import patch


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data if data is not None else []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """
    Chainable query builder over the in-memory tables.

    Filters (eq, neq, is_, in_) apply to select, update and delete.
    """

    def __init__(self, client: "MockSupabaseClient", table_name: str):
        self._client = client
        self._table = table_name
        self._op = "select"
        self._payload = None
        self._on_conflict: Optional[str] = None
        self._filters: list[Callable[[dict], bool]] = []
        self._limit: Optional[int] = None
        self._order: Optional[tuple[str, bool]] = None
        self._is_single = False

    # Operations

    def select(self, *args, **kwargs):
        return self

    def insert(self, data):
        self._op = "insert"
        self._payload = data
        return self

    def upsert(self, data, on_conflict: str = "id", **kwargs):
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

    # Filters

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def is_(self, column, value):
        if value in ("null", None):
            self._filters.append(lambda row: row.get(column) is None)
        else:
            self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def range(self, start, end):
        return self

    def single(self):
        self._is_single = True
        return self

    def execute(self) -> MockSupabaseResponse:
        return self._client._execute(self)

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)


class MockSupabaseClient:
    """
    Stateful in-memory Supabase client.

    Usage:
        mock_supabase.set_table_data("categories", [{"id": "app-1", "slug": "motors", "parent_id": None}])
        mock_supabase.fail_on("products", "upsert", lambda row: row["slug"] == "broken")
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.queries: list[tuple[str, str]] = []
        self._failures: list[tuple[str, str, Optional[Callable], str]] = []
        self._lock = threading.Lock()

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self.tables[table_name] = [dict(row) for row in data]

    def fail_on(
        self,
        table_name: str,
        op: str,
        predicate: Optional[Callable[[dict], bool]] = None,
        message: str = "simulated database failure"
    ):
        """Raise on matching operations. predicate receives each payload row."""
        self._failures.append((table_name, op, predicate, message))

    def table(self, name: str) -> MockSupabaseQuery:
        return MockSupabaseQuery(self, name)

    def rows(self, table_name: str) -> list[dict]:
        return self.tables.get(table_name, [])

    def count_queries(self, table_name: str, op: str = "select") -> int:
        return sum(1 for t, o in self.queries if t == table_name and o == op)

    def _execute(self, query: MockSupabaseQuery) -> MockSupabaseResponse:
        with self._lock:
            self.queries.append((query._table, query._op))
            self._raise_if_failing(query)
            rows = self.tables.setdefault(query._table, [])
            handler = getattr(self, f"_do_{query._op}")
            data = handler(query, rows)

        if query._is_single:
            return MockSupabaseResponse(data=data[0] if data else None, count=len(data))
        return MockSupabaseResponse(data=data)

    def _raise_if_failing(self, query: MockSupabaseQuery):
        payload = query._payload
        payload_rows = payload if isinstance(payload, list) else [payload] if payload else []
        for table_name, op, predicate, message in self._failures:
            if table_name != query._table or op != query._op:
                continue
            if predicate is None or any(predicate(row) for row in payload_rows):
                raise Exception(message)

    def _do_select(self, query, rows):
        result = [copy.deepcopy(r) for r in rows if query._matches(r)]
        if query._order:
            column, desc = query._order
            result.sort(key=lambda r: str(r.get(column) or ""), reverse=desc)
        if query._limit is not None:
            result = result[:query._limit]
        return result

    def _do_insert(self, query, rows):
        new_rows = query._payload if isinstance(query._payload, list) else [query._payload]
        inserted = []
        for row in new_rows:
            stored = {"id": str(uuid.uuid4()), **copy.deepcopy(row)}
            rows.append(stored)
            inserted.append(copy.deepcopy(stored))
        return inserted

    def _do_upsert(self, query, rows):
        new_rows = query._payload if isinstance(query._payload, list) else [query._payload]
        key = query._on_conflict
        written = []
        for row in new_rows:
            existing = next((r for r in rows if r.get(key) == row.get(key)), None)
            if existing is not None:
                existing.update(copy.deepcopy(row))
                written.append(copy.deepcopy(existing))
            else:
                stored = {"id": str(uuid.uuid4()), **copy.deepcopy(row)}
                rows.append(stored)
                written.append(copy.deepcopy(stored))
        return written

    def _do_update(self, query, rows):
        updated = []
        for row in rows:
            if query._matches(row):
                row.update(query._payload)
                updated.append(copy.deepcopy(row))
        return updated

    def _do_delete(self, query, rows):
        removed = [r for r in rows if query._matches(r)]
        rows[:] = [r for r in rows if not query._matches(r)]
        return removed


# ===================
# CATALOG FIXTURES
# ===================

CATALOG_CATEGORIES = [
    # Applications (top-level)
    {"id": "app-motors", "slug": "motors", "parent_id": None},
    {"id": "app-safety", "slug": "safety-devices", "parent_id": None},
    {"id": "app-mechanical", "slug": "mechanical-components", "parent_id": None},
    # Categories
    {"id": "cat-traction", "slug": "traction-motors", "parent_id": "app-motors"},
    {"id": "cat-sensors", "slug": "sensors", "parent_id": "app-safety"},
    {"id": "cat-rails", "slug": "guide-rails", "parent_id": "app-mechanical"},
    # Subcategories
    {"id": "sub-vvvf", "slug": "vvvf-motors", "parent_id": "cat-traction"},
    {"id": "sub-door", "slug": "door-sensors", "parent_id": "cat-sensors"},
    {"id": "sub-t-type", "slug": "t-type-rails", "parent_id": "cat-rails"},
]

CATALOG_ELEVATOR_TYPES = [
    {"id": "type-passenger", "slug": "passenger"},
    {"id": "type-commercial", "slug": "commercial"},
    {"id": "type-freight", "slug": "freight"},
    {"id": "type-residential", "slug": "residential"},
]

CATALOG_COLLECTIONS = [
    {"id": "col-featured", "slug": "featured"},
    {"id": "col-best", "slug": "best-sellers"},
    {"id": "col-new", "slug": "new-arrivals"},
]


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """Empty mock Supabase client."""
    return MockSupabaseClient()


@pytest.fixture
def catalog_db(mock_supabase) -> MockSupabaseClient:
    """Mock client seeded with the catalog taxonomy."""
    mock_supabase.set_table_data("categories", CATALOG_CATEGORIES)
    mock_supabase.set_table_data("elevator_types", CATALOG_ELEVATOR_TYPES)
    mock_supabase.set_table_data("collections", CATALOG_COLLECTIONS)
    return mock_supabase


@pytest.fixture
def pipeline_service(catalog_db):
    """ImportPipelineService wired to the seeded mock client."""
    from services.catalog_lookup_service import CatalogLookupService
    from services.catalog_write_service import CatalogWriteService
    from services.import_pipeline_service import ImportPipelineService
    from services.upload_history_service import UploadHistoryService

    return ImportPipelineService(
        lookup_service=CatalogLookupService(client=catalog_db),
        writer=CatalogWriteService(client=catalog_db),
        history=UploadHistoryService(client=catalog_db),
    )


@pytest.fixture(autouse=True)
def clear_import_sessions() -> Generator:
    """Sessions live in a module-level cache; isolate tests from each other."""
    from services import preview_cache_service
    preview_cache_service.clear()
    yield
    preview_cache_service.clear()


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(pipeline_service, catalog_db):
    """
    FastAPI test client whose import routes use the seeded mock client.

    Usage:
        def test_endpoint(test_client_with_mock_db, catalog_db):
            response = test_client_with_mock_db.get("/api/products/import/template")
    """
    from fastapi.testclient import TestClient
    from main import app
    from services.upload_history_service import UploadHistoryService

    with patch("routes.product_import.get_import_pipeline_service", return_value=pipeline_service):
        with patch(
            "routes.product_import.get_upload_history_service",
            return_value=UploadHistoryService(client=catalog_db)
        ):
            yield TestClient(app)
