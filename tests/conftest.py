"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are loaded at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("REMINDER_ENABLED", "false")

import copy
import json
import pytest
from unittest.mock import patch
from datetime import datetime
from typing import Generator
from uuid import uuid4

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


def _eq(row_value, value) -> bool:
    if isinstance(row_value, (list, dict)):
        return json.dumps(row_value) == value or row_value == value
    return str(row_value) == str(value)


class MockSupabaseQuery:
    """
    Mock Supabase query builder with chainable methods.

    Filters, ordering and ranges are applied to the owning table's rows
    on execute(), so inserts and updates are visible to later queries.
    """

    def __init__(self, table: "MockSupabaseTable", op: str = "select", payload=None, count: str = None):
        self._table = table
        self._op = op
        self._payload = payload
        self._count_mode = count
        self._filters = []
        self._order = []
        self._range = None
        self._limit = None

    # Filters
    def eq(self, column, value):
        self._filters.append(lambda row: _eq(row.get(column), value))
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: not _eq(row.get(column), value))
        return self

    def gte(self, column, value):
        self._filters.append(lambda row: row.get(column) is not None and str(row[column]) >= str(value))
        return self

    def lte(self, column, value):
        self._filters.append(lambda row: row.get(column) is not None and str(row[column]) <= str(value))
        return self

    def ilike(self, column, pattern):
        needle = pattern.strip("%").lower()
        self._filters.append(lambda row: needle in str(row.get(column) or "").lower())
        return self

    def or_(self, expression: str):
        clauses = []
        for clause in expression.split(","):
            column, op, pattern = clause.split(".", 2)
            assert op == "ilike", f"unsupported or_ operator {op}"
            clauses.append((column, pattern.strip("%").lower()))
        self._filters.append(
            lambda row: any(needle in str(row.get(col) or "").lower() for col, needle in clauses)
        )
        return self

    # Shaping
    def select(self, *args, **kwargs):
        return self

    def single(self):
        self._limit = 1
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order.append((column, desc))
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matching(self) -> list:
        return [row for row in self._table.rows if all(f(row) for f in self._filters)]

    def execute(self) -> MockSupabaseResponse:
        if self._table.client.failure is not None:
            raise self._table.client.failure

        now = datetime.utcnow().isoformat() + "Z"

        if self._op == "insert":
            items = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for item in items:
                row = copy.deepcopy(item)
                row.setdefault("id", str(uuid4()))
                row.setdefault("created_at", now)
                row.setdefault("updated_at", now)
                self._table.rows.append(row)
                inserted.append(copy.deepcopy(row))
            return MockSupabaseResponse(data=inserted)

        matching = self._matching()

        if self._op == "update":
            for row in matching:
                row.update(copy.deepcopy(self._payload))
                row["updated_at"] = now
            return MockSupabaseResponse(data=copy.deepcopy(matching))

        if self._op == "delete":
            self._table.rows[:] = [r for r in self._table.rows if r not in matching]
            return MockSupabaseResponse(data=copy.deepcopy(matching))

        rows = list(matching)
        for column, desc in reversed(self._order):
            rows.sort(key=lambda r: str(r.get(column) or ""), reverse=desc)
        total = len(rows)
        if self._range is not None:
            rows = rows[self._range[0]:self._range[1] + 1]
        if self._limit is not None:
            rows = rows[:self._limit]
        return MockSupabaseResponse(data=copy.deepcopy(rows), count=total)


class MockSupabaseTable:
    """Mock Supabase table backed by a list of row dicts."""

    def __init__(self, client: "MockSupabaseClient", rows: list):
        self.client = client
        self.rows = rows

    def select(self, *args, count: str = None, **kwargs):
        return MockSupabaseQuery(self, "select", count=count)

    def insert(self, data):
        return MockSupabaseQuery(self, "insert", payload=data)

    def update(self, data):
        return MockSupabaseQuery(self, "update", payload=data)

    def delete(self):
        return MockSupabaseQuery(self, "delete")


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables = {}
        self.failure = None

    def set_table_data(self, table_name: str, data: list):
        """Configure rows for a table (copied)."""
        self._tables[table_name] = copy.deepcopy(data)

    def get_table_data(self, table_name: str) -> list:
        """Current rows of a table."""
        return self._tables.setdefault(table_name, [])

    def fail_with(self, error: Exception):
        """Make every subsequent execute() raise error."""
        self.failure = error

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        return MockSupabaseTable(self, self._tables.setdefault(name, []))


# ===================
# FIXTURES
# ===================

@pytest.fixture(autouse=True)
def reset_service_singletons():
    """Drop cached service instances so each test builds its own."""
    import services.order_service as order_service
    import services.confirmation_service as confirmation_service
    import services.kpi_service as kpi_service

    order_service._order_service = None
    confirmation_service._confirmation_service = None
    kpi_service._kpi_service = None
    yield
    order_service._order_service = None
    confirmation_service._confirmation_service = None
    kpi_service._kpi_service = None


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("orders", [
                OrderFactory.create(...)
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Any code using get_supabase_client() gets the mock.
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.order_service.get_supabase_client", return_value=mock_supabase):
            yield mock_supabase


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("orders", [...])
            response = test_client_with_mock_db.get("/api/orders")
    """
    from fastapi.testclient import TestClient
    from main import app

    yield TestClient(app)
