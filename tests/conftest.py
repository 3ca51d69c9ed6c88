"""
Shared fixtures.

FakePool stands in for an asyncpg pool: it understands exactly the statements
the service layer issues and keeps rows in memory. Setting `fail = True`
makes every connection attempt raise, like an unreachable database.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP

import pytest
from fastapi.testclient import TestClient

from main import app
from routes import get_schema_initializer
from services.database import SchemaInitializer


class FakeConnection:
    def __init__(self, pool):
        self.pool = pool

    def _require_table(self):
        if not self.pool.table_exists:
            raise RuntimeError('relation "expenses" does not exist')

    async def execute(self, query, *args):
        self.pool.statements.append(query.strip())
        if query.strip().startswith("CREATE TABLE"):
            self.pool.table_exists = True
            return "CREATE TABLE"
        if query.strip().startswith("CREATE INDEX"):
            self._require_table()
            self.pool.index_count = 1
            return "CREATE INDEX"
        if query.startswith("DELETE"):
            self._require_table()
            before = len(self.pool.rows)
            self.pool.rows = [row for row in self.pool.rows if row["id"] != args[0]]
            return f"DELETE {before - len(self.pool.rows)}"
        raise AssertionError(f"Unexpected statement: {query}")

    async def fetch(self, query, *args):
        self.pool.statements.append(query.strip())
        self._require_table()
        assert "ORDER BY created_at DESC" in query
        ordered = sorted(self.pool.rows, key=lambda row: row["createdAt"], reverse=True)
        return [dict(row) for row in ordered[: args[0]]]

    async def fetchrow(self, query, *args):
        self.pool.statements.append(query.strip())
        self._require_table()
        assert query.startswith("INSERT INTO expenses")
        expense_id, title, amount, currency, country, category, note, occurred_at = args
        row = {
            "id": expense_id,
            "title": title,
            "amount": float(Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)),
            "currency": currency,
            "country": country,
            "category": category,
            "note": note,
            "occurredAt": occurred_at,
            "createdAt": self.pool.now(),
        }
        self.pool.rows.append(row)
        return dict(row)


class FakePool:
    def __init__(self):
        self.rows = []
        self.statements = []
        self.table_exists = False
        self.index_count = 0
        self.fail = False
        self.acquired = 0
        self.released = 0
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self):
        # Strictly increasing, like created_at on a single backend clock
        self._clock += timedelta(seconds=1)
        return self._clock

    @asynccontextmanager
    async def acquire(self):
        if self.fail:
            raise OSError("could not connect to server: Connection refused")
        self.acquired += 1
        try:
            yield FakeConnection(self)
        finally:
            self.released += 1


@pytest.fixture
def fake_pool():
    return FakePool()


@pytest.fixture
def initializer(fake_pool):
    return SchemaInitializer(fake_pool)


@pytest.fixture
def client(initializer):
    app.dependency_overrides[get_schema_initializer] = lambda: initializer
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def coffee_payload():
    return {
        "title": "Coffee",
        "amount": 4.50,
        "currency": "USD",
        "country": "United States",
        "occurredAt": "2024-01-05",
    }
