"""
Shared pytest fixtures.

Services are exercised against an in-memory RecordStore so no database is
required; test_store_sql.py covers the SQL store on a temporary SQLite file.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from lifeos.settings import get_settings, reset_settings
from lifeos.store import Gte

TEST_SECRET = "test-secret"


UTC_NOW = datetime(2024, 5, 1, 20, 0, tzinfo=timezone.utc)
KIRITIMATI = timezone(timedelta(hours=14))


class AheadOfUtcClock(datetime):
    """Local wall clock at UTC+14, where 20:00 UTC is already tomorrow."""

    @classmethod
    def now(cls, tz=None):
        if tz is None:
            return UTC_NOW.astimezone(KIRITIMATI).replace(tzinfo=None)
        return UTC_NOW.astimezone(tz)


class StoreDown(ConnectionError):
    pass


def _matches(row, filters):
    for column, expected in filters.items():
        value = row.get(column)
        if isinstance(expected, Gte):
            if value is None or value < expected.value:
                return False
        elif value != expected:
            return False
    return True


def _sort_key(value):
    return (value is not None, value if value is not None else "")


class MemoryRecordStore:
    """RecordStore double keeping rows in dicts, with call logging and failure injection."""

    def __init__(self):
        self.tables = {}
        self.calls = []
        self._failures = []

    def fail_next(self, op, table=None):
        self._failures.append((op, table))

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def _record(self, op, table):
        self.calls.append((op, table))
        for failure in list(self._failures):
            fail_op, fail_table = failure
            if fail_op == op and fail_table in (None, table):
                self._failures.remove(failure)
                raise StoreDown(f"{op} on {table} failed")

    def count(self, op, table=None):
        return sum(1 for call_op, call_table in self.calls if call_op == op and table in (None, call_table))

    async def select(self, table, filters, order=None):
        self._record("select", table)
        found = [dict(row) for row in self.rows(table) if _matches(row, filters)]
        for item in reversed(list(order or [])):
            column = item.lstrip("-")
            found.sort(key=lambda row: _sort_key(row.get(column)), reverse=item.startswith("-"))
        return found

    async def insert(self, table, rows):
        self._record("insert", table)
        batch = rows if isinstance(rows, list) else [rows]
        self.rows(table).extend(dict(row) for row in batch)
        return rows

    async def update(self, table, filters, patch):
        self._record("update", table)
        for row in self.rows(table):
            if _matches(row, filters):
                row.update(patch)

    async def upsert(self, table, row, conflict_key):
        self._record("upsert", table)
        key = {column: row[column] for column in conflict_key}
        for existing in self.rows(table):
            if _matches(existing, key):
                existing.update(row)
                return
        self.rows(table).append(dict(row))

    async def delete(self, table, filters):
        self._record("delete", table)
        self.tables[table] = [row for row in self.rows(table) if not _matches(row, filters)]


class StubGenerator:
    def __init__(self, text="Great job!"):
        self.text = text
        self.prompts = []

    async def generate(self, prompt, context=None):
        self.prompts.append((prompt, context))
        return self.text


def run(coro):
    return asyncio.run(coro)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    monkeypatch.setenv("BACKEND_SESSION_SECRET", TEST_SECRET)
    monkeypatch.setenv("ALLOWED_USERS", "")
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    reset_settings()
    yield get_settings()
    reset_settings()


@pytest.fixture()
def store():
    return MemoryRecordStore()


@pytest.fixture()
def generator():
    return StubGenerator()
