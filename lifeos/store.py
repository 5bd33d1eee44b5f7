from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Protocol, Sequence

from sqlalchemy import text as sql_text
from sqlalchemy.ext.asyncio import async_sessionmaker

from lifeos.db import get_sessionmaker

logger = logging.getLogger(__name__)

TASKS_TABLE = "daily_tasks"
HABITS_TABLE = "habits"
COMPLETIONS_TABLE = "habit_completions"
GOALS_TABLE = "goals"
WEEKLY_PLANS_TABLE = "weekly_plans"
MOOD_TABLE = "mood_entries"
GRATITUDE_TABLE = "gratitude_entries"
HEALTH_TABLE = "health_metrics"
INSIGHTS_TABLE = "ai_insights"
NOTES_TABLE = "quick_notes"

JSON_COLUMNS = {"entries", "context"}

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


@dataclass(frozen=True)
class Gte:
    """Filter value meaning `column >= value`."""
    value: Any


class RecordStore(Protocol):
    async def select(self, table: str, filters: Mapping[str, Any], order: Sequence[str] | None = None) -> list[dict]:
        ...

    async def insert(self, table: str, rows: dict | list[dict]) -> dict | list[dict]:
        ...

    async def update(self, table: str, filters: Mapping[str, Any], patch: Mapping[str, Any]) -> None:
        ...

    async def upsert(self, table: str, row: Mapping[str, Any], conflict_key: Sequence[str]) -> None:
        ...

    async def delete(self, table: str, filters: Mapping[str, Any]) -> None:
        ...


def _ident(name: str) -> str:
    if not _IDENTIFIER.match(name or ""):
        raise ValueError(f"Invalid identifier: {name!r}")
    return name


def _to_db_value(value):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def _from_db_row(row: Mapping[str, Any]) -> dict:
    payload = dict(row)
    for key in JSON_COLUMNS & payload.keys():
        value = payload[key]
        if isinstance(value, str):
            try:
                payload[key] = json.loads(value)
            except ValueError:
                logger.debug("Column %s holds non-JSON text, leaving as is.", key)
    return payload


def _where(filters: Mapping[str, Any], params: dict) -> str:
    clauses = []
    for idx, (column, value) in enumerate(filters.items()):
        column = _ident(column)
        param = f"w{idx}_{column}"
        if isinstance(value, Gte):
            clauses.append(f"{column} >= :{param}")
            params[param] = _to_db_value(value.value)
        elif value is None:
            clauses.append(f"{column} IS NULL")
        else:
            clauses.append(f"{column} = :{param}")
            params[param] = _to_db_value(value)
    return " AND ".join(clauses) if clauses else "1 = 1"


def _order_by(order: Sequence[str] | None) -> str:
    if not order:
        return ""
    parts = []
    for item in order:
        if item.startswith("-"):
            parts.append(f"{_ident(item[1:])} DESC")
        else:
            parts.append(f"{_ident(item)} ASC")
    return " ORDER BY " + ", ".join(parts)


class SqlRecordStore:
    """RecordStore over a relational database through async SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker | None = None):
        self._session_factory = session_factory

    @property
    def session_factory(self) -> async_sessionmaker:
        if self._session_factory is None:
            self._session_factory = get_sessionmaker()
        return self._session_factory

    async def select(self, table: str, filters: Mapping[str, Any], order: Sequence[str] | None = None) -> list[dict]:
        params: dict = {}
        stmt = f"SELECT * FROM {_ident(table)} WHERE {_where(filters, params)}{_order_by(order)}"
        async with self.session_factory() as session:
            rows = (await session.execute(sql_text(stmt), params)).mappings().all()
        return [_from_db_row(row) for row in rows]

    async def insert(self, table: str, rows: dict | list[dict]) -> dict | list[dict]:
        batch = rows if isinstance(rows, list) else [rows]
        if not batch:
            return []
        columns = [_ident(col) for col in batch[0].keys()]
        stmt = (
            f"INSERT INTO {_ident(table)} ({', '.join(columns)}) "
            f"VALUES ({', '.join(f':{col}' for col in columns)})"
        )
        params = [{col: _to_db_value(row.get(col)) for col in columns} for row in batch]
        async with self.session_factory() as session:
            await session.execute(sql_text(stmt), params)
            await session.commit()
        return rows

    async def update(self, table: str, filters: Mapping[str, Any], patch: Mapping[str, Any]) -> None:
        if not patch:
            return
        if not filters:
            raise ValueError(f"Refusing to update every row of {table}")
        params: dict = {}
        updates = []
        for column, value in patch.items():
            column = _ident(column)
            updates.append(f"{column} = :set_{column}")
            params[f"set_{column}"] = _to_db_value(value)
        stmt = f"UPDATE {_ident(table)} SET {', '.join(updates)} WHERE {_where(filters, params)}"
        async with self.session_factory() as session:
            await session.execute(sql_text(stmt), params)
            await session.commit()

    async def upsert(self, table: str, row: Mapping[str, Any], conflict_key: Sequence[str]) -> None:
        columns = [_ident(col) for col in row.keys()]
        key_columns = [_ident(col) for col in conflict_key]
        updates = ", ".join(f"{col}=EXCLUDED.{col}" for col in columns if col not in key_columns)
        action = f"DO UPDATE SET {updates}" if updates else "DO NOTHING"
        stmt = f"""
            INSERT INTO {_ident(table)} ({', '.join(columns)})
            VALUES ({', '.join(f':{col}' for col in columns)})
            ON CONFLICT({', '.join(key_columns)}) {action}
        """
        async with self.session_factory() as session:
            await session.execute(sql_text(stmt), {col: _to_db_value(row[col]) for col in columns})
            await session.commit()

    async def delete(self, table: str, filters: Mapping[str, Any]) -> None:
        if not filters:
            raise ValueError(f"Refusing to delete every row of {table}")
        params: dict = {}
        stmt = f"DELETE FROM {_ident(table)} WHERE {_where(filters, params)}"
        async with self.session_factory() as session:
            await session.execute(sql_text(stmt), params)
            await session.commit()


_store: SqlRecordStore | None = None


def get_store() -> RecordStore:
    global _store
    if _store is None:
        _store = SqlRecordStore()
    return _store
