from __future__ import annotations

from typing import Any, Mapping

from lifeos.store import RecordStore


async def read_by_key(store: RecordStore, table: str, key: Mapping[str, Any]) -> dict | None:
    rows = await store.select(table, dict(key))
    return rows[0] if rows else None


async def upsert_by_key(store: RecordStore, table: str, key: Mapping[str, Any], fields: Mapping[str, Any]) -> dict:
    """Read the row identified by `key`, then replace its fields or create it.

    The create branch goes through the store's conflict-key upsert so a row
    inserted by a racing writer between the read and the write is replaced
    rather than duplicated.
    """
    existing = await read_by_key(store, table, key)
    row = {**key, **fields}
    if existing is not None:
        await store.update(table, dict(key), dict(fields))
        return {**existing, **row}
    await store.upsert(table, row, conflict_key=list(key.keys()))
    return row
