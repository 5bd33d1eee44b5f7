from __future__ import annotations

import asyncio
from uuid import uuid4

from lifeos import datekeys
from lifeos.errors import ValidationError, transient_io
from lifeos.schemas import QuickNote
from lifeos.store import GOALS_TABLE, HABITS_TABLE, MOOD_TABLE, NOTES_TABLE, TASKS_TABLE, RecordStore


async def add_note(store: RecordStore, user_id: str, content: str) -> QuickNote:
    clean = str(content or "").strip()
    if not clean:
        raise ValidationError("Note cannot be empty", field="content")
    record = {"id": uuid4().hex, "user_id": user_id, "content": clean, "created_at": datekeys.utc_now_iso()}
    async with transient_io("save note"):
        await store.insert(NOTES_TABLE, record)
    return QuickNote.model_validate(record)


async def export_user_data(store: RecordStore, user_id: str) -> dict:
    async with transient_io("export data"):
        tasks, goals, habits, moods = await asyncio.gather(
            store.select(TASKS_TABLE, {"user_id": user_id}, order=["task_date", "sort_order"]),
            store.select(GOALS_TABLE, {"user_id": user_id}, order=["created_at"]),
            store.select(HABITS_TABLE, {"user_id": user_id}, order=["created_at"]),
            store.select(MOOD_TABLE, {"user_id": user_id}, order=["entry_date"]),
        )
    return {
        "export_date": datekeys.utc_now_iso(),
        "tasks": tasks,
        "goals": goals,
        "habits": habits,
        "moods": moods,
    }
