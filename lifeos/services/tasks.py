from __future__ import annotations

import logging
from collections import namedtuple
from uuid import uuid4

from lifeos import datekeys
from lifeos.errors import NotFoundError, ValidationError, transient_io
from lifeos.schemas import Task
from lifeos.store import TASKS_TABLE, RecordStore

logger = logging.getLogger(__name__)

TimeBlock = namedtuple("TimeBlock", ["time_slot", "title", "duration_minutes", "description"], defaults=[""])

DEFAULT_TIME_BLOCKS = (
    TimeBlock("06:00", "Wake up & Hydrate", 15),
    TimeBlock("06:15", "Exercise/Movement", 60),
    TimeBlock("07:15", "Learning", 45),
    TimeBlock("09:00", "Work Focus - Priority 1", 120),
    TimeBlock("11:00", "Work Focus - Priority 2", 120),
    TimeBlock("13:00", "Lunch Break", 60),
    TimeBlock("14:00", "Work Focus - Priority 3", 120),
    TimeBlock("16:00", "Administrative Tasks", 60),
    TimeBlock("17:00", "Wrap up & Planning", 30),
    TimeBlock("18:30", "Personal Projects", 90),
    TimeBlock("20:00", "Reading/Growth", 60),
    TimeBlock("21:30", "Tomorrow's Planning", 30),
)

MAX_TITLE_LENGTH = 120


def _one_per_slot(rows: list[dict]) -> list[dict]:
    # Rows arrive ordered by sort_order; a racing second seed only adds copies.
    seen = set()
    unique = []
    for row in rows:
        slot = row.get("time_slot")
        if slot in seen:
            continue
        seen.add(slot)
        unique.append(row)
    return unique


class TaskSeeder:
    def __init__(self, store: RecordStore, template=DEFAULT_TIME_BLOCKS):
        self.store = store
        self.template = tuple(template)

    async def _load_day(self, user_id: str, day_key: str) -> list[dict]:
        return await self.store.select(
            TASKS_TABLE,
            {"user_id": user_id, "task_date": day_key},
            order=["sort_order", "created_at"],
        )

    def _rows_from_template(self, user_id: str, day_key: str) -> list[dict]:
        now = datekeys.utc_now_iso()
        return [
            {
                "id": uuid4().hex,
                "user_id": user_id,
                "task_date": day_key,
                "time_slot": block.time_slot,
                "title": block.title,
                "description": block.description or "",
                "completed": False,
                "completed_at": None,
                "duration_minutes": block.duration_minutes,
                "sort_order": index,
                "created_at": now,
            }
            for index, block in enumerate(self.template)
        ]

    async def ensure_day(self, user_id: str, day) -> list[Task]:
        """Return the day's tasks, seeding them from the template on first view."""
        day_key = datekeys.to_key(day)
        async with transient_io("load tasks"):
            rows = await self._load_day(user_id, day_key)
            if not rows:
                await self.store.insert(TASKS_TABLE, self._rows_from_template(user_id, day_key))
                logger.info("Seeded %s tasks for %s on %s", len(self.template), user_id, day_key)
                rows = await self._load_day(user_id, day_key)
        unique = _one_per_slot(rows)
        if len(unique) != len(rows):
            logger.warning(
                "Duplicate seeded tasks for %s on %s (%s rows, %s slots)",
                user_id,
                day_key,
                len(rows),
                len(unique),
            )
        return [Task.model_validate(row) for row in unique]

    async def _get_task(self, user_id: str, task_id: str) -> dict:
        async with transient_io("load task"):
            rows = await self.store.select(TASKS_TABLE, {"id": task_id, "user_id": user_id})
        if not rows:
            raise NotFoundError("task", task_id)
        return rows[0]

    async def set_completed(self, user_id: str, task_id: str, completed: bool) -> Task:
        row = await self._get_task(user_id, task_id)
        patch = {
            "completed": bool(completed),
            "completed_at": datekeys.utc_now_iso() if completed else None,
        }
        async with transient_io("update task"):
            await self.store.update(TASKS_TABLE, {"id": task_id, "user_id": user_id}, patch)
        return Task.model_validate({**row, **patch})

    async def rename(self, user_id: str, task_id: str, title: str) -> Task:
        clean = " ".join(str(title or "").split())[:MAX_TITLE_LENGTH]
        if not clean:
            raise ValidationError("Task title cannot be empty", field="title")
        row = await self._get_task(user_id, task_id)
        async with transient_io("rename task"):
            await self.store.update(TASKS_TABLE, {"id": task_id, "user_id": user_id}, {"title": clean})
        return Task.model_validate({**row, "title": clean})
