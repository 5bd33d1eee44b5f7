from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

from lifeos import datekeys
from lifeos.errors import NotFoundError, ValidationError, transient_io
from lifeos.schemas import Goal
from lifeos.store import GOALS_TABLE, RecordStore

GOAL_CATEGORIES = {
    "primary": "Primary Goal",
    "skill": "Skill Development",
    "health": "Health & Fitness",
    "financial": "Financial",
    "personal": "Relationship/Personal",
}
GOAL_HORIZON_DAYS = 90


class GoalBook:
    def __init__(self, store: RecordStore):
        self.store = store

    async def create_goal(self, user_id: str, title: str, category: str, description: str = "", today=None) -> Goal:
        clean_title = " ".join(str(title or "").split())
        if not clean_title:
            raise ValidationError("Goal title cannot be empty", field="title")
        category = str(category or "").strip().lower()
        if category not in GOAL_CATEGORIES:
            raise ValidationError("Pick a goal category", field="category")
        start = datekeys.parse_day(today or datekeys.today())
        record = {
            "id": uuid4().hex,
            "user_id": user_id,
            "title": clean_title,
            "description": str(description or "").strip(),
            "category": category,
            "is_primary": category == "primary",
            "progress_percentage": 0,
            "target_date": (start + timedelta(days=GOAL_HORIZON_DAYS)).isoformat(),
            "status": "active",
            "created_at": datekeys.utc_now_iso(),
        }
        async with transient_io("create goal"):
            await self.store.insert(GOALS_TABLE, record)
        return Goal.model_validate(record)

    async def list_active_goals(self, user_id: str) -> list[Goal]:
        async with transient_io("load goals"):
            rows = await self.store.select(
                GOALS_TABLE,
                {"user_id": user_id, "status": "active"},
                order=["-is_primary", "-created_at"],
            )
        return [Goal.model_validate(row) for row in rows]

    async def _get_goal(self, user_id: str, goal_id: str) -> dict:
        async with transient_io("load goal"):
            rows = await self.store.select(GOALS_TABLE, {"id": goal_id, "user_id": user_id})
        if not rows:
            raise NotFoundError("goal", goal_id)
        return rows[0]

    async def get_goal(self, user_id: str, goal_id: str) -> Goal:
        return Goal.model_validate(await self._get_goal(user_id, goal_id))

    async def set_progress(self, user_id: str, goal_id: str, progress: int) -> Goal:
        if not isinstance(progress, int) or isinstance(progress, bool) or not 0 <= progress <= 100:
            raise ValidationError("Progress must be between 0 and 100", field="progress_percentage")
        row = await self._get_goal(user_id, goal_id)
        async with transient_io("update goal"):
            await self.store.update(GOALS_TABLE, {"id": goal_id, "user_id": user_id}, {"progress_percentage": progress})
        return Goal.model_validate({**row, "progress_percentage": progress})

    async def archive_goal(self, user_id: str, goal_id: str) -> None:
        await self._get_goal(user_id, goal_id)
        async with transient_io("archive goal"):
            await self.store.update(GOALS_TABLE, {"id": goal_id, "user_id": user_id}, {"status": "archived"})
