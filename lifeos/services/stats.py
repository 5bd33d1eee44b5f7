from __future__ import annotations

import asyncio

from lifeos import datekeys
from lifeos.errors import transient_io
from lifeos.schemas import StatsSnapshot
from lifeos.store import COMPLETIONS_TABLE, GOALS_TABLE, HABITS_TABLE, TASKS_TABLE, Gte, RecordStore


async def collect_stats(store: RecordStore, user_id: str, today) -> StatsSnapshot:
    day_key = datekeys.to_key(today)
    monday_key = datekeys.week_start(today).isoformat()
    async with transient_io("load stats"):
        tasks_today, tasks_week, goals, habits, done_today = await asyncio.gather(
            store.select(TASKS_TABLE, {"user_id": user_id, "task_date": day_key}),
            store.select(TASKS_TABLE, {"user_id": user_id, "task_date": Gte(monday_key)}),
            store.select(GOALS_TABLE, {"user_id": user_id, "status": "active"}),
            store.select(HABITS_TABLE, {"user_id": user_id, "is_active": True}),
            store.select(COMPLETIONS_TABLE, {"user_id": user_id, "completion_date": day_key}),
        )
    return StatsSnapshot(
        today_completed=sum(1 for task in tasks_today if task.get("completed")),
        today_total=len(tasks_today),
        week_completed=sum(1 for task in tasks_week if task.get("completed")),
        active_goals=len(goals),
        longest_streak=max((int(habit.get("current_streak") or 0) for habit in habits), default=0),
        habits_today=len(done_today),
        total_habits=len(habits),
    )
