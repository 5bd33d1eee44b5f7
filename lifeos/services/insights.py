from __future__ import annotations

import asyncio
import logging
from uuid import uuid4

from lifeos import datekeys
from lifeos.errors import transient_io
from lifeos.schemas import AIInsight, DailyInsight, Goal, StatsSnapshot
from lifeos.services.generator import (
    TextGenerator,
    daily_motivation_prompt,
    goal_advice_prompt,
    weekly_review_prompt,
)
from lifeos.store import COMPLETIONS_TABLE, GOALS_TABLE, INSIGHTS_TABLE, TASKS_TABLE, Gte, RecordStore

logger = logging.getLogger(__name__)

DAILY_MOTIVATION = "daily_motivation"
WEEKLY_REVIEW = "weekly_review"
GOAL_ADVICE = "goal_advice"


class InsightCache:
    """At most one generated daily message per user and day, unless regenerated.

    Weekly reviews and goal advice are generated on request and only kept as
    history.
    """

    def __init__(self, store: RecordStore, generator: TextGenerator):
        self.store = store
        self.generator = generator

    async def _latest_since(self, user_id: str, day) -> dict | None:
        async with transient_io("load insight"):
            rows = await self.store.select(
                INSIGHTS_TABLE,
                {
                    "user_id": user_id,
                    "insight_type": DAILY_MOTIVATION,
                    "generated_at": Gte(datekeys.start_of_day(day)),
                },
                order=["-generated_at"],
            )
        return rows[0] if rows else None

    async def _save(self, user_id: str, insight_type: str, content: str, context: dict) -> AIInsight:
        record = {
            "id": uuid4().hex,
            "user_id": user_id,
            "insight_type": insight_type,
            "content": content,
            "generated_at": datekeys.utc_now_iso(),
            "context": context,
        }
        async with transient_io("save insight"):
            await self.store.insert(INSIGHTS_TABLE, record)
        return AIInsight.model_validate(record)

    async def _generate_and_store(self, user_id: str, stats: StatsSnapshot) -> DailyInsight:
        prompt, context = daily_motivation_prompt(stats)
        content = await self.generator.generate(prompt, context)
        saved = await self._save(user_id, DAILY_MOTIVATION, content, {"stats": stats.model_dump()})
        return DailyInsight(content=saved.content, generated_at=saved.generated_at, cached=False)

    async def get_or_generate(self, user_id: str, day, stats: StatsSnapshot) -> DailyInsight:
        existing = await self._latest_since(user_id, day)
        if existing is not None:
            return DailyInsight(content=existing["content"], generated_at=existing["generated_at"], cached=True)
        logger.info("No %s insight for %s since %s, generating", DAILY_MOTIVATION, user_id, datekeys.to_key(day))
        return await self._generate_and_store(user_id, stats)

    async def regenerate(self, user_id: str, stats: StatsSnapshot) -> DailyInsight:
        return await self._generate_and_store(user_id, stats)

    async def weekly_review(self, user_id: str, week_start) -> AIInsight:
        monday = datekeys.week_start(week_start)
        monday_key = monday.isoformat()
        sunday_key = datekeys.shift_days(monday, 6).isoformat()
        async with transient_io("load week summary"):
            tasks, goals, completions = await asyncio.gather(
                self.store.select(TASKS_TABLE, {"user_id": user_id, "task_date": Gte(monday_key), "completed": True}),
                self.store.select(GOALS_TABLE, {"user_id": user_id, "status": "active"}),
                self.store.select(COMPLETIONS_TABLE, {"user_id": user_id, "completion_date": Gte(monday_key)}),
            )
        tasks_completed = sum(1 for row in tasks if str(row["task_date"]) <= sunday_key)
        habits_completed = sum(1 for row in completions if str(row["completion_date"]) <= sunday_key)
        progress = [int(row.get("progress_percentage") or 0) for row in goals]
        goals_progress = sum(progress) / len(progress) if progress else 0.0
        prompt = weekly_review_prompt(tasks_completed, goals_progress, habits_completed)
        content = await self.generator.generate(prompt)
        return await self._save(
            user_id,
            WEEKLY_REVIEW,
            content,
            {
                "week_start_date": monday_key,
                "tasks_completed": tasks_completed,
                "goals_progress": goals_progress,
                "habits_completed": habits_completed,
            },
        )

    async def goal_advice(self, user_id: str, goal: Goal, today) -> AIInsight:
        content = await self.generator.generate(goal_advice_prompt(goal, datekeys.parse_day(today)))
        return await self._save(user_id, GOAL_ADVICE, content, {"goal_id": goal.id})
