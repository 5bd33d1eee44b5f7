from __future__ import annotations

from fastapi import Depends

from lifeos.guards import InFlightGuard
from lifeos.services.generator import TextGenerator, build_generator
from lifeos.services.goals import GoalBook
from lifeos.services.habits import StreakEngine
from lifeos.services.insights import InsightCache
from lifeos.services.tasks import TaskSeeder
from lifeos.services.weekly import WeeklyPlanUpserter
from lifeos.services.wellbeing import DailyWellbeingUpserter
from lifeos.store import RecordStore, get_store

# One guard per process so two requests toggling the same habit day collide.
_toggle_guard = InFlightGuard()
_generator: TextGenerator | None = None


def get_record_store() -> RecordStore:
    return get_store()


def get_generator() -> TextGenerator:
    global _generator
    if _generator is None:
        _generator = build_generator()
    return _generator


def get_task_seeder(store: RecordStore = Depends(get_record_store)) -> TaskSeeder:
    return TaskSeeder(store)


def get_streak_engine(store: RecordStore = Depends(get_record_store)) -> StreakEngine:
    return StreakEngine(store, guard=_toggle_guard)


def get_goal_book(store: RecordStore = Depends(get_record_store)) -> GoalBook:
    return GoalBook(store)


def get_week_upserter(store: RecordStore = Depends(get_record_store)) -> WeeklyPlanUpserter:
    return WeeklyPlanUpserter(store)


def get_wellbeing_upserter(store: RecordStore = Depends(get_record_store)) -> DailyWellbeingUpserter:
    return DailyWellbeingUpserter(store)


def get_insight_cache(
    store: RecordStore = Depends(get_record_store),
    generator: TextGenerator = Depends(get_generator),
) -> InsightCache:
    return InsightCache(store, generator)
