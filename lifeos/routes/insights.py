from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends

from lifeos import datekeys
from lifeos.auth import require_user_id
from lifeos.deps import get_goal_book, get_insight_cache, get_record_store
from lifeos.services.goals import GoalBook
from lifeos.services.insights import InsightCache
from lifeos.services.stats import collect_stats
from lifeos.store import RecordStore

router = APIRouter()


@router.get("/v1/insights/daily")
async def daily_insight(
    user_id: str = Depends(require_user_id),
    store: RecordStore = Depends(get_record_store),
    cache: InsightCache = Depends(get_insight_cache),
):
    today = datekeys.today()
    stats = await collect_stats(store, user_id, today)
    return await cache.get_or_generate(user_id, today, stats)


@router.post("/v1/insights/daily/regenerate")
async def regenerate_daily_insight(
    user_id: str = Depends(require_user_id),
    store: RecordStore = Depends(get_record_store),
    cache: InsightCache = Depends(get_insight_cache),
):
    stats = await collect_stats(store, user_id, datekeys.today())
    return await cache.regenerate(user_id, stats)


@router.post("/v1/insights/weekly-review/{week_start}")
async def weekly_review(
    week_start: date,
    user_id: str = Depends(require_user_id),
    cache: InsightCache = Depends(get_insight_cache),
):
    return await cache.weekly_review(user_id, week_start)


@router.post("/v1/goals/{goal_id}/advice")
async def goal_advice(
    goal_id: str,
    user_id: str = Depends(require_user_id),
    book: GoalBook = Depends(get_goal_book),
    cache: InsightCache = Depends(get_insight_cache),
):
    goal = await book.get_goal(user_id, goal_id)
    return await cache.goal_advice(user_id, goal, datekeys.today())
