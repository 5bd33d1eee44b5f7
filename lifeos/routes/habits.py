from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from lifeos import datekeys
from lifeos.auth import require_user_id
from lifeos.deps import get_streak_engine
from lifeos.schemas import HabitCreate
from lifeos.services.habits import StreakEngine

router = APIRouter()


@router.get("/v1/habits")
async def list_habits(user_id: str = Depends(require_user_id), engine: StreakEngine = Depends(get_streak_engine)):
    return {"items": await engine.list_habits(user_id)}


@router.post("/v1/habits")
async def create_habit(
    payload: HabitCreate,
    user_id: str = Depends(require_user_id),
    engine: StreakEngine = Depends(get_streak_engine),
):
    return await engine.create_habit(user_id, payload.name, payload.category)


@router.delete("/v1/habits/{habit_id}")
async def delete_habit(
    habit_id: str,
    user_id: str = Depends(require_user_id),
    engine: StreakEngine = Depends(get_streak_engine),
):
    await engine.archive_habit(user_id, habit_id)
    return {"ok": True}


@router.get("/v1/habits/done/{day}")
async def get_done(day: date, user_id: str = Depends(require_user_id), engine: StreakEngine = Depends(get_streak_engine)):
    completions = await engine.completions_for(user_id, day)
    return {"date": day.isoformat(), "done": sorted(completions)}


@router.post("/v1/habits/{habit_id}/toggle/{day}")
async def toggle_habit(
    habit_id: str,
    day: date,
    user_id: str = Depends(require_user_id),
    engine: StreakEngine = Depends(get_streak_engine),
):
    return await engine.toggle(user_id, habit_id, day)


@router.get("/v1/habits/audit/{day}")
async def audit_habits(day: date, user_id: str = Depends(require_user_id), engine: StreakEngine = Depends(get_streak_engine)):
    return {"date": day.isoformat(), "items": await engine.audit(user_id, day)}


@router.post("/v1/habits/{habit_id}/reconcile")
async def reconcile_habit(
    habit_id: str,
    today: Optional[date] = Query(default=None),
    user_id: str = Depends(require_user_id),
    engine: StreakEngine = Depends(get_streak_engine),
):
    return await engine.reconcile(user_id, habit_id, today or datekeys.today())
