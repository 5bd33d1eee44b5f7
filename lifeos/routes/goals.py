from __future__ import annotations

from fastapi import APIRouter, Depends

from lifeos.auth import require_user_id
from lifeos.deps import get_goal_book
from lifeos.schemas import GoalCreate, GoalProgress
from lifeos.services.goals import GoalBook

router = APIRouter()


@router.get("/v1/goals")
async def list_goals(user_id: str = Depends(require_user_id), book: GoalBook = Depends(get_goal_book)):
    return {"items": await book.list_active_goals(user_id)}


@router.post("/v1/goals")
async def create_goal(payload: GoalCreate, user_id: str = Depends(require_user_id), book: GoalBook = Depends(get_goal_book)):
    return await book.create_goal(user_id, payload.title, payload.category, payload.description)


@router.patch("/v1/goals/{goal_id}")
async def update_goal_progress(
    goal_id: str,
    payload: GoalProgress,
    user_id: str = Depends(require_user_id),
    book: GoalBook = Depends(get_goal_book),
):
    return await book.set_progress(user_id, goal_id, payload.progress_percentage)


@router.delete("/v1/goals/{goal_id}")
async def archive_goal(goal_id: str, user_id: str = Depends(require_user_id), book: GoalBook = Depends(get_goal_book)):
    await book.archive_goal(user_id, goal_id)
    return {"ok": True}
