from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends

from lifeos.auth import require_user_id
from lifeos.deps import get_task_seeder
from lifeos.errors import ValidationError
from lifeos.schemas import TaskPatch
from lifeos.services.tasks import TaskSeeder

router = APIRouter()


@router.get("/v1/day/{day}/tasks")
async def get_day_tasks(
    day: date,
    user_id: str = Depends(require_user_id),
    seeder: TaskSeeder = Depends(get_task_seeder),
):
    tasks = await seeder.ensure_day(user_id, day)
    return {"date": day.isoformat(), "items": tasks}


@router.patch("/v1/tasks/{task_id}")
async def patch_task(
    task_id: str,
    payload: TaskPatch,
    user_id: str = Depends(require_user_id),
    seeder: TaskSeeder = Depends(get_task_seeder),
):
    if payload.title is None and payload.completed is None:
        raise ValidationError("Nothing to update")
    task = None
    if payload.title is not None:
        task = await seeder.rename(user_id, task_id, payload.title)
    if payload.completed is not None:
        task = await seeder.set_completed(user_id, task_id, payload.completed)
    return task
