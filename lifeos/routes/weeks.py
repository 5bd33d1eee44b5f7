from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends

from lifeos.auth import require_user_id
from lifeos.deps import get_week_upserter
from lifeos.schemas import WeeklyPlanFields
from lifeos.services.weekly import WeeklyPlanUpserter

router = APIRouter()


@router.get("/v1/weeks/{week_start}")
async def get_week(
    week_start: date,
    user_id: str = Depends(require_user_id),
    upserter: WeeklyPlanUpserter = Depends(get_week_upserter),
):
    return await upserter.load(user_id, week_start)


@router.put("/v1/weeks/{week_start}")
async def put_week(
    week_start: date,
    payload: WeeklyPlanFields,
    user_id: str = Depends(require_user_id),
    upserter: WeeklyPlanUpserter = Depends(get_week_upserter),
):
    return await upserter.save(user_id, week_start, payload)
