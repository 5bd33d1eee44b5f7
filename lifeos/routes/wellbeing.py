from __future__ import annotations

from datetime import date
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from lifeos.auth import require_user_id
from lifeos.deps import get_wellbeing_upserter
from lifeos.services.wellbeing import DailyWellbeingUpserter

router = APIRouter()


@router.get("/v1/wellbeing/{kind}/{day}")
async def get_entry(
    kind: str,
    day: date,
    user_id: str = Depends(require_user_id),
    upserter: DailyWellbeingUpserter = Depends(get_wellbeing_upserter),
):
    return {"kind": kind, "date": day.isoformat(), "entry": await upserter.load(user_id, day, kind)}


@router.put("/v1/wellbeing/{kind}/{day}")
async def put_entry(
    kind: str,
    day: date,
    payload: Dict[str, Any] = Body(...),
    user_id: str = Depends(require_user_id),
    upserter: DailyWellbeingUpserter = Depends(get_wellbeing_upserter),
):
    return await upserter.save(user_id, day, kind, payload)
