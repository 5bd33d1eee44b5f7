from __future__ import annotations

import logging

from pydantic import ValidationError as PydanticValidationError

from lifeos import datekeys
from lifeos.errors import ValidationError, transient_io
from lifeos.schemas import WeeklyPlan, WeeklyPlanFields
from lifeos.services.keyed import read_by_key, upsert_by_key
from lifeos.store import WEEKLY_PLANS_TABLE, RecordStore

logger = logging.getLogger(__name__)

PLAN_TEXT_FIELDS = ["week_theme", "focus_area"] + [f"{day}_plan" for day in datekeys.DAY_KEYS]


class WeeklyPlanUpserter:
    def __init__(self, store: RecordStore):
        self.store = store

    async def load(self, user_id: str, week_start) -> WeeklyPlan:
        monday = datekeys.week_start(week_start)
        async with transient_io("load week plan"):
            row = await read_by_key(
                self.store,
                WEEKLY_PLANS_TABLE,
                {"user_id": user_id, "week_start_date": monday.isoformat()},
            )
        if row is None:
            return WeeklyPlan(user_id=user_id, week_start_date=monday)
        clean = {key: row.get(key) or "" for key in PLAN_TEXT_FIELDS}
        return WeeklyPlan(user_id=user_id, week_start_date=monday, updated_at=row.get("updated_at"), **clean)

    async def save(self, user_id: str, week_start, fields) -> WeeklyPlan:
        """Replace every text field of the week's plan, creating it when absent."""
        monday = datekeys.week_start(week_start)
        if isinstance(fields, WeeklyPlanFields):
            payload = fields.model_dump()
        else:
            try:
                payload = WeeklyPlanFields.model_validate(dict(fields or {})).model_dump()
            except PydanticValidationError as exc:
                field = ".".join(str(loc) for loc in exc.errors()[0]["loc"])
                raise ValidationError(f"Invalid week plan field: {field}", field=field) from exc
        payload = {key: str(payload.get(key) or "") for key in PLAN_TEXT_FIELDS}
        payload["updated_at"] = datekeys.utc_now_iso()
        async with transient_io("save week plan"):
            row = await upsert_by_key(
                self.store,
                WEEKLY_PLANS_TABLE,
                {"user_id": user_id, "week_start_date": monday.isoformat()},
                payload,
            )
        logger.info("Saved week plan for %s starting %s", user_id, monday.isoformat())
        return WeeklyPlan.model_validate(row)
