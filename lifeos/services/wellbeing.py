from __future__ import annotations

import logging
from collections import namedtuple

from pydantic import BaseModel, ValidationError as PydanticValidationError

from lifeos import datekeys
from lifeos.errors import ValidationError, transient_io
from lifeos.schemas import (
    GratitudeEntry,
    GratitudeFields,
    HealthFields,
    HealthMetric,
    MoodEntry,
    MoodFields,
)
from lifeos.services.keyed import read_by_key, upsert_by_key
from lifeos.store import GRATITUDE_TABLE, HEALTH_TABLE, MOOD_TABLE, RecordStore

logger = logging.getLogger(__name__)

WellbeingKind = namedtuple("WellbeingKind", ["table", "date_column", "fields_model", "record_model"])

KINDS = {
    "mood": WellbeingKind(MOOD_TABLE, "entry_date", MoodFields, MoodEntry),
    "gratitude": WellbeingKind(GRATITUDE_TABLE, "entry_date", GratitudeFields, GratitudeEntry),
    "health": WellbeingKind(HEALTH_TABLE, "metric_date", HealthFields, HealthMetric),
}


def _kind(kind: str) -> WellbeingKind:
    try:
        return KINDS[kind]
    except KeyError:
        raise ValidationError(f"Unknown entry kind: {kind!r}", field="kind") from None


def _validate_fields(entry_kind: WellbeingKind, fields) -> dict:
    if isinstance(fields, BaseModel):
        fields = fields.model_dump()
    fields = dict(fields or {})
    unknown = set(fields) - set(entry_kind.fields_model.model_fields)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}", field=sorted(unknown)[0])
    try:
        return entry_kind.fields_model.model_validate(fields).model_dump()
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(loc) for loc in first["loc"])
        raise ValidationError(f"{field}: {first['msg']}", field=field) from exc


class DailyWellbeingUpserter:
    """One mood, gratitude and health record per user and day; last write wins."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def load(self, user_id: str, day, kind: str):
        entry_kind = _kind(kind)
        async with transient_io(f"load {kind} entry"):
            row = await read_by_key(
                self.store,
                entry_kind.table,
                {"user_id": user_id, entry_kind.date_column: datekeys.to_key(day)},
            )
        return entry_kind.record_model.model_validate(row) if row else None

    async def save(self, user_id: str, day, kind: str, fields):
        entry_kind = _kind(kind)
        day_key = datekeys.to_key(day)
        payload = _validate_fields(entry_kind, fields)
        if kind == "gratitude":
            payload["entries"] = [item.strip() for item in payload["entries"] if str(item).strip()]
            if payload.get("mood_correlation") is None:
                mood = await self.load(user_id, day_key, "mood")
                payload["mood_correlation"] = mood.mood_score if mood else None
        payload["updated_at"] = datekeys.utc_now_iso()
        async with transient_io(f"save {kind} entry"):
            row = await upsert_by_key(
                self.store,
                entry_kind.table,
                {"user_id": user_id, entry_kind.date_column: day_key},
                payload,
            )
        logger.info("Saved %s entry for %s on %s", kind, user_id, day_key)
        return entry_kind.record_model.model_validate(row)
