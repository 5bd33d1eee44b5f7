"""
Habit catalog and the streak engine.

Streak counters on a habit row are a cached value driven by toggle events:

* not done -> done: insert the completion, current += 1, best = max(best, current)
* done -> not done: delete the completion, current = max(0, current - 1),
  best never decreases

The +-1 rule is applied to whichever date is toggled. `reconcile` is the
explicit way to rebuild the current streak from completion history.
"""
from __future__ import annotations

import logging
from collections import namedtuple
from datetime import date, timedelta
from uuid import uuid4

from lifeos import datekeys
from lifeos.errors import ConsistencyWarning, NotFoundError, TransientIOError, ValidationError, transient_io
from lifeos.guards import InFlightGuard
from lifeos.schemas import Habit, HabitCompletion, StreakInconsistency, ToggleResult
from lifeos.store import COMPLETIONS_TABLE, HABITS_TABLE, RecordStore

logger = logging.getLogger(__name__)

StreakState = namedtuple("StreakState", ["current", "best"])

MAX_NAME_LENGTH = 60
DEFAULT_CATEGORY = "general"


def apply_toggle(current: int, best: int, done: bool) -> StreakState:
    """Streak counters after a completion is switched on (`done`) or off."""
    current = max(0, int(current or 0))
    best = max(int(best or 0), current)
    if done:
        current += 1
        return StreakState(current, max(best, current))
    return StreakState(max(0, current - 1), best)


def contiguous_streak(completion_days: set[date], today: date) -> int:
    """Length of the run of completed days ending today, or yesterday if today is open."""
    current = today if today in completion_days else today - timedelta(days=1)
    count = 0
    while current in completion_days:
        count += 1
        current -= timedelta(days=1)
    return count


def _sanitize_name(raw_value) -> str:
    return " ".join(str(raw_value or "").split()).strip()[:MAX_NAME_LENGTH]


class StreakEngine:
    def __init__(self, store: RecordStore, guard: InFlightGuard | None = None):
        self.store = store
        self.guard = guard or InFlightGuard()

    async def create_habit(self, user_id: str, name: str, category: str | None = None) -> Habit:
        clean_name = _sanitize_name(name)
        if not clean_name:
            raise ValidationError("Habit name cannot be empty", field="name")
        record = {
            "id": uuid4().hex,
            "user_id": user_id,
            "name": clean_name,
            "category": _sanitize_name(category).lower() or DEFAULT_CATEGORY,
            "frequency": "daily",
            "is_active": True,
            "current_streak": 0,
            "best_streak": 0,
            "created_at": datekeys.utc_now_iso(),
        }
        async with transient_io("create habit"):
            await self.store.insert(HABITS_TABLE, record)
        return Habit.model_validate(record)

    async def list_habits(self, user_id: str) -> list[Habit]:
        async with transient_io("load habits"):
            rows = await self.store.select(
                HABITS_TABLE,
                {"user_id": user_id, "is_active": True},
                order=["-created_at"],
            )
        return [Habit.model_validate(row) for row in rows]

    async def archive_habit(self, user_id: str, habit_id: str) -> None:
        await self._get_habit(user_id, habit_id)
        async with transient_io("archive habit"):
            await self.store.update(HABITS_TABLE, {"id": habit_id, "user_id": user_id}, {"is_active": False})

    async def completions_for(self, user_id: str, day) -> dict[str, HabitCompletion]:
        async with transient_io("load habit completions"):
            rows = await self.store.select(
                COMPLETIONS_TABLE,
                {"user_id": user_id, "completion_date": datekeys.to_key(day)},
            )
        return {row["habit_id"]: HabitCompletion.model_validate(row) for row in rows}

    async def _get_habit(self, user_id: str, habit_id: str) -> dict:
        async with transient_io("load habit"):
            rows = await self.store.select(HABITS_TABLE, {"id": habit_id, "user_id": user_id})
        if not rows:
            raise NotFoundError("habit", habit_id)
        return rows[0]

    async def toggle(self, user_id: str, habit_id: str, day) -> ToggleResult:
        day_key = datekeys.to_key(day)
        with self.guard.hold(f"habit:{habit_id}:{day_key}"):
            habit = await self._get_habit(user_id, habit_id)
            key = {"user_id": user_id, "habit_id": habit_id, "completion_date": day_key}
            async with transient_io("toggle habit"):
                existing = await self.store.select(COMPLETIONS_TABLE, key)
                if existing:
                    await self.store.delete(COMPLETIONS_TABLE, key)
                    completion = None
                else:
                    completion = {"id": uuid4().hex, **key, "created_at": datekeys.utc_now_iso()}
                    await self.store.insert(COMPLETIONS_TABLE, completion)
            done = not existing
            state = apply_toggle(habit.get("current_streak"), habit.get("best_streak"), done)
            try:
                async with transient_io("update habit streak"):
                    await self.store.update(
                        HABITS_TABLE,
                        {"id": habit_id, "user_id": user_id},
                        {"current_streak": state.current, "best_streak": state.best},
                    )
            except TransientIOError as exc:
                logger.warning(
                    "Habit %s completion on %s is now %s but streak stayed at %s/%s",
                    habit_id,
                    day_key,
                    "done" if done else "not done",
                    habit.get("current_streak"),
                    habit.get("best_streak"),
                )
                raise ConsistencyWarning(
                    habit_id,
                    day_key,
                    completion_exists=done,
                    current_streak=int(habit.get("current_streak") or 0),
                    best_streak=int(habit.get("best_streak") or 0),
                ) from exc
        logger.info("Habit %s %s on %s -> streak %s/%s", habit_id, "done" if done else "undone", day_key, *state)
        updated = Habit.model_validate({**habit, "current_streak": state.current, "best_streak": state.best})
        return ToggleResult(
            habit=updated,
            done=done,
            completion=HabitCompletion.model_validate(completion) if completion else None,
        )

    async def audit(self, user_id: str, day) -> list[StreakInconsistency]:
        """Report habits whose counters contradict their completion rows."""
        day_key = datekeys.to_key(day)
        habits = await self.list_habits(user_id)
        async with transient_io("load habit completions"):
            rows = await self.store.select(COMPLETIONS_TABLE, {"user_id": user_id})
        totals: dict[str, int] = {}
        done_on_day = set()
        for row in rows:
            totals[row["habit_id"]] = totals.get(row["habit_id"], 0) + 1
            if str(row["completion_date"]) == day_key:
                done_on_day.add(row["habit_id"])

        findings = []
        for habit in habits:
            exists = habit.id in done_on_day
            reasons = []
            if exists and habit.current_streak == 0:
                reasons.append("completed on date but current streak is 0")
            if habit.current_streak > totals.get(habit.id, 0):
                reasons.append("current streak exceeds recorded completions")
            if habit.best_streak < habit.current_streak:
                reasons.append("best streak below current streak")
            for reason in reasons:
                findings.append(
                    StreakInconsistency(
                        habit_id=habit.id,
                        date=day_key,
                        reason=reason,
                        completion_exists=exists,
                        current_streak=habit.current_streak,
                        best_streak=habit.best_streak,
                    )
                )
        if findings:
            logger.warning("Streak audit for %s on %s found %s issue(s)", user_id, day_key, len(findings))
        return findings

    async def reconcile(self, user_id: str, habit_id: str, today) -> Habit:
        """Rebuild current_streak from contiguous completions ending at `today`."""
        habit = await self._get_habit(user_id, habit_id)
        async with transient_io("load habit completions"):
            rows = await self.store.select(COMPLETIONS_TABLE, {"user_id": user_id, "habit_id": habit_id})
        days = {datekeys.parse_day(row["completion_date"]) for row in rows}
        current = contiguous_streak(days, datekeys.parse_day(today))
        best = max(int(habit.get("best_streak") or 0), current)
        async with transient_io("reconcile habit streak"):
            await self.store.update(
                HABITS_TABLE,
                {"id": habit_id, "user_id": user_id},
                {"current_streak": current, "best_streak": best},
            )
        logger.info("Reconciled habit %s streak to %s/%s", habit_id, current, best)
        return Habit.model_validate({**habit, "current_streak": current, "best_streak": best})
