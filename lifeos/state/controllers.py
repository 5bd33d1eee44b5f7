"""
View state for the Today, Habits and Week screens.

Each controller keeps its screen's data in a session slice. Loads take a
generation ticket so a response that arrives after the user navigated away
is dropped. Task completion is optimistic (apply, persist, roll back on
failure); habit toggles apply only the counters the engine returns.
"""
from __future__ import annotations

import logging

from lifeos import datekeys
from lifeos.errors import ConsistencyWarning, LifeOSError, ToggleInProgress
from lifeos.services.habits import StreakEngine
from lifeos.services.tasks import TaskSeeder
from lifeos.services.weekly import WeeklyPlanUpserter
from lifeos.state.session import UserSession

logger = logging.getLogger(__name__)


async def optimistic(apply, revert, persist):
    """Apply locally, persist remotely, and undo the local change if persisting fails."""
    apply()
    try:
        return await persist()
    except LifeOSError:
        revert()
        raise


class TodayController:
    VIEW = "today"

    def __init__(self, session: UserSession, seeder: TaskSeeder):
        self.session = session
        self.seeder = seeder

    @property
    def current_date(self):
        return self.session.get_value(self.VIEW, "date") or datekeys.today()

    @property
    def tasks(self) -> list:
        return list(self.session.get_value(self.VIEW, "tasks", []))

    async def load(self) -> bool:
        day = self.current_date
        ticket = self.session.generations.begin(self.VIEW)
        try:
            tasks = await self.seeder.ensure_day(self.session.user_id, day)
        except LifeOSError as exc:
            if self.session.generations.is_current(self.VIEW, ticket):
                self.session.notify(exc.message)
            return False
        if not self.session.generations.is_current(self.VIEW, ticket):
            logger.debug("Dropping stale task load for %s", day)
            return False
        self.session.update_slice(self.VIEW, {"tasks": tasks, "loaded_date": day})
        return True

    async def go_to(self, day) -> bool:
        self.session.set_value(self.VIEW, "date", datekeys.parse_day(day))
        return await self.load()

    async def previous_day(self) -> bool:
        return await self.go_to(datekeys.shift_days(self.current_date, -1))

    async def next_day(self) -> bool:
        return await self.go_to(datekeys.shift_days(self.current_date, 1))

    async def go_to_today(self) -> bool:
        return await self.go_to(datekeys.today())

    def _replace_task(self, task) -> None:
        tasks = self.tasks
        for idx, item in enumerate(tasks):
            if item.id == task.id:
                tasks[idx] = task
                self.session.set_value(self.VIEW, "tasks", tasks)
                return

    async def toggle_task(self, task_id: str) -> bool:
        original = next((task for task in self.tasks if task.id == task_id), None)
        if original is None:
            return False
        flipped = original.model_copy(update={"completed": not original.completed})
        try:
            with self.session.in_flight.hold(f"task:{task_id}"):
                saved = await optimistic(
                    lambda: self._replace_task(flipped),
                    lambda: self._replace_task(original),
                    lambda: self.seeder.set_completed(self.session.user_id, task_id, flipped.completed),
                )
        except ToggleInProgress:
            return False
        except LifeOSError as exc:
            self.session.notify(exc.message)
            return False
        self._replace_task(saved)
        return True

    async def rename_task(self, task_id: str, title: str) -> bool:
        try:
            saved = await self.seeder.rename(self.session.user_id, task_id, title)
        except LifeOSError as exc:
            self.session.notify(exc.message)
            return False
        self._replace_task(saved)
        return True


class HabitsController:
    VIEW = "habits"

    def __init__(self, session: UserSession, engine: StreakEngine):
        self.session = session
        self.engine = engine

    @property
    def habits(self) -> list:
        return list(self.session.get_value(self.VIEW, "habits", []))

    @property
    def completions(self) -> dict:
        return dict(self.session.get_value(self.VIEW, "completions", {}))

    @property
    def day(self):
        return self.session.get_value(self.VIEW, "date") or datekeys.today()

    def is_busy(self, habit_id: str) -> bool:
        return self.engine.guard.is_busy(f"habit:{habit_id}:{datekeys.to_key(self.day)}")

    async def load(self, day=None) -> bool:
        day = datekeys.parse_day(day or self.day)
        self.session.set_value(self.VIEW, "date", day)
        ticket = self.session.generations.begin(self.VIEW)
        try:
            habits = await self.engine.list_habits(self.session.user_id)
            completions = await self.engine.completions_for(self.session.user_id, day)
        except LifeOSError as exc:
            if self.session.generations.is_current(self.VIEW, ticket):
                self.session.notify(exc.message)
            return False
        if not self.session.generations.is_current(self.VIEW, ticket):
            return False
        self.session.update_slice(self.VIEW, {"habits": habits, "completions": completions})
        return True

    def _replace_habit(self, habit) -> None:
        self.session.set_value(
            self.VIEW,
            "habits",
            [habit if item.id == habit.id else item for item in self.habits],
        )

    def _mark(self, day, habit_id: str, done: bool, completion=None) -> None:
        # The view may have moved to another day while the toggle was in flight.
        if self.day != day:
            logger.debug("Dropping completion mark for %s on %s, view shows %s", habit_id, day, self.day)
            return
        completions = self.completions
        if done:
            completions[habit_id] = completion
        else:
            completions.pop(habit_id, None)
        self.session.set_value(self.VIEW, "completions", completions)

    async def toggle(self, habit_id: str) -> bool:
        day = self.day
        try:
            result = await self.engine.toggle(self.session.user_id, habit_id, day)
        except ToggleInProgress:
            return False
        except ConsistencyWarning as exc:
            # The completion row did change; only the counters are stale.
            self._mark(day, habit_id, exc.details["completion_exists"])
            self.session.notify(exc.message)
            return False
        except LifeOSError as exc:
            self.session.notify(exc.message)
            return False
        self._mark(day, habit_id, result.done, result.completion)
        self._replace_habit(result.habit)
        return True

    async def create(self, name: str, category: str | None = None) -> bool:
        try:
            habit = await self.engine.create_habit(self.session.user_id, name, category)
        except LifeOSError as exc:
            self.session.notify(exc.message)
            return False
        self.session.set_value(self.VIEW, "habits", [habit] + self.habits)
        return True


class WeekController:
    VIEW = "week"

    def __init__(self, session: UserSession, upserter: WeeklyPlanUpserter):
        self.session = session
        self.upserter = upserter

    @property
    def week_start(self):
        return self.session.get_value(self.VIEW, "week_start") or datekeys.week_start(datekeys.today())

    @property
    def plan(self):
        return self.session.get_value(self.VIEW, "plan")

    async def load(self) -> bool:
        week_start = self.week_start
        ticket = self.session.generations.begin(self.VIEW)
        try:
            plan = await self.upserter.load(self.session.user_id, week_start)
        except LifeOSError as exc:
            if self.session.generations.is_current(self.VIEW, ticket):
                self.session.notify(exc.message)
            return False
        if not self.session.generations.is_current(self.VIEW, ticket):
            return False
        self.session.set_value(self.VIEW, "plan", plan)
        return True

    async def shift_week(self, weeks: int) -> bool:
        self.session.set_value(self.VIEW, "week_start", datekeys.shift_days(self.week_start, 7 * weeks))
        return await self.load()

    async def save(self, fields) -> bool:
        try:
            with self.session.in_flight.hold(f"week:{self.week_start.isoformat()}"):
                plan = await self.upserter.save(self.session.user_id, self.week_start, fields)
        except ToggleInProgress:
            return False
        except LifeOSError as exc:
            self.session.notify(exc.message)
            return False
        self.session.update_slice(self.VIEW, {"plan": plan, "last_saved": plan.updated_at})
        return True
