"""
Tests for the Today, Habits and Week view controllers.
"""
import asyncio
from datetime import date

import pytest

from conftest import run
from lifeos import datekeys
from lifeos.services.habits import StreakEngine
from lifeos.services.tasks import TaskSeeder
from lifeos.services.weekly import WeeklyPlanUpserter
from lifeos.state.controllers import HabitsController, TodayController, WeekController
from lifeos.state.session import sign_in
from lifeos.store import COMPLETIONS_TABLE, HABITS_TABLE, TASKS_TABLE

DAY = date(2024, 5, 1)


class GatedSeeder(TaskSeeder):
    """Holds loads of `gated_day` and completion writes until released."""

    def __init__(self, store, gated_day=None):
        super().__init__(store)
        self.gated_day = gated_day
        self.gate = None
        self.on_persist = None

    async def ensure_day(self, user_id, day):
        if self.gate is not None and datekeys.to_key(day) == self.gated_day:
            await self.gate.wait()
        return await super().ensure_day(user_id, day)

    async def set_completed(self, user_id, task_id, completed):
        if self.on_persist is not None:
            self.on_persist()
        if self.gate is not None and self.gated_day is None:
            await self.gate.wait()
        return await super().set_completed(user_id, task_id, completed)


@pytest.fixture()
def session():
    return sign_in("u1")


class TestTodayController:
    def test_load_and_navigate(self, session, store):
        controller = TodayController(session, TaskSeeder(store))
        assert run(controller.go_to(DAY)) is True
        assert len(controller.tasks) == 12
        run(controller.next_day())
        assert controller.current_date == date(2024, 5, 2)
        assert controller.tasks[0].task_date == date(2024, 5, 2)
        run(controller.previous_day())
        run(controller.previous_day())
        assert controller.current_date == date(2024, 4, 30)

    def test_stale_load_is_dropped(self, session, store):
        seeder = GatedSeeder(store, gated_day="2024-05-01")
        controller = TodayController(session, seeder)

        async def scenario():
            seeder.gate = asyncio.Event()
            slow = asyncio.ensure_future(controller.go_to(DAY))
            await asyncio.sleep(0)
            fast = await controller.go_to(date(2024, 5, 2))
            seeder.gate.set()
            return await slow, fast

        slow, fast = run(scenario())
        assert (slow, fast) == (False, True)
        assert session.get_value("today", "loaded_date") == date(2024, 5, 2)
        assert {task.task_date for task in controller.tasks} == {date(2024, 5, 2)}

    def test_toggle_applies_before_persisting(self, session, store):
        seeder = GatedSeeder(store)
        controller = TodayController(session, seeder)
        run(controller.go_to(DAY))
        task_id = controller.tasks[0].id
        seen = []
        seeder.on_persist = lambda: seen.append(controller.tasks[0].completed)
        assert run(controller.toggle_task(task_id)) is True
        assert seen == [True]
        assert controller.tasks[0].completed is True
        assert controller.tasks[0].completed_at

    def test_failed_persist_rolls_back(self, session, store):
        controller = TodayController(session, TaskSeeder(store))
        run(controller.go_to(DAY))
        task_id = controller.tasks[0].id
        store.fail_next("update", TASKS_TABLE)
        assert run(controller.toggle_task(task_id)) is False
        assert controller.tasks[0].completed is False
        assert store.rows(TASKS_TABLE)[0]["completed"] is False
        assert session.pop_notices() == ["Could not update task. Please try again."]

    def test_second_toggle_while_in_flight_is_ignored(self, session, store):
        seeder = GatedSeeder(store)
        controller = TodayController(session, seeder)
        run(controller.go_to(DAY))
        task_id = controller.tasks[0].id

        async def scenario():
            seeder.gate = asyncio.Event()
            first = asyncio.ensure_future(controller.toggle_task(task_id))
            await asyncio.sleep(0)
            assert session.in_flight.is_busy(f"task:{task_id}")
            second = await controller.toggle_task(task_id)
            seeder.gate.set()
            return await first, second

        assert run(scenario()) == (True, False)
        assert controller.tasks[0].completed is True

    def test_blank_rename_notifies(self, session, store):
        controller = TodayController(session, TaskSeeder(store))
        run(controller.go_to(DAY))
        assert run(controller.rename_task(controller.tasks[0].id, "")) is False
        assert session.pop_notices() == ["Task title cannot be empty"]


class TestHabitsController:
    def test_toggle_updates_view(self, session, store):
        engine = StreakEngine(store, guard=session.in_flight)
        controller = HabitsController(session, engine)
        run(controller.create("Journal"))
        run(controller.load(DAY))
        habit_id = controller.habits[0].id
        assert run(controller.toggle(habit_id)) is True
        assert habit_id in controller.completions
        assert controller.habits[0].current_streak == 1
        assert not controller.is_busy(habit_id)
        run(controller.toggle(habit_id))
        assert controller.completions == {}
        assert controller.habits[0].best_streak == 1

    def test_partial_failure_marks_completion_and_warns(self, session, store):
        engine = StreakEngine(store, guard=session.in_flight)
        controller = HabitsController(session, engine)
        run(controller.create("Journal"))
        run(controller.load(DAY))
        habit_id = controller.habits[0].id
        store.fail_next("update", HABITS_TABLE)
        assert run(controller.toggle(habit_id)) is False
        assert habit_id in controller.completions
        assert controller.habits[0].current_streak == 0
        assert "streak was not updated" in session.pop_notices()[0]

    def _toggle_across_day_change(self, store, controller, habit_id):
        async def scenario():
            gate = asyncio.Event()
            plain_insert = store.insert

            async def slow_insert(table, rows):
                if table == COMPLETIONS_TABLE:
                    await gate.wait()
                return await plain_insert(table, rows)

            store.insert = slow_insert
            pending = asyncio.ensure_future(controller.toggle(habit_id))
            await asyncio.sleep(0)
            await controller.load(date(2024, 5, 2))
            gate.set()
            return await pending

        return run(scenario())

    def test_toggle_finishing_after_day_change_keeps_new_view(self, session, store):
        engine = StreakEngine(store, guard=session.in_flight)
        controller = HabitsController(session, engine)
        run(controller.create("Journal"))
        run(controller.load(DAY))
        habit_id = controller.habits[0].id
        assert self._toggle_across_day_change(store, controller, habit_id) is True
        assert controller.day == date(2024, 5, 2)
        assert controller.completions == {}
        assert controller.habits[0].current_streak == 1
        run(controller.load(DAY))
        assert set(controller.completions) == {habit_id}

    def test_partial_failure_after_day_change_keeps_new_view(self, session, store):
        engine = StreakEngine(store, guard=session.in_flight)
        controller = HabitsController(session, engine)
        run(controller.create("Journal"))
        run(controller.load(DAY))
        habit_id = controller.habits[0].id
        store.fail_next("update", HABITS_TABLE)
        assert self._toggle_across_day_change(store, controller, habit_id) is False
        assert controller.completions == {}
        assert "streak was not updated" in session.pop_notices()[0]


class TestWeekController:
    def test_load_save_and_shift(self, session, store):
        controller = WeekController(session, WeeklyPlanUpserter(store))
        session.set_value("week", "week_start", date(2024, 4, 29))
        run(controller.load())
        assert controller.plan.week_theme == ""
        assert run(controller.save({"week_theme": "Deep work"})) is True
        assert controller.plan.week_theme == "Deep work"
        assert session.get_value("week", "last_saved")
        run(controller.shift_week(1))
        assert controller.week_start == date(2024, 5, 6)
        assert controller.plan.week_theme == ""
        run(controller.shift_week(-1))
        assert controller.plan.week_theme == "Deep work"

    def test_invalid_save_notifies(self, session, store):
        controller = WeekController(session, WeeklyPlanUpserter(store))
        assert run(controller.save({"week_theme": {"nested": True}})) is False
        assert session.pop_notices()
