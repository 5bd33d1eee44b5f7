"""
HTTP routes through FastAPI's TestClient with the store and generator overridden.
"""
from datetime import date

import pytest
from fastapi.testclient import TestClient

from conftest import TEST_SECRET, AheadOfUtcClock
from lifeos import datekeys
from lifeos.deps import get_generator, get_record_store
from lifeos.main import create_app
from lifeos.settings import reset_settings
from lifeos.store import HABITS_TABLE, TASKS_TABLE

HEADERS = {"X-User-Id": "u1", "X-Backend-Token": TEST_SECRET}


@pytest.fixture()
def client(store, generator):
    app = create_app(init_database=False)
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_generator] = lambda: generator
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def frozen_day(monkeypatch):
    monkeypatch.setattr(datekeys, "today", lambda: date(2024, 5, 1))
    monkeypatch.setattr(datekeys, "utc_now_iso", lambda: "2024-05-01T08:30:00")


class TestAuthAndHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"ok": True}

    def test_missing_token(self, client):
        r = client.get("/v1/habits", headers={"X-User-Id": "u1"})
        assert r.status_code == 401

    def test_missing_user(self, client):
        r = client.get("/v1/habits", headers={"X-Backend-Token": TEST_SECRET})
        assert r.status_code == 401

    def test_user_not_allowed(self, client, monkeypatch):
        monkeypatch.setenv("ALLOWED_USERS", "someone-else")
        reset_settings()
        r = client.get("/v1/habits", headers=HEADERS)
        assert r.status_code == 403


class TestTaskRoutes:
    def test_day_is_seeded(self, client):
        r = client.get("/v1/day/2024-05-01/tasks", headers=HEADERS)
        assert r.status_code == 200
        body = r.json()
        assert body["date"] == "2024-05-01"
        assert len(body["items"]) == 12
        assert body["items"][0]["time_slot"] == "06:00"

    def test_patch_completed_and_title(self, client):
        task_id = client.get("/v1/day/2024-05-01/tasks", headers=HEADERS).json()["items"][2]["id"]
        r = client.patch(f"/v1/tasks/{task_id}", json={"completed": True, "title": "Deep learning"}, headers=HEADERS)
        assert r.status_code == 200
        assert r.json()["completed"] is True
        assert r.json()["title"] == "Deep learning"

    def test_empty_patch_rejected(self, client):
        r = client.patch("/v1/tasks/any", json={}, headers=HEADERS)
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_bad_date_uses_error_envelope(self, client):
        r = client.get("/v1/day/not-a-date/tasks", headers=HEADERS)
        assert r.status_code == 422
        assert r.json()["details"]["errors"]

    def test_store_outage_is_503(self, client, store):
        store.fail_next("select", TASKS_TABLE)
        r = client.get("/v1/day/2024-05-01/tasks", headers=HEADERS)
        assert r.status_code == 503
        assert r.json()["code"] == "STORE_UNAVAILABLE"


class TestHabitRoutes:
    def test_create_toggle_and_done(self, client):
        habit = client.post("/v1/habits", json={"name": "Meditate"}, headers=HEADERS).json()
        assert habit["category"] == "general"
        r = client.post(f"/v1/habits/{habit['id']}/toggle/2024-05-01", headers=HEADERS)
        assert r.status_code == 200
        assert r.json()["done"] is True
        assert r.json()["habit"]["current_streak"] == 1
        done = client.get("/v1/habits/done/2024-05-01", headers=HEADERS).json()
        assert done["done"] == [habit["id"]]
        assert [item["id"] for item in client.get("/v1/habits", headers=HEADERS).json()["items"]] == [habit["id"]]

    def test_unknown_habit_is_404(self, client):
        r = client.post("/v1/habits/missing/toggle/2024-05-01", headers=HEADERS)
        assert r.status_code == 404
        assert r.json()["code"] == "NOT_FOUND"

    def test_counter_failure_is_409_and_audited(self, client, store):
        habit = client.post("/v1/habits", json={"name": "Run"}, headers=HEADERS).json()
        client.post(f"/v1/habits/{habit['id']}/toggle/2024-05-01", headers=HEADERS)
        store.fail_next("update", HABITS_TABLE)
        r = client.post(f"/v1/habits/{habit['id']}/toggle/2024-05-01", headers=HEADERS)
        assert r.status_code == 409
        assert r.json()["code"] == "STREAK_INCONSISTENT"
        assert r.json()["details"]["completion_exists"] is False
        audit = client.get("/v1/habits/audit/2024-05-01", headers=HEADERS).json()
        assert audit["items"][0]["reason"] == "current streak exceeds recorded completions"
        fixed = client.post(f"/v1/habits/{habit['id']}/reconcile?today=2024-05-01", headers=HEADERS).json()
        assert fixed["current_streak"] == 0
        assert fixed["best_streak"] == 1

    def test_archive(self, client):
        habit = client.post("/v1/habits", json={"name": "Floss"}, headers=HEADERS).json()
        assert client.delete(f"/v1/habits/{habit['id']}", headers=HEADERS).json() == {"ok": True}
        assert client.get("/v1/habits", headers=HEADERS).json()["items"] == []


class TestPlanningRoutes:
    def test_week_round_trip(self, client):
        r = client.put("/v1/weeks/2024-05-01", json={"week_theme": "Launch"}, headers=HEADERS)
        assert r.status_code == 200
        assert r.json()["week_start_date"] == "2024-04-29"
        assert client.get("/v1/weeks/2024-04-29", headers=HEADERS).json()["week_theme"] == "Launch"

    def test_wellbeing(self, client):
        r = client.put("/v1/wellbeing/mood/2024-05-01", json={"mood_score": 7}, headers=HEADERS)
        assert r.status_code == 200
        entry = client.get("/v1/wellbeing/mood/2024-05-01", headers=HEADERS).json()["entry"]
        assert entry["mood_score"] == 7
        bad = client.put("/v1/wellbeing/mood/2024-05-01", json={"mood_score": 0}, headers=HEADERS)
        assert bad.status_code == 422

    def test_goals(self, client):
        goal = client.post("/v1/goals", json={"title": "Run 10k", "category": "health"}, headers=HEADERS).json()
        assert goal["is_primary"] is False
        primary = client.post("/v1/goals", json={"title": "Ship", "category": "primary"}, headers=HEADERS).json()
        items = client.get("/v1/goals", headers=HEADERS).json()["items"]
        assert [item["id"] for item in items] == [primary["id"], goal["id"]]
        assert client.patch(f"/v1/goals/{goal['id']}", json={"progress_percentage": 150}, headers=HEADERS).status_code == 422
        updated = client.patch(f"/v1/goals/{goal['id']}", json={"progress_percentage": 40}, headers=HEADERS).json()
        assert updated["progress_percentage"] == 40
        client.delete(f"/v1/goals/{goal['id']}", headers=HEADERS)
        assert [item["id"] for item in client.get("/v1/goals", headers=HEADERS).json()["items"]] == [primary["id"]]


class TestInsightAndExportRoutes:
    def test_daily_insight_cached(self, client, generator, frozen_day):
        first = client.get("/v1/insights/daily", headers=HEADERS).json()
        second = client.get("/v1/insights/daily", headers=HEADERS).json()
        assert first["content"] == "Great job!"
        assert (first["cached"], second["cached"]) == (False, True)
        client.post("/v1/insights/daily/regenerate", headers=HEADERS)
        assert len(generator.prompts) == 2

    def test_notes_and_export(self, client):
        assert client.post("/v1/notes", json={"content": "  "}, headers=HEADERS).status_code == 422
        note = client.post("/v1/notes", json={"content": "Call mom"}, headers=HEADERS).json()
        assert note["content"] == "Call mom"
        client.get("/v1/day/2024-05-01/tasks", headers=HEADERS)
        export = client.get("/v1/export", headers=HEADERS).json()
        assert len(export["tasks"]) == 12
        assert export["export_date"]
        assert set(export) == {"export_date", "tasks", "goals", "habits", "moods"}

    def test_review_and_advice(self, client, generator):
        r = client.post("/v1/insights/weekly-review/2024-05-01", headers=HEADERS)
        assert r.status_code == 200
        assert r.json()["insight_type"] == "weekly_review"
        goal = client.post("/v1/goals", json={"title": "Learn Go", "category": "skill"}, headers=HEADERS).json()
        advice = client.post(f"/v1/goals/{goal['id']}/advice", headers=HEADERS).json()
        assert advice["content"] == "Great job!"
        assert advice["context"] == {"goal_id": goal["id"]}
        assert client.post("/v1/goals/missing/advice", headers=HEADERS).status_code == 404

    def test_daily_insight_cached_when_local_date_is_ahead_of_utc(self, client, generator, monkeypatch):
        monkeypatch.setattr(datekeys, "datetime", AheadOfUtcClock)
        first = client.get("/v1/insights/daily", headers=HEADERS).json()
        second = client.get("/v1/insights/daily", headers=HEADERS).json()
        assert first["generated_at"] == "2024-05-01T20:00:00"
        assert (first["cached"], second["cached"]) == (False, True)
        assert len(generator.prompts) == 1

    def test_week_rejects_unknown_field(self, client):
        r = client.put("/v1/weeks/2024-04-29", json={"mondy_plan": "Typo"}, headers=HEADERS)
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"
