from __future__ import annotations

from datetime import date
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, ConfigDict, Field


class Task(BaseModel):
    id: str
    user_id: str
    task_date: date
    time_slot: str
    title: str
    description: str = ""
    completed: bool = False
    completed_at: Optional[str] = None
    duration_minutes: Optional[int] = None
    sort_order: int = 0


class TaskPatch(BaseModel):
    title: Optional[str] = None
    completed: Optional[bool] = None


class Habit(BaseModel):
    id: str
    user_id: str
    name: str
    category: str = "general"
    frequency: str = "daily"
    is_active: bool = True
    current_streak: int = 0
    best_streak: int = 0
    created_at: Optional[str] = None


class HabitCreate(BaseModel):
    name: str
    category: Optional[str] = None


class HabitCompletion(BaseModel):
    id: str
    habit_id: str
    user_id: str
    completion_date: date


class ToggleResult(BaseModel):
    habit: Habit
    done: bool
    completion: Optional[HabitCompletion] = None


class StreakInconsistency(BaseModel):
    habit_id: str
    date: str
    reason: str
    completion_exists: bool
    current_streak: int
    best_streak: int


class Goal(BaseModel):
    id: str
    user_id: str
    title: str
    description: str = ""
    category: str
    is_primary: bool = False
    progress_percentage: int = 0
    target_date: Optional[date] = None
    status: str = "active"
    created_at: Optional[str] = None


class GoalCreate(BaseModel):
    title: str
    category: str
    description: str = ""


class GoalProgress(BaseModel):
    progress_percentage: int


class WeeklyPlan(BaseModel):
    user_id: str
    week_start_date: date
    week_theme: str = ""
    focus_area: str = ""
    monday_plan: str = ""
    tuesday_plan: str = ""
    wednesday_plan: str = ""
    thursday_plan: str = ""
    friday_plan: str = ""
    saturday_plan: str = ""
    sunday_plan: str = ""
    updated_at: Optional[str] = None


class WeeklyPlanFields(BaseModel):
    model_config = ConfigDict(extra="forbid")

    week_theme: str = ""
    focus_area: str = ""
    monday_plan: str = ""
    tuesday_plan: str = ""
    wednesday_plan: str = ""
    thursday_plan: str = ""
    friday_plan: str = ""
    saturday_plan: str = ""
    sunday_plan: str = ""


class MoodFields(BaseModel):
    mood_score: int = Field(5, ge=1, le=10)
    energy_level: int = Field(5, ge=1, le=10)


class GratitudeFields(BaseModel):
    entries: List[str] = Field(default_factory=list)
    mood_correlation: Optional[int] = Field(None, ge=1, le=10)


class HealthFields(BaseModel):
    sleep_hours: Optional[float] = Field(None, ge=0, le=24)
    water_intake_ml: Optional[int] = Field(None, ge=0)


class MoodEntry(MoodFields):
    user_id: str
    entry_date: date
    updated_at: Optional[str] = None


class GratitudeEntry(GratitudeFields):
    user_id: str
    entry_date: date
    updated_at: Optional[str] = None


class HealthMetric(HealthFields):
    user_id: str
    metric_date: date
    updated_at: Optional[str] = None


class AIInsight(BaseModel):
    id: str
    user_id: str
    insight_type: str
    content: str
    generated_at: str
    context: Optional[Dict[str, Any]] = None


class DailyInsight(BaseModel):
    content: str
    generated_at: str
    cached: bool


class StatsSnapshot(BaseModel):
    today_completed: int = 0
    today_total: int = 0
    week_completed: int = 0
    active_goals: int = 0
    longest_streak: int = 0
    habits_today: int = 0
    total_habits: int = 0

    @property
    def completion_rate(self) -> float:
        return (self.today_completed / self.today_total) * 100 if self.today_total > 0 else 0.0

    @property
    def habit_rate(self) -> float:
        return (self.habits_today / self.total_habits) * 100 if self.total_habits > 0 else 0.0


class NoteCreate(BaseModel):
    content: str


class QuickNote(BaseModel):
    id: str
    user_id: str
    content: str
    created_at: str
