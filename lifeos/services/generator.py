from __future__ import annotations

import logging
import random
from datetime import date
from typing import Any, Protocol

import httpx

from lifeos.errors import ConfigurationError
from lifeos.schemas import Goal, StatsSnapshot
from lifeos.services.goals import GOAL_CATEGORIES
from lifeos.settings import PLACEHOLDER_API_KEYS, get_settings

logger = logging.getLogger(__name__)

OPENROUTER_API_URL = "https://openrouter.ai/api/v1/chat/completions"

SYSTEM_PROMPT = (
    "You are a motivational life coach and productivity expert helping 9-5 professionals optimize their lives.\n"
    "Be encouraging, specific, and actionable. Keep responses concise (2-3 sentences).\n"
    "Focus on practical advice and positive reinforcement."
)

FALLBACK_MESSAGES = [
    "Every step forward, no matter how small, is progress. Keep going!",
    "Your consistency today builds the success of tomorrow. Stay focused!",
    "The fact that you're here shows you're committed to growth. That's powerful!",
    "Small daily improvements lead to stunning long-term results. You've got this!",
    "Your future self will thank you for the work you're putting in today.",
    "Excellence is not an act, but a habit. You're building that habit right now.",
    "The only way to do great work is to love what you do. Keep pursuing your goals!",
    "Success is the sum of small efforts repeated day in and day out.",
]

HIGH_COMPLETION_MESSAGE = (
    "Outstanding progress today! Your dedication is truly inspiring. Keep this momentum going!"
)


class TextGenerator(Protocol):
    async def generate(self, prompt: str, context: dict[str, Any] | None = None) -> str:
        ...


def fallback_message(context: dict[str, Any] | None = None, rng: random.Random | None = None) -> str:
    context = context or {}
    completion_rate = float(context.get("completionRate") or 0)
    current_streak = int(context.get("currentStreak") or 0)
    if completion_rate > 70:
        return HIGH_COMPLETION_MESSAGE
    if current_streak > 7:
        return f"{current_streak} days strong! Your consistency is remarkable. This is how champions are made!"
    return (rng or random).choice(FALLBACK_MESSAGES)


def daily_motivation_prompt(stats: StatsSnapshot) -> tuple[str, dict[str, Any]]:
    rate = stats.completion_rate
    prompt = (
        "Generate a brief, motivational message for a professional who:\n"
        f"- Completed {stats.today_completed} out of {stats.today_total} tasks today ({rate:.0f}% completion rate)\n"
        f"- Has {stats.active_goals} active 90-day goals\n"
        f"- Has a longest habit streak of {stats.longest_streak} days\n\n"
        "Keep it encouraging, specific to their progress, and actionable. Max 2-3 sentences."
    )
    return prompt, {"completionRate": rate, "currentStreak": stats.longest_streak}


def weekly_review_prompt(tasks_completed: int, goals_progress: float, habits_completed: int) -> str:
    return (
        "Generate a weekly review message for a professional who this week:\n"
        f"- Completed {tasks_completed} tasks\n"
        f"- Made {goals_progress:.0f}% average progress on goals\n"
        f"- Completed {habits_completed} habit check-ins\n\n"
        "Provide 2-3 sentences of encouragement and one actionable suggestion for next week."
    )


def goal_advice_prompt(goal: Goal, today: date) -> str:
    days_remaining = max(0, (goal.target_date - today).days) if goal.target_date else 0
    category = GOAL_CATEGORIES.get(goal.category, goal.category)
    return (
        f'Give advice for someone working on this {category} goal: "{goal.title}"\n'
        f"Current progress: {goal.progress_percentage}%\n"
        f"Days remaining: {days_remaining}\n\n"
        "Provide 2-3 sentences of specific, actionable advice to help them succeed."
    )


class OpenRouterGenerator:
    """Chat-completion client that never fails: errors fall back to local text."""

    def __init__(
        self,
        api_key: str | None,
        model: str,
        timeout: float = 20.0,
        rng: random.Random | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = (api_key or "").strip()
        self.model = model
        self.timeout = timeout
        self.rng = rng
        self._transport = transport

    async def _complete(self, prompt: str) -> str:
        if self.api_key in PLACEHOLDER_API_KEYS:
            raise ConfigurationError("OpenRouter API key is not configured")
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": 150,
            "temperature": 0.7,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": "Life OS",
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(OPENROUTER_API_URL, headers=headers, json=payload)
        response.raise_for_status()
        data = response.json()
        choice = (data.get("choices") or [{}])[0]
        return str((choice.get("message") or {}).get("content") or "").strip()

    async def generate(self, prompt: str, context: dict[str, Any] | None = None) -> str:
        try:
            content = await self._complete(prompt)
        except ConfigurationError:
            return fallback_message(context, self.rng)
        except (httpx.HTTPError, ValueError, AttributeError, TypeError) as exc:
            logger.warning("Insight generation failed, using fallback text: %s", exc)
            return fallback_message(context, self.rng)
        return content or fallback_message(context, self.rng)


def build_generator() -> OpenRouterGenerator:
    settings = get_settings()
    return OpenRouterGenerator(
        api_key=settings.openrouter_api_key,
        model=settings.openrouter_model,
        timeout=settings.openrouter_timeout,
    )
