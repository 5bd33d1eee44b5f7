from __future__ import annotations

import logging

from sqlalchemy import text as sql_text
from sqlalchemy.ext.asyncio import AsyncEngine

from lifeos.db import get_engine
from lifeos.store import (
    TASKS_TABLE,
    HABITS_TABLE,
    COMPLETIONS_TABLE,
    GOALS_TABLE,
    WEEKLY_PLANS_TABLE,
    MOOD_TABLE,
    GRATITUDE_TABLE,
    HEALTH_TABLE,
    INSIGHTS_TABLE,
    NOTES_TABLE,
)

logger = logging.getLogger(__name__)

TABLE_DDL = [
    f"""
    CREATE TABLE IF NOT EXISTS {TASKS_TABLE} (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        task_date TEXT NOT NULL,
        time_slot TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT DEFAULT '',
        completed INTEGER DEFAULT 0,
        completed_at TEXT,
        duration_minutes INTEGER,
        sort_order INTEGER DEFAULT 0,
        created_at TEXT
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {HABITS_TABLE} (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        category TEXT NOT NULL DEFAULT 'general',
        frequency TEXT NOT NULL DEFAULT 'daily',
        is_active INTEGER DEFAULT 1,
        current_streak INTEGER DEFAULT 0,
        best_streak INTEGER DEFAULT 0,
        created_at TEXT NOT NULL
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {COMPLETIONS_TABLE} (
        id TEXT PRIMARY KEY,
        habit_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        completion_date TEXT NOT NULL,
        created_at TEXT
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {GOALS_TABLE} (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT DEFAULT '',
        category TEXT NOT NULL,
        is_primary INTEGER DEFAULT 0,
        progress_percentage INTEGER DEFAULT 0,
        target_date TEXT,
        status TEXT NOT NULL DEFAULT 'active',
        created_at TEXT NOT NULL
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {WEEKLY_PLANS_TABLE} (
        user_id TEXT NOT NULL,
        week_start_date TEXT NOT NULL,
        week_theme TEXT DEFAULT '',
        focus_area TEXT DEFAULT '',
        monday_plan TEXT DEFAULT '',
        tuesday_plan TEXT DEFAULT '',
        wednesday_plan TEXT DEFAULT '',
        thursday_plan TEXT DEFAULT '',
        friday_plan TEXT DEFAULT '',
        saturday_plan TEXT DEFAULT '',
        sunday_plan TEXT DEFAULT '',
        updated_at TEXT,
        PRIMARY KEY (user_id, week_start_date)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {MOOD_TABLE} (
        user_id TEXT NOT NULL,
        entry_date TEXT NOT NULL,
        mood_score INTEGER,
        energy_level INTEGER,
        updated_at TEXT,
        PRIMARY KEY (user_id, entry_date)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {GRATITUDE_TABLE} (
        user_id TEXT NOT NULL,
        entry_date TEXT NOT NULL,
        entries TEXT,
        mood_correlation INTEGER,
        updated_at TEXT,
        PRIMARY KEY (user_id, entry_date)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {HEALTH_TABLE} (
        user_id TEXT NOT NULL,
        metric_date TEXT NOT NULL,
        sleep_hours REAL,
        water_intake_ml INTEGER,
        updated_at TEXT,
        PRIMARY KEY (user_id, metric_date)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {INSIGHTS_TABLE} (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        insight_type TEXT NOT NULL,
        content TEXT NOT NULL,
        generated_at TEXT NOT NULL,
        context TEXT
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {NOTES_TABLE} (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        content TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
]

INDEX_DDL = [
    f"CREATE UNIQUE INDEX IF NOT EXISTS uq_{COMPLETIONS_TABLE}_habit_date "
    f"ON {COMPLETIONS_TABLE} (habit_id, completion_date)",
    f"CREATE INDEX IF NOT EXISTS idx_{TASKS_TABLE}_user_date "
    f"ON {TASKS_TABLE} (user_id, task_date, sort_order)",
    f"CREATE INDEX IF NOT EXISTS idx_{HABITS_TABLE}_user_active "
    f"ON {HABITS_TABLE} (user_id, is_active)",
    f"CREATE INDEX IF NOT EXISTS idx_{INSIGHTS_TABLE}_user_type_generated "
    f"ON {INSIGHTS_TABLE} (user_id, insight_type, generated_at)",
]


async def init_db(engine: AsyncEngine | None = None):
    engine = engine or get_engine()
    async with engine.begin() as conn:
        for ddl in TABLE_DDL:
            await conn.execute(sql_text(ddl))

    async def ensure_index(index_sql: str) -> None:
        try:
            async with engine.begin() as conn:
                await conn.execute(sql_text(index_sql))
        except Exception as exc:
            logger.warning("Could not create index (%s): %s", index_sql.split(" ON ")[0], exc)

    for index_sql in INDEX_DDL:
        await ensure_index(index_sql)
