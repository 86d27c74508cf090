from __future__ import annotations

import logging

from sqlalchemy import text as sql_text

from auradesk.db import get_engine, is_sqlite_url

logger = logging.getLogger(__name__)

USERS_TABLE = "users"
TASKS_TABLE = "tasks"
NOTES_TABLE = "notes"
HABITS_TABLE = "habits"
HABIT_LOGS_TABLE = "habit_logs"
FILES_TABLE = "files"
QUOTES_TABLE = "quotes"

SEED_QUOTES = [
    ("The secret of getting ahead is getting started.", "Mark Twain"),
    ("It always seems impossible until it's done.", "Nelson Mandela"),
    ("Don't watch the clock; do what it does. Keep going.", "Sam Levenson"),
    ("Quality is not an act, it is a habit.", "Aristotle"),
    ("The future depends on what you do today.", "Mahatma Gandhi"),
    ("You are never too old to set another goal.", "C.S. Lewis"),
    ("Believe you can and you're halfway there.", "Theodore Roosevelt"),
    ("Success is the sum of small efforts, repeated day in and day out.", "Robert Collier"),
    ("Discipline is the bridge between goals and accomplishment.", "Jim Rohn"),
    ("Focus on being productive instead of busy.", "Tim Ferriss"),
    ("The only way to do great work is to love what you do.", "Steve Jobs"),
    ("Small daily improvements over time lead to stunning results.", "Robin Sharma"),
    ("Your time is limited, don't waste it living someone else's life.", "Steve Jobs"),
    ("Start where you are. Use what you have. Do what you can.", "Arthur Ashe"),
    ("Excellence is not a destination but a continuous journey.", "Brian Tracy"),
]


async def init_db():
    engine = get_engine()
    if is_sqlite_url(str(engine.url)):
        quote_id_ddl = "INTEGER PRIMARY KEY AUTOINCREMENT"
    else:
        quote_id_ddl = "SERIAL PRIMARY KEY"
    async with engine.begin() as conn:
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {USERS_TABLE} (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {TASKS_TABLE} (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT DEFAULT '',
                    priority TEXT DEFAULT 'medium',
                    status TEXT DEFAULT 'todo',
                    due_date TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {NOTES_TABLE} (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    content TEXT DEFAULT '',
                    folder TEXT DEFAULT 'General',
                    tags TEXT DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {HABITS_TABLE} (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT DEFAULT '',
                    frequency TEXT DEFAULT 'daily',
                    color TEXT DEFAULT '#C9A84C',
                    created_at TEXT NOT NULL
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {HABIT_LOGS_TABLE} (
                    id TEXT PRIMARY KEY,
                    habit_id TEXT NOT NULL,
                    completed_date TEXT NOT NULL,
                    UNIQUE (habit_id, completed_date)
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {FILES_TABLE} (
                    id TEXT PRIMARY KEY,
                    stored_name TEXT NOT NULL,
                    original_name TEXT NOT NULL,
                    size INTEGER DEFAULT 0,
                    mime_type TEXT DEFAULT 'application/octet-stream',
                    encrypted INTEGER DEFAULT 0,
                    folder TEXT DEFAULT 'General',
                    created_at TEXT NOT NULL
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {QUOTES_TABLE} (
                    id {quote_id_ddl},
                    text TEXT NOT NULL,
                    author TEXT NOT NULL
                )
                """
            )
        )

    async def ensure_index(index_sql: str) -> None:
        async with engine.begin() as conn:
            await conn.execute(sql_text(index_sql))

    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{TASKS_TABLE}_status_created "
        f"ON {TASKS_TABLE} (status, created_at)"
    )
    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{NOTES_TABLE}_folder "
        f"ON {NOTES_TABLE} (folder)"
    )
    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{HABIT_LOGS_TABLE}_habit_date "
        f"ON {HABIT_LOGS_TABLE} (habit_id, completed_date)"
    )
    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{FILES_TABLE}_folder "
        f"ON {FILES_TABLE} (folder)"
    )

    await seed_quotes()


async def seed_quotes() -> None:
    engine = get_engine()
    async with engine.begin() as conn:
        count = (await conn.execute(sql_text(f"SELECT COUNT(*) FROM {QUOTES_TABLE}"))).scalar_one()
        if int(count or 0) > 0:
            return
        await conn.execute(
            sql_text(f"INSERT INTO {QUOTES_TABLE} (text, author) VALUES (:text, :author)"),
            [{"text": text, "author": author} for text, author in SEED_QUOTES],
        )
    logger.info("Seeded %s quotes", len(SEED_QUOTES))
