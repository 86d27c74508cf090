from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from uuid import uuid4

from sqlalchemy import text as sql_text
from sqlalchemy.exc import IntegrityError

from auradesk.db import get_sessionmaker
from auradesk.db_init import (
    USERS_TABLE,
    TASKS_TABLE,
    NOTES_TABLE,
    HABITS_TABLE,
    HABIT_LOGS_TABLE,
    FILES_TABLE,
    QUOTES_TABLE,
)
from auradesk.metrics import compute_streak, completion_percent, day_of_year, quote_index

TASK_FIELDS = ("title", "description", "priority", "status", "due_date")
NOTE_FIELDS = ("title", "content", "folder", "tags")
HABIT_FIELDS = ("name", "description", "frequency", "color")

logger = logging.getLogger(__name__)

RECENT_TASKS_LIMIT = 5


def _new_id() -> str:
    return uuid4().hex


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def merge_patch(existing: dict, patch: dict, fields) -> dict:
    """Overlay ``patch`` on ``existing`` for the given fields.

    A field is replaced only when the patch carries a non-None value for it;
    anything else keeps the stored value.
    """
    merged = dict(existing)
    for key in fields:
        value = (patch or {}).get(key)
        if value is not None:
            merged[key] = value
    return merged


def _decode_tags(raw) -> list[str]:
    if isinstance(raw, list):
        return [str(item) for item in raw]
    try:
        items = json.loads(raw or "[]")
    except (TypeError, ValueError):
        return []
    if not isinstance(items, list):
        return []
    return [str(item) for item in items]


def _normalize_note_row(row) -> dict:
    if not row:
        return {}
    payload = dict(row)
    payload["tags"] = _decode_tags(payload.get("tags"))
    return payload


# Users


async def count_users() -> int:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        count = (await session.execute(sql_text(f"SELECT COUNT(*) FROM {USERS_TABLE}"))).scalar_one()
    return int(count or 0)


async def get_user_by_email(email: str) -> dict | None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(
                f"SELECT id, name, email, password_hash FROM {USERS_TABLE} WHERE email = :email"
            ),
            {"email": email.lower()},
        )).mappings().fetchone()
    return dict(row) if row else None


async def get_user(user_id: str) -> dict | None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(f"SELECT id, name, email FROM {USERS_TABLE} WHERE id = :id"),
            {"id": user_id},
        )).mappings().fetchone()
    return dict(row) if row else None


async def create_user(name: str, email: str, password_hash: str) -> dict:
    record = {
        "id": _new_id(),
        "name": name,
        "email": email.lower(),
        "password_hash": password_hash,
        "created_at": _utc_now(),
    }
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {USERS_TABLE} (id, name, email, password_hash, created_at)
                VALUES (:id, :name, :email, :password_hash, :created_at)
                """
            ),
            record,
        )
        await session.commit()
    return {"id": record["id"], "name": record["name"], "email": record["email"]}


# Tasks


async def list_tasks(status: str | None = None, priority: str | None = None) -> list[dict]:
    conditions = []
    params: dict = {}
    if status:
        conditions.append("status = :status")
        params["status"] = status
    if priority:
        conditions.append("priority = :priority")
        params["priority"] = priority
    where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(f"SELECT * FROM {TASKS_TABLE}{where} ORDER BY created_at DESC"),
            params,
        )).mappings().all()
    return [dict(row) for row in rows]


async def task_stats() -> dict:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        total = (await session.execute(sql_text(f"SELECT COUNT(*) FROM {TASKS_TABLE}"))).scalar_one()
        done = (await session.execute(
            sql_text(f"SELECT COUNT(*) FROM {TASKS_TABLE} WHERE status = 'done'")
        )).scalar_one()
        high_priority = (await session.execute(
            sql_text(f"SELECT COUNT(*) FROM {TASKS_TABLE} WHERE priority = 'high' AND status != 'done'")
        )).scalar_one()
    total = int(total or 0)
    done = int(done or 0)
    return {
        "total": total,
        "done": done,
        "highPriority": int(high_priority or 0),
        "completion": completion_percent(done, total),
    }


async def get_task(task_id: str) -> dict | None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(f"SELECT * FROM {TASKS_TABLE} WHERE id = :id"),
            {"id": task_id},
        )).mappings().fetchone()
    return dict(row) if row else None


async def create_task(payload: dict) -> dict:
    now = _utc_now()
    record = {
        "id": _new_id(),
        "title": payload["title"],
        "description": payload.get("description") or "",
        "priority": payload.get("priority") or "medium",
        "status": payload.get("status") or "todo",
        "due_date": payload.get("due_date"),
        "created_at": now,
        "updated_at": now,
    }
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {TASKS_TABLE}
                (id, title, description, priority, status, due_date, created_at, updated_at)
                VALUES
                (:id, :title, :description, :priority, :status, :due_date, :created_at, :updated_at)
                """
            ),
            record,
        )
        await session.commit()
    return await get_task(record["id"])


async def update_task(task_id: str, patch: dict) -> dict | None:
    existing = await get_task(task_id)
    if not existing:
        return None
    merged = merge_patch(existing, patch, TASK_FIELDS)
    params = {key: merged[key] for key in TASK_FIELDS}
    params["id"] = task_id
    params["updated_at"] = _utc_now()
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                UPDATE {TASKS_TABLE}
                SET title = :title, description = :description, priority = :priority,
                    status = :status, due_date = :due_date, updated_at = :updated_at
                WHERE id = :id
                """
            ),
            params,
        )
        await session.commit()
    return await get_task(task_id)


async def delete_task(task_id: str) -> None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(f"DELETE FROM {TASKS_TABLE} WHERE id = :id"),
            {"id": task_id},
        )
        await session.commit()


# Notes


async def list_notes(folder: str | None = None, search: str | None = None, tag: str | None = None) -> list[dict]:
    conditions = []
    params: dict = {}
    if folder:
        conditions.append("folder = :folder")
        params["folder"] = folder
    if search:
        conditions.append("(title LIKE :search OR content LIKE :search)")
        params["search"] = f"%{search}%"
    if tag:
        # Narrow in SQL, then require an exact element match below.
        conditions.append("tags LIKE :tag")
        params["tag"] = f"%{json.dumps(tag, ensure_ascii=False)}%"
    where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(f"SELECT * FROM {NOTES_TABLE}{where} ORDER BY updated_at DESC"),
            params,
        )).mappings().all()
    notes = [_normalize_note_row(row) for row in rows]
    if tag:
        notes = [note for note in notes if tag in note["tags"]]
    return notes


async def list_note_folders() -> list[dict]:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(
                f"SELECT folder, COUNT(*) AS count FROM {NOTES_TABLE} GROUP BY folder ORDER BY folder"
            )
        )).mappings().all()
    return [{"folder": row["folder"], "count": int(row["count"])} for row in rows]


async def list_note_tags() -> list[str]:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(f"SELECT tags FROM {NOTES_TABLE} WHERE tags != '[]' ORDER BY created_at")
        )).mappings().all()
    seen: dict[str, None] = {}
    for row in rows:
        for tag in _decode_tags(row["tags"]):
            seen.setdefault(tag, None)
    return list(seen)


async def get_note(note_id: str) -> dict | None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(f"SELECT * FROM {NOTES_TABLE} WHERE id = :id"),
            {"id": note_id},
        )).mappings().fetchone()
    return _normalize_note_row(row) if row else None


async def create_note(payload: dict) -> dict:
    now = _utc_now()
    record = {
        "id": _new_id(),
        "title": payload["title"],
        "content": payload.get("content") or "",
        "folder": payload.get("folder") or "General",
        "tags": json.dumps(list(payload.get("tags") or []), ensure_ascii=False),
        "created_at": now,
        "updated_at": now,
    }
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {NOTES_TABLE} (id, title, content, folder, tags, created_at, updated_at)
                VALUES (:id, :title, :content, :folder, :tags, :created_at, :updated_at)
                """
            ),
            record,
        )
        await session.commit()
    return await get_note(record["id"])


async def update_note(note_id: str, patch: dict) -> dict | None:
    existing = await get_note(note_id)
    if not existing:
        return None
    merged = merge_patch(existing, patch, NOTE_FIELDS)
    params = {key: merged[key] for key in NOTE_FIELDS}
    params["tags"] = json.dumps(list(merged["tags"]), ensure_ascii=False)
    params["id"] = note_id
    params["updated_at"] = _utc_now()
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                UPDATE {NOTES_TABLE}
                SET title = :title, content = :content, folder = :folder, tags = :tags,
                    updated_at = :updated_at
                WHERE id = :id
                """
            ),
            params,
        )
        await session.commit()
    return await get_note(note_id)


async def delete_note(note_id: str) -> None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(f"DELETE FROM {NOTES_TABLE} WHERE id = :id"),
            {"id": note_id},
        )
        await session.commit()


# Habits


async def _habit_log_dates(session, habit_id: str) -> list[str]:
    rows = (await session.execute(
        sql_text(
            f"""
            SELECT completed_date FROM {HABIT_LOGS_TABLE}
            WHERE habit_id = :habit_id
            ORDER BY completed_date DESC
            """
        ),
        {"habit_id": habit_id},
    )).all()
    return [row[0] for row in rows]


def _habit_with_stats(row, log_dates: list[str], today: date) -> dict:
    payload = dict(row)
    today_iso = today.isoformat()
    payload["streak"] = compute_streak(log_dates, today)
    payload["completedToday"] = today_iso in log_dates
    payload["totalDone"] = len(log_dates)
    return payload


async def list_habits(today: date) -> list[dict]:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(f"SELECT * FROM {HABITS_TABLE} ORDER BY created_at DESC")
        )).mappings().all()
        result = []
        for row in rows:
            log_dates = await _habit_log_dates(session, row["id"])
            result.append(_habit_with_stats(row, log_dates, today))
    return result


async def get_habit(habit_id: str) -> dict | None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(f"SELECT * FROM {HABITS_TABLE} WHERE id = :id"),
            {"id": habit_id},
        )).mappings().fetchone()
    return dict(row) if row else None


async def get_habit_with_stats(habit_id: str, today: date) -> dict | None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(f"SELECT * FROM {HABITS_TABLE} WHERE id = :id"),
            {"id": habit_id},
        )).mappings().fetchone()
        if not row:
            return None
        log_dates = await _habit_log_dates(session, habit_id)
    return _habit_with_stats(row, log_dates, today)


async def create_habit(payload: dict) -> dict:
    record = {
        "id": _new_id(),
        "name": payload["name"],
        "description": payload.get("description") or "",
        "frequency": payload.get("frequency") or "daily",
        "color": payload.get("color") or "#C9A84C",
        "created_at": _utc_now(),
    }
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {HABITS_TABLE} (id, name, description, frequency, color, created_at)
                VALUES (:id, :name, :description, :frequency, :color, :created_at)
                """
            ),
            record,
        )
        await session.commit()
    return await get_habit(record["id"])


async def update_habit(habit_id: str, patch: dict) -> dict | None:
    existing = await get_habit(habit_id)
    if not existing:
        return None
    merged = merge_patch(existing, patch, HABIT_FIELDS)
    params = {key: merged[key] for key in HABIT_FIELDS}
    params["id"] = habit_id
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                UPDATE {HABITS_TABLE}
                SET name = :name, description = :description, frequency = :frequency, color = :color
                WHERE id = :id
                """
            ),
            params,
        )
        await session.commit()
    return await get_habit(habit_id)


async def delete_habit(habit_id: str) -> None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(f"DELETE FROM {HABIT_LOGS_TABLE} WHERE habit_id = :habit_id"),
            {"habit_id": habit_id},
        )
        await session.execute(
            sql_text(f"DELETE FROM {HABITS_TABLE} WHERE id = :id"),
            {"id": habit_id},
        )
        await session.commit()


async def _habit_log_exists(session, habit_id: str, day_iso: str) -> bool:
    row = (await session.execute(
        sql_text(
            f"""
            SELECT id FROM {HABIT_LOGS_TABLE}
            WHERE habit_id = :habit_id AND completed_date = :completed_date
            """
        ),
        {"habit_id": habit_id, "completed_date": day_iso},
    )).fetchone()
    return row is not None


async def toggle_habit_log(habit_id: str, day_iso: str) -> bool:
    """Flip the log for ``day_iso``; returns True when the day is now completed.

    A concurrent toggle may insert the same day between the check and the
    insert. The unique constraint then rejects ours and the day counts as
    completed.
    """
    params = {"habit_id": habit_id, "completed_date": day_iso}
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        if await _habit_log_exists(session, habit_id, day_iso):
            await session.execute(
                sql_text(
                    f"""
                    DELETE FROM {HABIT_LOGS_TABLE}
                    WHERE habit_id = :habit_id AND completed_date = :completed_date
                    """
                ),
                params,
            )
            await session.commit()
            return False
        try:
            await session.execute(
                sql_text(
                    f"""
                    INSERT INTO {HABIT_LOGS_TABLE} (id, habit_id, completed_date)
                    VALUES (:id, :habit_id, :completed_date)
                    """
                ),
                {"id": _new_id(), **params},
            )
            await session.commit()
        except IntegrityError:
            await session.rollback()
            logger.info("Habit %s already logged for %s", habit_id, day_iso)
    return True


async def habit_streak(habit_id: str, today: date) -> int:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        log_dates = await _habit_log_dates(session, habit_id)
    return compute_streak(log_dates, today)


async def habit_heatmap(habit_id: str) -> list[dict]:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(
                f"""
                SELECT completed_date, COUNT(*) AS count
                FROM {HABIT_LOGS_TABLE}
                WHERE habit_id = :habit_id
                GROUP BY completed_date
                ORDER BY completed_date
                """
            ),
            {"habit_id": habit_id},
        )).mappings().all()
    return [{"completed_date": row["completed_date"], "count": int(row["count"])} for row in rows]


# Files


async def list_files(folder: str | None = None) -> list[dict]:
    params: dict = {}
    where = ""
    if folder:
        where = " WHERE folder = :folder"
        params["folder"] = folder
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(f"SELECT * FROM {FILES_TABLE}{where} ORDER BY created_at DESC"),
            params,
        )).mappings().all()
    return [dict(row) for row in rows]


async def list_file_folders() -> list[dict]:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(
                f"SELECT folder, COUNT(*) AS count FROM {FILES_TABLE} GROUP BY folder ORDER BY folder"
            )
        )).mappings().all()
    return [{"folder": row["folder"], "count": int(row["count"])} for row in rows]


async def get_file(file_id: str) -> dict | None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(f"SELECT * FROM {FILES_TABLE} WHERE id = :id"),
            {"id": file_id},
        )).mappings().fetchone()
    return dict(row) if row else None


async def create_file(record: dict) -> dict:
    payload = {
        "id": record["id"],
        "stored_name": record["stored_name"],
        "original_name": record["original_name"],
        "size": int(record.get("size") or 0),
        "mime_type": record.get("mime_type") or "application/octet-stream",
        "encrypted": int(bool(record.get("encrypted"))),
        "folder": record.get("folder") or "General",
        "created_at": _utc_now(),
    }
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {FILES_TABLE}
                (id, stored_name, original_name, size, mime_type, encrypted, folder, created_at)
                VALUES
                (:id, :stored_name, :original_name, :size, :mime_type, :encrypted, :folder, :created_at)
                """
            ),
            payload,
        )
        await session.commit()
    return await get_file(payload["id"])


async def delete_file(file_id: str) -> None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(f"DELETE FROM {FILES_TABLE} WHERE id = :id"),
            {"id": file_id},
        )
        await session.commit()


# Dashboard


async def dashboard_snapshot(today: date) -> dict:
    """Read-only rollup across every resource.

    All counts share one session; a failing query aborts the whole snapshot.
    """
    today_iso = today.isoformat()
    session_factory = get_sessionmaker()
    async with session_factory() as session:

        async def scalar(sql: str, params: dict | None = None) -> int:
            value = (await session.execute(sql_text(sql), params or {})).scalar()
            return int(value or 0)

        total_tasks = await scalar(f"SELECT COUNT(*) FROM {TASKS_TABLE}")
        done_tasks = await scalar(f"SELECT COUNT(*) FROM {TASKS_TABLE} WHERE status = 'done'")
        total_habits = await scalar(f"SELECT COUNT(*) FROM {HABITS_TABLE}")
        done_habits = await scalar(
            f"SELECT COUNT(DISTINCT habit_id) FROM {HABIT_LOGS_TABLE} WHERE completed_date = :today",
            {"today": today_iso},
        )
        total_notes = await scalar(f"SELECT COUNT(*) FROM {NOTES_TABLE}")
        total_files = await scalar(f"SELECT COUNT(*) FROM {FILES_TABLE}")
        total_size = await scalar(f"SELECT SUM(size) FROM {FILES_TABLE}")
        total_quotes = await scalar(f"SELECT COUNT(*) FROM {QUOTES_TABLE}")

        quote = None
        index = quote_index(day_of_year(today), total_quotes)
        if index is not None:
            row = (await session.execute(
                sql_text(f"SELECT id, text, author FROM {QUOTES_TABLE} WHERE id = :id"),
                {"id": index},
            )).mappings().fetchone()
            if row is None:
                row = (await session.execute(
                    sql_text(f"SELECT id, text, author FROM {QUOTES_TABLE} ORDER BY id LIMIT 1")
                )).mappings().fetchone()
            quote = dict(row) if row else None

        recent = (await session.execute(
            sql_text(
                f"""
                SELECT * FROM {TASKS_TABLE}
                WHERE status != 'done'
                ORDER BY created_at DESC
                LIMIT :limit
                """
            ),
            {"limit": RECENT_TASKS_LIMIT},
        )).mappings().all()

    return {
        "tasks": {
            "total": total_tasks,
            "done": done_tasks,
            "completion": completion_percent(done_tasks, total_tasks),
        },
        "habits": {
            "total": total_habits,
            "completedToday": done_habits,
            "completion": completion_percent(done_habits, total_habits),
        },
        "notes": {"total": total_notes},
        "files": {"total": total_files, "totalSize": total_size},
        "quote": quote,
        "recentTasks": [dict(row) for row in recent],
        "date": today_iso,
    }
