from datetime import datetime, timedelta, timezone

from sqlalchemy import text as sql_text

from auradesk import repositories
from auradesk.db import get_sessionmaker


async def count_logs(habit_id):
    async with get_sessionmaker()() as session:
        result = await session.execute(
            sql_text("SELECT COUNT(*) FROM habit_logs WHERE habit_id = :habit_id"),
            {"habit_id": habit_id},
        )
        return result.scalar_one()


def utc_today():
    return datetime.now(timezone.utc).date()


def make_habit(client, headers, **fields):
    payload = {"name": "Read"}
    payload.update(fields)
    response = client.post("/api/habits", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()


def test_create_habit_defaults(client, auth_headers):
    habit = make_habit(client, auth_headers)
    assert habit["frequency"] == "daily"
    assert habit["color"] == "#C9A84C"

    missing = client.post("/api/habits", json={"description": "nameless"}, headers=auth_headers)
    assert missing.status_code == 400
    assert missing.json() == {"error": "Name is required"}


def test_update_habit_is_partial(client, auth_headers):
    habit = make_habit(client, auth_headers, description="20 pages")
    updated = client.put(f"/api/habits/{habit['id']}", json={"color": "#000000"}, headers=auth_headers).json()
    assert updated["color"] == "#000000"
    assert updated["description"] == "20 pages"
    assert client.put("/api/habits/missing", json={"name": "x"}, headers=auth_headers).status_code == 404


def test_log_toggle_is_reversible(client, auth_headers):
    habit = make_habit(client, auth_headers)
    url = f"/api/habits/{habit['id']}/log"

    first = client.post(url, json={}, headers=auth_headers).json()
    assert first == {"completed": True, "streak": 1}
    second = client.post(url, json={}, headers=auth_headers).json()
    assert second == {"completed": False, "streak": 0}
    third = client.post(url, headers=auth_headers).json()
    assert third == {"completed": True, "streak": 1}


def test_log_builds_streak_across_days(client, auth_headers):
    habit = make_habit(client, auth_headers)
    url = f"/api/habits/{habit['id']}/log"
    today = utc_today()
    for offset in (3, 1, 2):
        day = (today - timedelta(days=offset)).isoformat()
        client.post(url, json={"date": day}, headers=auth_headers)
    result = client.post(url, json={"date": today.isoformat()}, headers=auth_headers).json()
    assert result == {"completed": True, "streak": 4}

    # Removing yesterday breaks the chain after today.
    broken = client.post(url, json={"date": (today - timedelta(days=1)).isoformat()}, headers=auth_headers).json()
    assert broken == {"completed": False, "streak": 1}

    listed = client.get(f"/api/habits/{habit['id']}", headers=auth_headers).json()
    assert listed["streak"] == 1
    assert listed["completedToday"] is True
    assert listed["totalDone"] == 3


def test_log_rejects_bad_date_and_unknown_habit(client, auth_headers):
    habit = make_habit(client, auth_headers)
    bad = client.post(f"/api/habits/{habit['id']}/log", json={"date": "not-a-date"}, headers=auth_headers)
    assert bad.status_code == 400
    unknown = client.post("/api/habits/missing/log", json={}, headers=auth_headers)
    assert unknown.status_code == 404


def test_list_habits_includes_derived_fields(client, auth_headers):
    first = make_habit(client, auth_headers, name="Walk")
    second = make_habit(client, auth_headers, name="Stretch")
    client.post(f"/api/habits/{first['id']}/log", json={}, headers=auth_headers)

    habits = client.get("/api/habits", headers=auth_headers).json()
    assert [habit["name"] for habit in habits] == ["Stretch", "Walk"]
    by_id = {habit["id"]: habit for habit in habits}
    assert by_id[first["id"]]["completedToday"] is True
    assert by_id[first["id"]]["streak"] == 1
    assert by_id[second["id"]]["completedToday"] is False
    assert by_id[second["id"]]["totalDone"] == 0


def test_heatmap_counts_per_day(client, auth_headers):
    habit = make_habit(client, auth_headers)
    url = f"/api/habits/{habit['id']}/log"
    for day in ("2026-01-03", "2026-01-01"):
        client.post(url, json={"date": day}, headers=auth_headers)
    heatmap = client.get(f"/api/habits/{habit['id']}/heatmap", headers=auth_headers).json()
    assert heatmap == [
        {"completed_date": "2026-01-01", "count": 1},
        {"completed_date": "2026-01-03", "count": 1},
    ]


def test_delete_habit_removes_its_logs(client, auth_headers):
    habit = make_habit(client, auth_headers)
    other = make_habit(client, auth_headers, name="Other")
    for day in ("2026-01-01", "2026-01-02"):
        client.post(f"/api/habits/{habit['id']}/log", json={"date": day}, headers=auth_headers)
    client.post(f"/api/habits/{other['id']}/log", json={"date": "2026-01-01"}, headers=auth_headers)

    assert client.delete(f"/api/habits/{habit['id']}", headers=auth_headers).json() == {"success": True}
    assert client.get(f"/api/habits/{habit['id']}", headers=auth_headers).status_code == 404

    remaining = client.portal.call(count_logs, habit["id"])
    assert remaining == 0
    assert client.portal.call(count_logs, other["id"]) == 1
    assert client.delete(f"/api/habits/{habit['id']}", headers=auth_headers).json() == {"success": True}


def test_concurrent_toggle_counts_day_as_completed(client, auth_headers, monkeypatch):
    habit = make_habit(client, auth_headers)

    async def never_logged(session, habit_id, day_iso):
        return False

    # Both toggles miss each other's row, so the second insert hits the unique constraint.
    monkeypatch.setattr(repositories, "_habit_log_exists", never_logged)
    first = client.portal.call(repositories.toggle_habit_log, habit["id"], "2026-02-01")
    second = client.portal.call(repositories.toggle_habit_log, habit["id"], "2026-02-01")

    assert first is True
    assert second is True
    assert client.portal.call(count_logs, habit["id"]) == 1
