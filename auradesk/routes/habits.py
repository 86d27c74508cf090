from __future__ import annotations

import logging

from fastapi import APIRouter, Body, HTTPException

from auradesk import repositories
from auradesk.metrics import local_today
from auradesk.schemas import HabitCreate, HabitPatch, HabitLogPayload

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/habits")
async def list_habits():
    return await repositories.list_habits(local_today())


@router.get("/api/habits/{habit_id}")
async def get_habit(habit_id: str):
    habit = await repositories.get_habit_with_stats(habit_id, local_today())
    if not habit:
        raise HTTPException(status_code=404, detail="Habit not found")
    return habit


@router.get("/api/habits/{habit_id}/heatmap")
async def habit_heatmap(habit_id: str):
    return await repositories.habit_heatmap(habit_id)


@router.post("/api/habits", status_code=201)
async def create_habit(payload: HabitCreate):
    if not payload.name:
        raise HTTPException(status_code=400, detail="Name is required")
    return await repositories.create_habit(payload.model_dump())


@router.put("/api/habits/{habit_id}")
async def update_habit(habit_id: str, payload: HabitPatch):
    habit = await repositories.update_habit(habit_id, payload.model_dump(exclude_unset=True))
    if not habit:
        raise HTTPException(status_code=404, detail="Habit not found")
    return habit


@router.post("/api/habits/{habit_id}/log")
async def toggle_habit_log(habit_id: str, payload: HabitLogPayload | None = Body(None)):
    if not await repositories.get_habit(habit_id):
        raise HTTPException(status_code=404, detail="Habit not found")
    today = local_today()
    day = payload.log_date if payload and payload.log_date else today
    completed = await repositories.toggle_habit_log(habit_id, day.isoformat())
    streak = await repositories.habit_streak(habit_id, today)
    logger.info("Habit %s %s for %s (streak %s)", habit_id, "logged" if completed else "unlogged", day, streak)
    return {"completed": completed, "streak": streak}


@router.delete("/api/habits/{habit_id}")
async def delete_habit(habit_id: str):
    await repositories.delete_habit(habit_id)
    return {"success": True}
