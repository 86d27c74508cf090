from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from auradesk import repositories
from auradesk.schemas import TaskCreate, TaskPatch

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/tasks")
async def list_tasks(status: str | None = Query(None), priority: str | None = Query(None)):
    return await repositories.list_tasks(status=status, priority=priority)


@router.get("/api/tasks/stats")
async def task_stats():
    return await repositories.task_stats()


@router.get("/api/tasks/{task_id}")
async def get_task(task_id: str):
    task = await repositories.get_task(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.post("/api/tasks", status_code=201)
async def create_task(payload: TaskCreate):
    if not payload.title:
        raise HTTPException(status_code=400, detail="Title is required")
    return await repositories.create_task(payload.model_dump())


@router.put("/api/tasks/{task_id}")
async def update_task(task_id: str, payload: TaskPatch):
    task = await repositories.update_task(task_id, payload.model_dump(exclude_unset=True))
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.delete("/api/tasks/{task_id}")
async def delete_task(task_id: str):
    await repositories.delete_task(task_id)
    logger.info("Deleted task %s", task_id)
    return {"success": True}
