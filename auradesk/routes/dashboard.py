from __future__ import annotations

from fastapi import APIRouter

from auradesk import repositories
from auradesk.metrics import local_today

router = APIRouter()


@router.get("/api/dashboard")
async def dashboard():
    return await repositories.dashboard_snapshot(local_today())
