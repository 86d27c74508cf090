from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from auradesk import repositories
from auradesk.schemas import NoteCreate, NotePatch

router = APIRouter()


@router.get("/api/notes")
async def list_notes(
    search: str | None = Query(None),
    folder: str | None = Query(None),
    tag: str | None = Query(None),
):
    return await repositories.list_notes(folder=folder, search=search, tag=tag)


@router.get("/api/notes/folders")
async def list_note_folders():
    return await repositories.list_note_folders()


@router.get("/api/notes/tags")
async def list_note_tags():
    return await repositories.list_note_tags()


@router.get("/api/notes/{note_id}")
async def get_note(note_id: str):
    note = await repositories.get_note(note_id)
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")
    return note


@router.post("/api/notes", status_code=201)
async def create_note(payload: NoteCreate):
    if not payload.title:
        raise HTTPException(status_code=400, detail="Title is required")
    return await repositories.create_note(payload.model_dump())


@router.put("/api/notes/{note_id}")
async def update_note(note_id: str, payload: NotePatch):
    note = await repositories.update_note(note_id, payload.model_dump(exclude_unset=True))
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")
    return note


@router.delete("/api/notes/{note_id}")
async def delete_note(note_id: str):
    await repositories.delete_note(note_id)
    return {"success": True}
