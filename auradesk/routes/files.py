from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse, Response
from starlette.concurrency import run_in_threadpool

from auradesk import repositories, storage

logger = logging.getLogger(__name__)

router = APIRouter()


def _content_disposition(filename: str) -> str:
    return f"inline; filename*=UTF-8''{quote(filename)}"


@router.get("/api/files")
async def list_files(folder: str | None = Query(None)):
    return await repositories.list_files(folder=folder)


@router.get("/api/files/folders")
async def list_file_folders():
    return await repositories.list_file_folders()


@router.post("/api/files/upload", status_code=201)
async def upload_file(
    file: UploadFile | None = File(None),
    folder: str = Form("General"),
    encrypted: str = Form("0"),
):
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")
    is_encrypted = encrypted.strip() in {"1", "true", "True"}
    file_id, stored_name = storage.new_stored_name(file.filename)
    try:
        size = await storage.save_upload(file, stored_name, is_encrypted)
    except storage.UploadTooLarge as exc:
        raise HTTPException(status_code=413, detail=str(exc)) from exc
    finally:
        await file.close()
    try:
        record = await repositories.create_file(
            {
                "id": file_id,
                "stored_name": stored_name,
                "original_name": file.filename,
                "size": size,
                "mime_type": file.content_type,
                "encrypted": is_encrypted,
                "folder": folder or "General",
            }
        )
    except Exception:
        storage.remove_stored(stored_name)
        raise
    logger.info("Stored upload %s as %s (%s bytes)", file.filename, stored_name, size)
    return record


@router.get("/api/files/{file_id}")
async def get_file(file_id: str):
    record = await repositories.get_file(file_id)
    if not record:
        raise HTTPException(status_code=404, detail="File not found")
    return record


@router.get("/api/files/{file_id}/download")
async def download_file(file_id: str):
    record = await repositories.get_file(file_id)
    if not record:
        raise HTTPException(status_code=404, detail="File not found")
    path = storage.stored_path(record["stored_name"])
    if not path.exists():
        raise HTTPException(status_code=404, detail="File missing from disk")
    headers = {"Content-Disposition": _content_disposition(record["original_name"])}
    media_type = record.get("mime_type") or "application/octet-stream"
    if record.get("encrypted"):
        content = await run_in_threadpool(storage.read_stored, record["stored_name"], True)
        return Response(content=content, media_type=media_type, headers=headers)
    return FileResponse(path, media_type=media_type, headers=headers)


@router.delete("/api/files/{file_id}")
async def delete_file(file_id: str):
    record = await repositories.get_file(file_id)
    if record:
        await repositories.delete_file(file_id)
        storage.remove_stored(record["stored_name"])
        logger.info("Deleted file %s", file_id)
    return {"success": True}
