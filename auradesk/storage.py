"""Disk storage for uploaded files.

Objects live flat in ``UPLOADS_DIR`` under a generated name; the user-supplied
filename is only kept in the database. Encrypted objects are Fernet tokens.
"""
from __future__ import annotations

import base64
import hashlib
import logging
import os
from pathlib import Path
from uuid import uuid4

from cryptography.fernet import Fernet
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from auradesk.settings import get_settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
# Room for multipart boundaries and form fields around the file body.
MULTIPART_OVERHEAD_BYTES = 64 * 1024


class UploadTooLarge(Exception):
    pass


def _fernet() -> Fernet:
    settings = get_settings()
    digest = hashlib.sha256(settings.encryption_key_material.encode("utf-8")).digest()
    key = base64.urlsafe_b64encode(digest)
    return Fernet(key)


def encrypt_bytes(value: bytes) -> bytes:
    return _fernet().encrypt(value)


def decrypt_bytes(value: bytes) -> bytes:
    return _fernet().decrypt(value)


def exceeds_upload_limit(content_length: str | None) -> bool:
    """True when a declared request size cannot fit under the upload cap."""
    if not content_length or not content_length.isdigit():
        return False
    return int(content_length) > get_settings().max_upload_bytes + MULTIPART_OVERHEAD_BYTES


def uploads_dir() -> Path:
    path = Path(get_settings().uploads_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


def _safe_extension(filename: str | None) -> str:
    ext = os.path.splitext(os.path.basename(filename or ""))[1]
    if len(ext) > 16 or not ext[1:].isalnum():
        return ""
    return ext.lower()


def new_stored_name(original_name: str | None) -> tuple[str, str]:
    file_id = uuid4().hex
    return file_id, f"{file_id}{_safe_extension(original_name)}"


def stored_path(stored_name: str) -> Path:
    base = uploads_dir().resolve()
    path = (base / stored_name).resolve()
    if path.parent != base:
        raise ValueError("Stored name escapes the uploads directory")
    return path


async def save_upload(upload: UploadFile, stored_name: str, encrypted: bool) -> int:
    """Write ``upload`` to disk and return its plaintext size.

    Raises ``UploadTooLarge`` once the size cap is crossed; nothing is left on
    disk in that case. Disk writes and encryption run in the threadpool.
    """
    limit = get_settings().max_upload_bytes
    path = stored_path(stored_name)
    size = 0
    chunks: list[bytes] = []
    handle = await run_in_threadpool(open, path, "wb")
    try:
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > limit:
                raise UploadTooLarge(f"File exceeds {limit} bytes")
            if encrypted:
                chunks.append(chunk)
            else:
                await run_in_threadpool(handle.write, chunk)
        if encrypted:
            token = await run_in_threadpool(encrypt_bytes, b"".join(chunks))
            await run_in_threadpool(handle.write, token)
        await run_in_threadpool(handle.close)
    except BaseException:
        handle.close()
        path.unlink(missing_ok=True)
        raise
    return size


def read_stored(stored_name: str, encrypted: bool) -> bytes:
    data = stored_path(stored_name).read_bytes()
    if encrypted:
        return decrypt_bytes(data)
    return data


def remove_stored(stored_name: str) -> bool:
    try:
        path = stored_path(stored_name)
    except ValueError:
        return False
    try:
        path.unlink()
    except FileNotFoundError:
        logger.warning("Stored object %s already missing", stored_name)
        return False
    return True
