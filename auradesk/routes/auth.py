from __future__ import annotations

import logging

import jwt
from fastapi import APIRouter, Header, HTTPException
from sqlalchemy.exc import IntegrityError
from starlette.concurrency import run_in_threadpool

from auradesk import repositories
from auradesk.auth import (
    BCRYPT_MAX_BYTES,
    bearer_token,
    decode_token,
    hash_password,
    issue_token,
    verify_password,
)
from auradesk.schemas import RegisterPayload, LoginPayload

logger = logging.getLogger(__name__)

router = APIRouter()

MIN_PASSWORD_LENGTH = 6


@router.post("/api/auth/register", status_code=201)
async def register(payload: RegisterPayload):
    if not payload.name or not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="All fields required")
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")
    if len(payload.password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise HTTPException(status_code=400, detail="Password must be at most 72 bytes")
    email = payload.email.strip().lower()
    if await repositories.get_user_by_email(email):
        raise HTTPException(status_code=409, detail="Email already registered")
    password_hash = await run_in_threadpool(hash_password, payload.password)
    try:
        user = await repositories.create_user(payload.name, email, password_hash)
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail="Email already registered") from exc
    logger.info("Registered user %s", user["id"])
    return {"token": issue_token(user), "user": user}


@router.post("/api/auth/login")
async def login(payload: LoginPayload):
    if not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Email and password required")
    record = await repositories.get_user_by_email(payload.email.strip().lower())
    if not record or not await run_in_threadpool(verify_password, payload.password, record["password_hash"]):
        logger.info("Failed login attempt")
        raise HTTPException(status_code=401, detail="Invalid email or password")
    user = {"id": record["id"], "name": record["name"], "email": record["email"]}
    return {"token": issue_token(user), "user": user}


@router.get("/api/auth/me")
async def me(authorization: str | None = Header(default=None, alias="Authorization")):
    token = bearer_token(authorization)
    try:
        claims = decode_token(token)
    except jwt.InvalidTokenError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc
    user = await repositories.get_user(str(claims.get("id") or ""))
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return {"user": user}


@router.get("/api/auth/hasUsers")
async def has_users():
    return {"hasUsers": await repositories.count_users() > 0}
