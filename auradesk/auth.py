from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from fastapi import Header, HTTPException

from auradesk.settings import get_settings

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    settings = get_settings()
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def issue_token(user: dict) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "id": user["id"],
        "name": user["name"],
        "email": user["email"],
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_expires_days),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])


def bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    token = authorization[len("Bearer ") :].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return token


async def require_user(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> dict:
    token = bearer_token(authorization)
    try:
        claims = decode_token(token)
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    except jwt.InvalidTokenError:
        logger.info("Rejected invalid token")
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    if not claims.get("id"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return {"id": claims["id"], "name": claims.get("name"), "email": claims.get("email")}
