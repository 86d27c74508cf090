from __future__ import annotations

import os
import re
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "auradesk-secret-change-me-in-production"
DEFAULT_ORIGINS = ["http://localhost:5173", "http://localhost:3000"]


class Settings(BaseSettings):
    database_url: str = Field("sqlite+aiosqlite:///./auradesk.db", alias="DATABASE_URL")

    jwt_secret: str = Field(DEFAULT_JWT_SECRET, alias="JWT_SECRET")
    jwt_expires_days: int = Field(30, alias="JWT_EXPIRES_DAYS")
    bcrypt_rounds: int = Field(12, alias="BCRYPT_ROUNDS")

    uploads_dir: str = Field("uploads", alias="UPLOADS_DIR")
    max_upload_bytes: int = Field(100 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")
    file_encryption_key: str | None = Field(None, alias="FILE_ENCRYPTION_KEY")

    frontend_url: str | None = Field(None, alias="FRONTEND_URL")
    app_timezone: str = Field("UTC", alias="APP_TIMEZONE")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def allowed_origins(self) -> List[str]:
        origins = list(DEFAULT_ORIGINS)
        if self.frontend_url and self.frontend_url.strip():
            origins.append(self.frontend_url.strip())
        return origins

    @property
    def allowed_origin_regex(self) -> str:
        # Origins are matched by prefix, not exactly.
        return "(" + "|".join(re.escape(origin) for origin in self.allowed_origins) + ").*"

    @property
    def encryption_key_material(self) -> str:
        return self.file_encryption_key or self.jwt_secret


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None


# For local dev convenience only.
if os.getenv("BACKEND_DEBUG_SETTINGS"):
    print(get_settings())
