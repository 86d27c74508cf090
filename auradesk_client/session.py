from __future__ import annotations

import logging
from pathlib import Path

from auradesk_client.api_client import ApiClient, ApiError

logger = logging.getLogger(__name__)


class TokenStore:
    """Holds the bearer token, optionally mirrored to a file between runs."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else None
        self._token: str | None = None
        if self.path and self.path.exists():
            self._token = self.path.read_text(encoding="utf-8").strip() or None

    def get(self) -> str | None:
        return self._token

    def set(self, token: str | None) -> None:
        self._token = token or None
        if not self.path:
            return
        if self._token:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(self._token, encoding="utf-8")
        else:
            self.path.unlink(missing_ok=True)

    def clear(self) -> None:
        self.set(None)


class AuthSession:
    def __init__(self, base_url: str | None = None, store: TokenStore | None = None, http_session=None):
        self.store = store or TokenStore()
        self.user: dict | None = None
        self.has_users: bool | None = None
        self.client = ApiClient(
            base_url,
            token_getter=self.store.get,
            on_unauthorized=self.clear,
            session=http_session,
        )

    @property
    def authenticated(self) -> bool:
        return bool(self.store.get() and self.user)

    def clear(self) -> None:
        self.store.clear()
        self.user = None

    def init(self) -> dict | None:
        """Probe for a first run and restore any stored session."""
        try:
            self.has_users = bool(self.client.request("GET", "/auth/hasUsers").get("hasUsers"))
        except ApiError:
            self.has_users = False
        if self.store.get():
            try:
                self.user = self.client.request("GET", "/auth/me")["user"]
            except ApiError:
                logger.info("Stored token rejected; signing out")
                self.clear()
        return self.user

    def _accept(self, payload: dict) -> dict:
        self.store.set(payload["token"])
        self.user = payload["user"]
        self.has_users = True
        return self.user

    def login(self, email: str, password: str) -> dict:
        return self._accept(self.client.request("POST", "/auth/login", json={"email": email, "password": password}))

    def register(self, name: str, email: str, password: str) -> dict:
        return self._accept(
            self.client.request("POST", "/auth/register", json={"name": name, "email": email, "password": password})
        )

    def logout(self) -> None:
        self.clear()
