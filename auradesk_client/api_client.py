from __future__ import annotations

import logging
import os
from typing import Any, Callable

import requests
from requests.adapters import HTTPAdapter

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15


class ApiError(RuntimeError):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


def _build_session():
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=10, pool_maxsize=10)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def api_base_url(explicit: str | None = None) -> str:
    return (explicit or os.getenv("AURADESK_API_URL") or "http://localhost:8000").rstrip("/")


class ApiClient:
    """HTTP client for the AuraDesk API.

    ``token_getter`` is called for every request and its result, when truthy,
    is sent as a bearer token. ``on_unauthorized`` is invoked whenever the
    server answers 401, before the error is raised.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token_getter: Callable[[], str | None] | None = None,
        on_unauthorized: Callable[[], None] | None = None,
        session=None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.base_url = api_base_url(base_url)
        self._token_getter = token_getter
        self._on_unauthorized = on_unauthorized
        self._session = session or _build_session()
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {}
        token = self._token_getter() if self._token_getter else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: dict | None = None,
        data: dict | None = None,
        files: dict | None = None,
    ) -> Any:
        url = f"{self.base_url}/api{path}"
        clean_params = {k: v for k, v in (params or {}).items() if v is not None} or None
        response = self._session.request(
            method,
            url,
            params=clean_params,
            json=json,
            data=data,
            files=files,
            headers=self._headers(),
            timeout=self.timeout,
        )
        if response.status_code == 401:
            logger.info("Unauthorized response from %s %s; clearing credentials", method, path)
            if self._on_unauthorized:
                self._on_unauthorized()
        if not response.ok:
            try:
                detail = response.json().get("error") or response.reason
            except ValueError:
                detail = response.text or response.reason
            raise ApiError(response.status_code, str(detail))
        if response.status_code == 204:
            return None
        return response.json()

    def download(self, file_id: str) -> bytes:
        url = f"{self.base_url}/api/files/{file_id}/download"
        response = self._session.request("GET", url, headers=self._headers(), timeout=self.timeout)
        if response.status_code == 401 and self._on_unauthorized:
            self._on_unauthorized()
        if not response.ok:
            raise ApiError(response.status_code, response.reason or "Download failed")
        return response.content

    # Health

    def check_health(self) -> bool:
        try:
            payload = self.request("GET", "/health")
        except (ApiError, requests.RequestException):
            return False
        return bool(payload and payload.get("status") == "ok")

    # Dashboard

    def get_dashboard(self) -> dict:
        return self.request("GET", "/dashboard")

    # Tasks

    def get_tasks(self, status: str | None = None, priority: str | None = None) -> list[dict]:
        return self.request("GET", "/tasks", params={"status": status, "priority": priority})

    def get_task(self, task_id: str) -> dict:
        return self.request("GET", f"/tasks/{task_id}")

    def create_task(self, data: dict) -> dict:
        return self.request("POST", "/tasks", json=data)

    def update_task(self, task_id: str, data: dict) -> dict:
        return self.request("PUT", f"/tasks/{task_id}", json=data)

    def delete_task(self, task_id: str) -> dict:
        return self.request("DELETE", f"/tasks/{task_id}")

    def get_task_stats(self) -> dict:
        return self.request("GET", "/tasks/stats")

    # Notes

    def get_notes(self, search: str | None = None, folder: str | None = None, tag: str | None = None) -> list[dict]:
        return self.request("GET", "/notes", params={"search": search, "folder": folder, "tag": tag})

    def get_note(self, note_id: str) -> dict:
        return self.request("GET", f"/notes/{note_id}")

    def create_note(self, data: dict) -> dict:
        return self.request("POST", "/notes", json=data)

    def update_note(self, note_id: str, data: dict) -> dict:
        return self.request("PUT", f"/notes/{note_id}", json=data)

    def delete_note(self, note_id: str) -> dict:
        return self.request("DELETE", f"/notes/{note_id}")

    def get_note_folders(self) -> list[dict]:
        return self.request("GET", "/notes/folders")

    def get_note_tags(self) -> list[str]:
        return self.request("GET", "/notes/tags")

    # Habits

    def get_habits(self) -> list[dict]:
        return self.request("GET", "/habits")

    def create_habit(self, data: dict) -> dict:
        return self.request("POST", "/habits", json=data)

    def update_habit(self, habit_id: str, data: dict) -> dict:
        return self.request("PUT", f"/habits/{habit_id}", json=data)

    def delete_habit(self, habit_id: str) -> dict:
        return self.request("DELETE", f"/habits/{habit_id}")

    def log_habit(self, habit_id: str, day: str | None = None) -> dict:
        return self.request("POST", f"/habits/{habit_id}/log", json={"date": day} if day else {})

    def get_habit_heatmap(self, habit_id: str) -> list[dict]:
        return self.request("GET", f"/habits/{habit_id}/heatmap")

    # Files

    def get_files(self, folder: str | None = None) -> list[dict]:
        return self.request("GET", "/files", params={"folder": folder})

    def get_file_folders(self) -> list[dict]:
        return self.request("GET", "/files/folders")

    def upload_file(self, filename: str, content: bytes, folder: str = "General", encrypted: bool = False,
                    mime_type: str = "application/octet-stream") -> dict:
        return self.request(
            "POST",
            "/files/upload",
            data={"folder": folder, "encrypted": "1" if encrypted else "0"},
            files={"file": (filename, content, mime_type)},
        )

    def delete_file(self, file_id: str) -> dict:
        return self.request("DELETE", f"/files/{file_id}")
