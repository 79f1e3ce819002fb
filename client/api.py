"""Blocking JSON client for the task API."""
from __future__ import annotations

import json
import logging
from http.client import RemoteDisconnected
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple
from urllib import error as urllib_error
from urllib import request as urllib_request
from urllib.parse import urlencode

DEFAULT_BASE_URL = "http://localhost:5000/api"

Transport = Callable[
    [str, str, Optional[dict], Optional[Mapping[str, Any]]], Tuple[int, Any]
]


class ApiError(RuntimeError):
    """Raised when an API call fails or returns an error envelope."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}


def _query_string(params: Optional[Mapping[str, Any]]) -> str:
    if not params:
        return ""
    cleaned = {key: value for key, value in params.items() if value not in (None, "")}
    return f"?{urlencode(cleaned)}" if cleaned else ""


class UrllibTransport:
    """Send requests over HTTP with urllib."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: int = 20):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def __call__(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[int, Any]:
        url = f"{self.base_url}{path}{_query_string(params)}"
        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")

        request = urllib_request.Request(
            url,
            data=data,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            method=method,
        )
        try:
            with urllib_request.urlopen(request, timeout=self.timeout) as response:
                status = response.getcode()
                raw = response.read()
        except urllib_error.HTTPError as error:
            status = error.code
            raw = error.read()
        except RemoteDisconnected as error:
            raise ApiError("Server closed the connection unexpectedly.") from error
        except urllib_error.URLError as error:
            raise ApiError("Unable to reach the task API.") from error

        text = raw.decode("utf-8") if raw else ""
        try:
            body = json.loads(text) if text else {}
        except json.JSONDecodeError:
            body = {}
        return status, body


class ApiClient:
    """Typed wrappers around the ``/api`` routes.

    Every call blocks until the response arrives and either returns the
    ``data`` member of the success envelope or raises ApiError.
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, transport: Optional[Transport] = None):
        self.transport = transport or UrllibTransport(base_url)

    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        status, body = self.transport(method, path, payload, params)
        if not isinstance(body, dict):
            body = {}
        if status >= 400 or not body.get("success"):
            logging.warning(
                "API call failed",
                extra={"method": method, "path": path, "status": status},
            )
            raise ApiError(
                body.get("error") or "Request failed",
                status_code=status,
                details=body.get("details"),
            )
        return body.get("data")

    # Users
    def list_users(self):
        return self._request("GET", "/users")

    def get_user(self, user_id: str):
        return self._request("GET", f"/users/{user_id}")

    def create_user(self, data: dict):
        return self._request("POST", "/users", data)

    def update_user(self, user_id: str, data: dict):
        return self._request("PUT", f"/users/{user_id}", data)

    def delete_user(self, user_id: str):
        return self._request("DELETE", f"/users/{user_id}")

    def onboard_user(self, user_id: str):
        return self._request("POST", f"/users/{user_id}/onboard")

    # Profiles
    def list_profiles(self, user_id: str):
        return self._request("GET", "/profiles", params={"userId": user_id})

    def get_profile(self, profile_id: str):
        return self._request("GET", f"/profiles/{profile_id}")

    def create_profile(self, data: dict):
        return self._request("POST", "/profiles", data)

    def update_profile(self, profile_id: str, data: dict):
        return self._request("PUT", f"/profiles/{profile_id}", data)

    def delete_profile(self, profile_id: str):
        return self._request("DELETE", f"/profiles/{profile_id}")

    # Categories
    def list_categories(self, profile_id: str):
        return self._request("GET", "/categories", params={"profileId": profile_id})

    def get_category(self, category_id: str):
        return self._request("GET", f"/categories/{category_id}")

    def create_category(self, data: dict):
        return self._request("POST", "/categories", data)

    def update_category(self, category_id: str, data: dict):
        return self._request("PUT", f"/categories/{category_id}", data)

    def delete_category(self, category_id: str):
        return self._request("DELETE", f"/categories/{category_id}")

    # Tasks
    def list_tasks(self, profile_id: str, filters: Optional[Mapping[str, Any]] = None):
        params = {"profileId": profile_id}
        params.update(filters or {})
        return self._request("GET", "/tasks", params=params)

    def list_tasks_by_partition(self, profile_id: str, status: Optional[str] = None):
        return self.list_tasks(profile_id, {"status": status} if status else None)

    def get_task(self, task_id: str):
        return self._request("GET", f"/tasks/{task_id}")

    def create_task(self, data: dict):
        return self._request("POST", "/tasks", data)

    def update_task(self, task_id: str, data: dict):
        return self._request("PUT", f"/tasks/{task_id}", data)

    def update_task_status(self, task_id: str, status: str):
        return self._request("PATCH", f"/tasks/{task_id}/status", {"status": str(status)})

    def delete_task(self, task_id: str):
        return self._request("DELETE", f"/tasks/{task_id}")

    def bulk_update_order(self, task_updates: Iterable[Mapping[str, Any]]):
        updates = [
            {"id": update["id"], "sortOrder": update["sortOrder"]} for update in task_updates
        ]
        return self._request("POST", "/tasks/reorder", {"taskUpdates": updates})

    def search_tasks(self, user_id: str, query: str, filters: Optional[dict] = None):
        payload: Dict[str, Any] = {"userId": user_id, "query": query}
        if filters:
            payload["filters"] = filters
        return self._request("POST", "/tasks/search", payload)

    def overdue_tasks(self, profile_id: str):
        return self._request("GET", "/tasks/overdue", params={"profileId": profile_id})

    def tasks_due_today(self, profile_id: str):
        return self._request("GET", "/tasks/due-today", params={"profileId": profile_id})
