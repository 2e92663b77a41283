"""HTTP client for the task board REST API."""
import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A non-2xx answer (status > 0) or a transport failure (status 0)."""

    def __init__(self, status: int, message: str):
        super().__init__(f"{status}: {message}" if status else message)
        self.status = status
        self.message = message


class TaskBoardAPI:
    def __init__(self, base_url: str = "http://localhost:5000", session=None,
                 token: Optional[str] = None, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.token = token
        self.timeout = timeout

    def _request(self, method: str, path: str, json: Any = None,
                 params: Optional[Dict[str, Any]] = None) -> Any:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            r = self.session.request(
                method,
                self.base_url + path,
                json=json,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError(0, f"Could not reach the server: {e}") from e

        try:
            payload = r.json()
        except ValueError:
            payload = None
        if not 200 <= r.status_code < 300:
            message = payload.get("error") if isinstance(payload, dict) else None
            raise ApiError(r.status_code, message or f"HTTP {r.status_code}")
        return payload

    # ---- auth

    def _signed_in(self, user: Dict[str, Any]) -> Dict[str, Any]:
        self.token = user.pop("token", None) or self.token
        return user

    def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        return self._signed_in(self._request(
            "POST", "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        ))

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._signed_in(self._request(
            "POST", "/api/auth/login", json={"email": email, "password": password},
        ))

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health")

    # ---- categories

    def list_categories(self, user_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/categories", params={"userId": user_id})

    def create_category(self, name: str, user_id: str) -> Dict[str, Any]:
        return self._request("POST", "/api/categories", json={"name": name, "userId": user_id})

    def rename_category(self, category_id, name: str) -> Dict[str, Any]:
        return self._request("PUT", f"/api/categories/{category_id}", json={"name": name})

    def delete_category(self, category_id) -> Dict[str, Any]:
        return self._request("DELETE", f"/api/categories/{category_id}")

    # ---- tasks

    def list_tasks(self, user_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/tasks", params={"userId": user_id})

    def create_task(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/tasks", json=fields)

    def update_task(self, task_id, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/api/tasks/{task_id}", json=fields)

    def delete_task(self, task_id) -> Dict[str, Any]:
        return self._request("DELETE", f"/api/tasks/{task_id}")
