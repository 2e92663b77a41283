"""
Client-local persisted state, the desktop analogue of browser localStorage.

Everything is a JSON value stored under a string key in one file. Per-user
keys are suffixed with the user identity, or "guest" when nobody is signed
in. Only a session token is remembered, never a password.
"""
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

GUEST = "guest"
CURRENT_USER_KEY = "taskboard:currentUser"
TOKEN_KEY = "taskboard:token"


def default_path() -> Path:
    base = os.environ.get("XDG_STATE_HOME", os.path.expanduser("~/.local/state"))
    return Path(base) / "taskboard" / "local_state.json"


def user_key(prefix: str, user_id: Optional[str]) -> str:
    return f"taskboard:{prefix}:{user_id or GUEST}"


class LocalState:
    """JSON-file key/value store. ``path=None`` keeps everything in memory."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._data = self._load()

    def _load(self) -> dict:
        if not self.path or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable local state %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self):
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(self._data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._flush()

    def remove(self, key: str) -> None:
        with self._lock:
            if self._data.pop(key, None) is not None:
                self._flush()

    # ---- remembered identity

    def remember_user(self, user: dict, token: Optional[str] = None) -> None:
        self.set(CURRENT_USER_KEY, user)
        if token:
            self.set(TOKEN_KEY, token)

    def remembered_user(self) -> Optional[dict]:
        user = self.get(CURRENT_USER_KEY)
        return user if isinstance(user, dict) and user.get("id") else None

    def remembered_token(self) -> Optional[str]:
        return self.get(TOKEN_KEY)

    def forget_user(self) -> None:
        self.remove(CURRENT_USER_KEY)
        self.remove(TOKEN_KEY)
