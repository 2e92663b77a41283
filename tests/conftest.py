"""Shared test fixtures for the task board API and client."""

import sys
import threading
from pathlib import Path

import pytest

# Ensure the project root modules are importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from api_client import ApiError  # noqa: E402
from app import create_app  # noqa: E402
from model import db  # noqa: E402

TEST_CONFIG = {
    "TESTING": True,
    "SECRET_KEY": "test-secret",
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "LOG_LEVEL": "WARNING",
}


@pytest.fixture
def app():
    app = create_app(TEST_CONFIG)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def make_app(**overrides):
    return create_app(dict(TEST_CONFIG, **overrides))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# In-memory stand-in for TaskBoardAPI
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class FakeApi:
    """Mirrors the server's behaviour closely enough for board tests."""

    def __init__(self):
        self.token = None
        self.users = {}
        self.categories = []
        self.tasks = []
        self.calls = []
        self.fail = set()
        self._ids = 100
        self._lock = threading.Lock()

    def _next_id(self):
        self._ids += 1
        return self._ids

    def _record(self, name, *args):
        with self._lock:
            self.calls.append((name,) + args)
        if name in self.fail:
            raise ApiError(500, f"{name} exploded")

    def register(self, name, email, password):
        self._record("register", email)
        email = email.strip().lower()
        if email in self.users:
            raise ApiError(409, "An account with this email already exists")
        self.users[email] = (name, password)
        self.token = f"token-{email}"
        return {"id": email, "name": name, "email": email}

    def login(self, email, password):
        self._record("login", email)
        email = email.strip().lower()
        if self.users.get(email, (None, None))[1] != password:
            raise ApiError(401, "Incorrect email or password")
        self.token = f"token-{email}"
        return {"id": email, "name": self.users[email][0], "email": email}

    def list_categories(self, user_id):
        self._record("list_categories", user_id)
        return [dict(c) for c in self.categories if c["userId"] == user_id]

    def list_tasks(self, user_id):
        self._record("list_tasks", user_id)
        return [dict(t) for t in reversed(self.tasks) if t["userId"] == user_id]

    def create_category(self, name, user_id):
        self._record("create_category", name)
        category = {"id": self._next_id(), "name": name, "userId": user_id}
        self.categories.append(category)
        return dict(category)

    def rename_category(self, category_id, name):
        self._record("rename_category", category_id, name)
        category = self._category(category_id)
        for t in self.tasks:
            if t["userId"] == category["userId"] and t["category"] == category["name"]:
                t["category"] = name
        category["name"] = name
        return dict(category)

    def delete_category(self, category_id):
        self._record("delete_category", category_id)
        category = self._category(category_id)
        self.tasks = [
            t for t in self.tasks
            if not (t["userId"] == category["userId"] and t["category"] == category["name"])
        ]
        self.categories.remove(category)
        return {"message": "Category and tasks deleted"}

    def create_task(self, fields):
        self._record("create_task", fields.get("title"))
        task = {
            "id": self._next_id(),
            "title": fields["title"],
            "category": fields.get("category") or "General",
            "priority": fields.get("priority") or "medium",
            "isComplete": bool(fields.get("isComplete", False)),
            "userId": fields["userId"],
            "dueDate": fields.get("dueDate"),
            "image": fields.get("image"),
        }
        self.tasks.append(task)
        return dict(task)

    def update_task(self, task_id, fields):
        self._record("update_task", task_id, dict(fields))
        task = self._task(task_id)
        task.update(fields)
        return dict(task)

    def delete_task(self, task_id):
        self._record("delete_task", task_id)
        self.tasks.remove(self._task(task_id))
        return {"message": "Task deleted successfully"}

    def _category(self, category_id):
        for c in self.categories:
            if c["id"] == category_id:
                return c
        raise ApiError(404, "Category not found")

    def _task(self, task_id):
        for t in self.tasks:
            if t["id"] == task_id:
                return t
        raise ApiError(404, "Task not found")


@pytest.fixture
def fake_api():
    return FakeApi()
