"""
Task service and routes.

Incoming fields are normalized rather than rejected wherever a sensible
default exists: an unknown priority becomes "medium", a missing category
becomes "General", an unparseable due date is dropped.
"""
import logging
from datetime import date, datetime

from flask import Blueprint, jsonify, request

from auth import acting_user, request_body, resolve_owner
from errors import NotFoundError, ValidationError, api_errors
from model import DEFAULT_CATEGORY, DEFAULT_PRIORITY, PRIORITIES, Task, db

logger = logging.getLogger(__name__)

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


def parse_due_date(value):
    """Parse a calendar date from ``YYYY-MM-DD`` or an ISO datetime.

    Returns None when the value cannot be read as a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def _title(body):
    raw = body.get("title") or body.get("name")
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return None


def _category(value):
    if isinstance(value, str) and value.strip():
        return value.strip()
    return DEFAULT_CATEGORY


def _priority(value):
    return value if isinstance(value, str) and value in PRIORITIES else DEFAULT_PRIORITY


def create_task(body):
    title = _title(body)
    if title is None:
        raise ValidationError("Title is required")
    if not body.get("userId"):
        raise ValidationError("userId is required")

    task = Task(
        title=title,
        category=_category(body.get("category")),
        priority=_priority(body.get("priority")),
        user_id=str(body["userId"]),
    )
    if isinstance(body.get("isComplete"), bool):
        task.complete = body["isComplete"]
    if body.get("dueDate"):
        task.due = parse_due_date(body["dueDate"])
    if body.get("image"):
        task.image = str(body["image"])

    db.session.add(task)
    db.session.commit()
    return task


def list_tasks(user_id):
    if not user_id:
        raise ValidationError("userId is required")
    return (
        Task.query.filter_by(user_id=str(user_id))
        .order_by(Task.created.desc(), Task.id.desc())
        .all()
    )


def _get_owned(task_id, user_id=None):
    task = db.session.get(Task, task_id)
    if task is None or (user_id is not None and task.user_id != user_id):
        raise NotFoundError("Task not found")
    return task


def update_task(task_id, body, user_id=None):
    task = _get_owned(task_id, user_id)

    title = _title(body)
    if title is not None:
        task.title = title
    if isinstance(body.get("category"), str):
        task.category = _category(body["category"])
    if body.get("priority") in PRIORITIES:
        task.priority = body["priority"]
    if isinstance(body.get("isComplete"), bool):
        task.complete = body["isComplete"]
    # Present-but-empty clears the due date; absent leaves it alone
    if "dueDate" in body:
        if not body["dueDate"]:
            task.due = None
        else:
            parsed = parse_due_date(body["dueDate"])
            if parsed is not None:
                task.due = parsed
    if isinstance(body.get("image"), str):
        task.image = body["image"]

    db.session.commit()
    return task


def delete_task(task_id, user_id=None):
    task = _get_owned(task_id, user_id)
    db.session.delete(task)
    db.session.commit()


@tasks_bp.route("", methods=["GET"])
@api_errors("Failed to fetch tasks")
def list_route():
    owner = resolve_owner(request.args.get("userId"))
    return jsonify([t.to_dict() for t in list_tasks(owner)])


@tasks_bp.route("", methods=["POST"])
@api_errors("Failed to create task")
def create_route():
    body = request_body()
    owner = resolve_owner(body.get("userId"))
    if owner:
        body["userId"] = owner
    task = create_task(body)
    logger.debug("Created task %s for %s", task.id, task.user_id)
    return jsonify(task.to_dict()), 201


@tasks_bp.route("/<int:task_id>", methods=["PUT"])
@api_errors("Failed to update task")
def update_route(task_id):
    task = update_task(task_id, request_body(), acting_user())
    return jsonify(task.to_dict())


@tasks_bp.route("/<int:task_id>", methods=["DELETE"])
@api_errors("Failed to delete task")
def delete_route(task_id):
    delete_task(task_id, acting_user())
    return jsonify({"message": "Task deleted successfully"})
