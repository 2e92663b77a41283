"""
Board filter and search predicate.

Pure functions: no network, no board state. A task is visible when it passes
the active filter and, for a non-empty query, the text search.
"""
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

FILTERS = ("all", "pending", "completed", "overdue", "current", "high")

DateLike = Union[date, str, None]


def as_date(value: DateLike) -> Optional[date]:
    """Calendar date of a ``date``/``datetime`` or an ISO string, else None."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value) >= 10:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def passes_filter(task: Dict[str, Any], today: DateLike, filter_tag: str = "all") -> bool:
    done = bool(task.get("isComplete"))
    due = as_date(task.get("dueDate"))
    today = as_date(today)

    if filter_tag == "pending":
        return not done
    if filter_tag == "completed":
        return done
    if filter_tag == "overdue":
        return due is not None and due < today and not done
    if filter_tag == "current":
        return due is not None and due == today and not done
    if filter_tag == "high":
        return task.get("priority") == "high"
    return True


def matches_query(task: Dict[str, Any], category_name: str, query: str) -> bool:
    query = (query or "").strip().lower()
    if not query:
        return True
    title = task.get("title") or task.get("name") or ""
    haystack = " ".join([
        title,
        task.get("priority") or "",
        str(task.get("dueDate") or ""),
        category_name or "",
    ])
    return query in haystack.lower()


def task_visible(
    task: Dict[str, Any],
    category_name: str,
    today: DateLike,
    filter_tag: str = "all",
    query: str = "",
) -> bool:
    return passes_filter(task, today, filter_tag) and matches_query(task, category_name, query)
