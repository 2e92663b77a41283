"""
Board controller: the client-side view of one user's categories and tasks.

The server stores tasks and categories as two flat collections, linked only
by the category *name* carried on each task. The board merges them into an
ordered list of groups, renders it through the filter/search predicate and
pushes user edits back to the API.

Edits are optimistic. The in-memory board changes first; the matching API
call is queued afterwards. Calls run one at a time in the order they were
made, so the server sees edits in user order. A failed call is logged and
shown as a dismissable notification, and the local change stays in place
until the next full reload replaces the board with the server's copy.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from itertools import count
from typing import Any, Callable, Dict, List, Optional, Tuple

from api_client import ApiError
from board_filter import FILTERS, as_date, passes_filter, task_visible
from local_state import LocalState, user_key
from streak import Streak, increment_streak_if_needed

logger = logging.getLogger(__name__)

PRIORITIES = ("low", "medium", "high")
DEFAULT_CATEGORY = "General"
THEMES = ("light", "dark")
LOCAL_ID_PREFIX = "local-"


class Screen(Enum):
    UNAUTHENTICATED = "unauthenticated"
    BOARD = "board"


@dataclass
class Notification:
    kind: str                      # "error", "kudos" or "info"
    message: str


@dataclass
class Group:
    """One board column. ``category_id`` is None for orphan groups."""
    category_id: Any
    name: str
    tasks: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class PendingMutation:
    """A queued API call behind an optimistic local edit."""
    description: str
    future: Any = None
    error: Optional[ApiError] = None


@dataclass
class BoardState:
    user: Optional[Dict[str, Any]] = None
    groups: List[Group] = field(default_factory=list)
    filter_tag: str = "all"
    query: str = ""
    theme: str = "light"
    streak: Streak = field(default_factory=Streak)
    notifications: List[Notification] = field(default_factory=list)

    @property
    def screen(self) -> Screen:
        return Screen.BOARD if self.user else Screen.UNAUTHENTICATED

    @property
    def user_id(self) -> Optional[str]:
        return self.user["id"] if self.user else None


def build_groups(categories: List[Dict[str, Any]], tasks: List[Dict[str, Any]]) -> List[Group]:
    """Merge server categories and tasks into ordered board groups.

    One group per category, in server order. Each task joins the first group
    whose name equals its category; tasks with no such group are collected in
    orphan groups, appended in the order their names are first seen.
    """
    groups = [Group(category_id=c.get("id"), name=c.get("name", ""), tasks=[]) for c in categories]
    by_name: Dict[str, Group] = {}
    for g in groups:
        by_name.setdefault(g.name, g)

    for task in tasks:
        name = task.get("category") or DEFAULT_CATEGORY
        group = by_name.get(name)
        if group is None:
            group = Group(category_id=None, name=name, tasks=[])
            by_name[name] = group
            groups.append(group)
        group.tasks.append(task)
    return groups


def render_board(state: BoardState, today: date) -> Dict[str, Any]:
    """Compute what the board shows. Pure: reads ``state``, does no I/O."""
    today = as_date(today)
    groups = []
    stats = {"total": 0, "completed": 0, "pending": 0, "overdue": 0}
    for g in state.groups:
        visible = []
        for task in g.tasks:
            overdue = passes_filter(task, today, "overdue")
            stats["total"] += 1
            stats["completed" if task.get("isComplete") else "pending"] += 1
            stats["overdue"] += overdue
            if task_visible(task, g.name, today, state.filter_tag, state.query):
                visible.append(dict(task, overdue=overdue))
        groups.append({
            "categoryId": g.category_id,
            "name": g.name,
            "tasks": visible,
            "total": len(g.tasks),
            "completed": sum(1 for t in g.tasks if t.get("isComplete")),
        })
    return {
        "screen": state.screen.value,
        "user": state.user,
        "theme": state.theme,
        "filter": state.filter_tag,
        "query": state.query,
        "streak": state.streak.to_dict(),
        "groups": groups,
        "stats": stats,
        "notifications": [(n.kind, n.message) for n in state.notifications],
    }


def _is_local_id(value) -> bool:
    return isinstance(value, str) and value.startswith(LOCAL_ID_PREFIX)


class BoardController:
    def __init__(self, api, local: Optional[LocalState] = None,
                 today: Optional[Callable[[], date]] = None):
        self.api = api
        self.local = local or LocalState()
        self.today = today or date.today
        self.state = BoardState()

        self._lock = threading.RLock()
        # Single worker: API calls reach the server in the order they were made
        self._queue = ThreadPoolExecutor(max_workers=1, thread_name_prefix="board-sync")
        self._pending: List[PendingMutation] = []
        self._failed: List[PendingMutation] = []
        self._id_map: Dict[str, Any] = {}
        self._local_ids = count(1)

        user = self.local.remembered_user()
        if user:
            self.api.token = self.local.remembered_token()
        self._enter(user)

    # ---- screens

    @property
    def screen(self) -> Screen:
        return self.state.screen

    def start(self) -> None:
        """Load the board if an identity was remembered."""
        if self.screen is Screen.BOARD:
            self.reload()

    def _enter(self, user: Optional[Dict[str, Any]]) -> None:
        self.state.user = user
        self.state.groups = []
        self.state.streak = Streak.from_dict(self.local.get(user_key("streak", self.state.user_id)))
        theme = self.local.get(user_key("theme", self.state.user_id), "light")
        self.state.theme = theme if theme in THEMES else "light"

    def register(self, name: str, email: str, password: str) -> bool:
        return self._sign_in(lambda: self.api.register(name, email, password))

    def login(self, email: str, password: str) -> bool:
        return self._sign_in(lambda: self.api.login(email, password))

    def _sign_in(self, call) -> bool:
        try:
            user = call()
        except ApiError as e:
            self.notify("error", e.message)
            return False
        self.local.remember_user(user, self.api.token)
        self._enter(user)
        self.reload()
        return True

    def logout(self) -> None:
        self.flush()
        self.local.forget_user()
        self.api.token = None
        self._enter(None)
        self._id_map.clear()

    # ---- sync

    def reload(self) -> bool:
        """Replace the board with the server's categories and tasks."""
        if self.screen is not Screen.BOARD:
            return False
        self.flush()
        user_id = self.state.user_id
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="board-load") as pool:
            categories = pool.submit(self.api.list_categories, user_id)
            tasks = pool.submit(self.api.list_tasks, user_id)
            try:
                groups = build_groups(categories.result(), tasks.result())
            except ApiError as e:
                logger.warning("Reload for %s failed: %s", user_id, e)
                self.notify("error", f"Could not load your board: {e.message}")
                return False
        with self._lock:
            self.state.groups = groups
            # The server copy now wins over anything that failed to sync
            self._failed.clear()
            self._id_map.clear()
        return True

    def flush(self, timeout: Optional[float] = None) -> List[PendingMutation]:
        """Wait for queued API calls; return the ones that failed since last reload."""
        with self._lock:
            pending = list(self._pending)
        for m in pending:
            m.future.exception(timeout=timeout)
        with self._lock:
            return list(self._failed)

    def close(self) -> None:
        self.flush()
        self._queue.shutdown(wait=True)

    def _enqueue(self, description: str, call: Callable, *args, resolve: bool = True) -> PendingMutation:
        mutation = PendingMutation(description)
        with self._lock:
            mutation.future = self._queue.submit(self._run, mutation, call, args, resolve)
            self._pending.append(mutation)
        return mutation

    def _run(self, mutation: PendingMutation, call: Callable, args: Tuple, resolve: bool):
        try:
            if resolve:
                args = [self._resolve(a) for a in args]
            return call(*args)
        except ApiError as e:
            logger.warning("%s failed: %s", mutation.description, e)
            mutation.error = e
            with self._lock:
                self._failed.append(mutation)
            self.notify("error", f"{mutation.description} failed: {e.message}")
            return None
        finally:
            with self._lock:
                if mutation in self._pending:
                    self._pending.remove(mutation)

    def _resolve(self, value):
        if not _is_local_id(value):
            return value
        with self._lock:
            if value not in self._id_map:
                raise ApiError(0, "the item was never saved on the server")
            return self._id_map[value]

    def _adopt_id(self, local_id: str, record: Optional[Dict[str, Any]], target: Dict[str, Any]) -> None:
        if not record or "id" not in record:
            return
        with self._lock:
            self._id_map[local_id] = record["id"]
            if target.get("id") == local_id:
                target["id"] = record["id"]

    def _next_local_id(self) -> str:
        return f"{LOCAL_ID_PREFIX}{next(self._local_ids)}"

    # ---- notifications

    def notify(self, kind: str, message: str) -> None:
        with self._lock:
            self.state.notifications.append(Notification(kind, message))

    def dismiss(self, index: int = 0) -> None:
        with self._lock:
            if 0 <= index < len(self.state.notifications):
                del self.state.notifications[index]

    # ---- view

    def render(self, today: Optional[date] = None) -> Dict[str, Any]:
        with self._lock:
            return render_board(self.state, today or self.today())

    def set_filter(self, filter_tag: str) -> None:
        if filter_tag not in FILTERS:
            raise ValueError(f"Unknown filter: {filter_tag}")
        self.state.filter_tag = filter_tag

    def set_query(self, query: str) -> None:
        self.state.query = query or ""

    def toggle_theme(self) -> str:
        self.state.theme = "dark" if self.state.theme == "light" else "light"
        self.local.set(user_key("theme", self.state.user_id), self.state.theme)
        return self.state.theme

    # ---- lookups

    def _find_task(self, task_id) -> Tuple[Group, int, Dict[str, Any]]:
        with self._lock:
            wanted = {task_id, self._id_map.get(task_id, task_id)}
            for group in self.state.groups:
                for i, task in enumerate(group.tasks):
                    if task.get("id") in wanted:
                        return group, i, task
        raise KeyError(f"Unknown task: {task_id}")

    def _group_for(self, name: str) -> Group:
        for group in self.state.groups:
            if group.name == name:
                return group
        group = Group(category_id=None, name=name, tasks=[])
        self.state.groups.append(group)
        return group

    def _group(self, index: int) -> Group:
        if not 0 <= index < len(self.state.groups):
            raise IndexError(f"No group at position {index}")
        return self.state.groups[index]

    # ---- task mutations

    def add_task(self, title: str, category: Optional[str] = None, priority: str = "medium",
                 due_date: Optional[str] = None, image: Optional[str] = None) -> Optional[str]:
        title = (title or "").strip()
        if not title:
            self.notify("error", "Task title is required")
            return None
        local_id = self._next_local_id()
        task = {
            "id": local_id,
            "title": title,
            "category": (category or "").strip() or DEFAULT_CATEGORY,
            "priority": priority if priority in PRIORITIES else "medium",
            "isComplete": False,
            "userId": self.state.user_id,
            "dueDate": as_date(due_date).isoformat() if as_date(due_date) else None,
            "image": image,
        }
        with self._lock:
            self._group_for(task["category"]).tasks.insert(0, task)

        fields = {k: task[k] for k in ("title", "category", "priority", "userId", "dueDate", "image") if task[k]}
        self._enqueue(f"Adding task '{title}'", self._create_task, local_id, fields, task, resolve=False)
        return local_id

    def _create_task(self, local_id, fields, task):
        self._adopt_id(local_id, self.api.create_task(fields), task)

    def edit_task(self, task_id, **fields) -> None:
        """Apply a partial edit using API field names (title, category, ...)."""
        group, index, task = self._find_task(task_id)
        changes: Dict[str, Any] = {}
        if isinstance(fields.get("title"), str) and fields["title"].strip():
            changes["title"] = fields["title"].strip()
        if isinstance(fields.get("category"), str):
            changes["category"] = fields["category"].strip() or DEFAULT_CATEGORY
        if fields.get("priority") in PRIORITIES:
            changes["priority"] = fields["priority"]
        if "dueDate" in fields:
            parsed = as_date(fields["dueDate"])
            if not fields["dueDate"]:
                changes["dueDate"] = None
            elif parsed:
                changes["dueDate"] = parsed.isoformat()
        if isinstance(fields.get("image"), str):
            changes["image"] = fields["image"]
        if isinstance(fields.get("isComplete"), bool):
            changes["isComplete"] = fields["isComplete"]
        if not changes:
            return

        completing = changes.get("isComplete") is True and not task.get("isComplete")
        with self._lock:
            task.update(changes)
            if "category" in changes and changes["category"] != group.name:
                del group.tasks[index]
                self._group_for(changes["category"]).tasks.insert(0, task)
        if completing:
            self._on_completed([task])
        self._enqueue(f"Saving task '{task['title']}'", self.api.update_task, task["id"], changes)

    def toggle_complete(self, task_id) -> bool:
        _, _, task = self._find_task(task_id)
        self.edit_task(task_id, isComplete=not task.get("isComplete"))
        return bool(task["isComplete"])

    def complete_all(self, group_index: Optional[int] = None) -> int:
        """Complete every open task of one group, or of the whole board."""
        groups = self.state.groups if group_index is None else [self._group(group_index)]
        done = []
        with self._lock:
            for group in groups:
                for task in group.tasks:
                    if not task.get("isComplete"):
                        task["isComplete"] = True
                        done.append(task)
        if done:
            self._on_completed(done)
        for task in done:
            self._enqueue(f"Completing task '{task['title']}'",
                          self.api.update_task, task["id"], {"isComplete": True})
        return len(done)

    def delete_task(self, task_id) -> None:
        group, index, task = self._find_task(task_id)
        with self._lock:
            del group.tasks[index]
        self._enqueue(f"Deleting task '{task['title']}'", self.api.delete_task, task["id"])

    def _on_completed(self, tasks: List[Dict[str, Any]]) -> None:
        today = as_date(self.today())
        if increment_streak_if_needed(self.state.streak, today):
            self.local.set(user_key("streak", self.state.user_id), self.state.streak.to_dict())
        early = [t for t in tasks if as_date(t.get("dueDate")) and as_date(t.get("dueDate")) > today]
        if early:
            self.notify("kudos", "Finished ahead of schedule, nice work!")

    # ---- category mutations

    def add_category(self, name: str) -> Optional[str]:
        name = (name or "").strip()
        if not name:
            self.notify("error", "Category name is required")
            return None
        local_id = self._next_local_id()
        with self._lock:
            group = next((g for g in self.state.groups if g.name == name and g.category_id is None), None)
            if group is None:
                group = Group(category_id=None, name=name, tasks=[])
                self.state.groups.append(group)
            group.category_id = local_id
        self._enqueue(f"Adding category '{name}'", self._create_category, local_id, name, group, resolve=False)
        return local_id

    def _create_category(self, local_id, name, group):
        record = self.api.create_category(name, self.state.user_id)
        if record and "id" in record:
            with self._lock:
                self._id_map[local_id] = record["id"]
                if group.category_id == local_id:
                    group.category_id = record["id"]

    def rename_category(self, group_index: int, new_name: str) -> None:
        group = self._group(group_index)
        new_name = (new_name or "").strip()
        if not new_name:
            self.notify("error", "Category name is required")
            return
        old_name = group.name
        if group.category_id is None:
            with self._lock:
                group.name = new_name
                for task in group.tasks:
                    task["category"] = new_name
            for task in group.tasks:
                self._enqueue(f"Moving task '{task['title']}'",
                              self.api.update_task, task["id"], {"category": new_name})
            return

        with self._lock:
            group.name = new_name
            # The server renames every task carrying the old name, whichever
            # duplicate category they were shown under
            moved = self._take_tasks(old_name)
            for task in moved:
                task["category"] = new_name
            self._group_for(new_name).tasks.extend(moved)
        self._enqueue(f"Renaming category '{old_name}'",
                      self.api.rename_category, group.category_id, new_name)

    def delete_category(self, group_index: int) -> None:
        with self._lock:
            group = self._group(group_index)
            del self.state.groups[group_index]
            if group.category_id is not None:
                self._take_tasks(group.name)
        if group.category_id is not None:
            self._enqueue(f"Deleting category '{group.name}'",
                          self.api.delete_category, group.category_id)
        else:
            # Orphan group: there is no category record, only its tasks
            for task in group.tasks:
                self._enqueue(f"Deleting task '{task['title']}'", self.api.delete_task, task["id"])

    def _take_tasks(self, category_name: str) -> List[Dict[str, Any]]:
        """Detach every task filed under ``category_name``, dropping emptied orphan groups."""
        taken = []
        for g in self.state.groups:
            keep = []
            for task in g.tasks:
                (taken if task.get("category") == category_name else keep).append(task)
            g.tasks = keep
        self.state.groups = [
            g for g in self.state.groups if g.category_id is not None or g.tasks
        ]
        return taken

    # ---- drag and drop (local order only, never persisted)

    def move_category(self, from_index: int, to_index: int) -> None:
        with self._lock:
            group = self._group(from_index)
            del self.state.groups[from_index]
            self.state.groups.insert(max(0, to_index), group)

    def move_task(self, group_index: int, from_index: int, to_index: int) -> None:
        with self._lock:
            tasks = self._group(group_index).tasks
            if not 0 <= from_index < len(tasks):
                raise IndexError(f"No task at position {from_index}")
            task = tasks.pop(from_index)
            tasks.insert(max(0, to_index), task)
