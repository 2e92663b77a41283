"""
Tests for the board filter and search predicate.
"""
from datetime import date

import pytest

from board_filter import as_date, matches_query, passes_filter, task_visible

TODAY = "2024-01-10"


def task(**overrides):
    base = {"title": "Write report", "priority": "medium", "isComplete": False, "dueDate": None}
    base.update(overrides)
    return base


@pytest.mark.parametrize("tag,expected", [
    ("overdue", True),
    ("all", True),
    ("pending", True),
    ("completed", False),
    ("current", False),
    ("high", False),
])
def test_yesterdays_open_task(tag, expected):
    t = task(dueDate="2024-01-09")
    assert passes_filter(t, TODAY, tag) is expected


def test_current_means_due_today_and_open():
    assert passes_filter(task(dueDate=TODAY), TODAY, "current")
    assert not passes_filter(task(dueDate=TODAY, isComplete=True), TODAY, "current")
    assert not passes_filter(task(dueDate="2024-01-11"), TODAY, "current")


def test_completed_task_is_never_overdue():
    assert not passes_filter(task(dueDate="2020-01-01", isComplete=True), TODAY, "overdue")
    assert not passes_filter(task(), TODAY, "overdue")


def test_high_ignores_completion():
    assert passes_filter(task(priority="high", isComplete=True), TODAY, "high")


def test_search_is_case_insensitive_over_all_fields():
    t = task(dueDate="2024-01-09", priority="high")
    assert matches_query(t, "Work", "REPORT")
    assert matches_query(t, "Work", "hig")
    assert matches_query(t, "Work", "2024-01-09")
    assert matches_query(t, "Work", "work")
    assert not matches_query(t, "Work", "groceries")
    assert matches_query(t, "Work", "   ")


def test_visibility_needs_both_stages():
    t = task(dueDate="2024-01-09")
    assert task_visible(t, "Home", TODAY, "overdue", "report")
    assert not task_visible(t, "Home", TODAY, "overdue", "taxes")
    assert not task_visible(t, "Home", TODAY, "completed", "report")


def test_accepts_dates_and_datetimes():
    assert passes_filter(task(dueDate="2024-01-09T00:00:00.000Z"), date(2024, 1, 10), "overdue")
    assert as_date("not a date") is None
    assert as_date(None) is None


def test_search_does_not_match_across_field_boundaries():
    t = task(title="Buy milk", priority="high")
    assert matches_query(t, "Home", "milk high")
    assert not matches_query(t, "Home", "milkhigh")
