from datetime import date, datetime

import pytest
from pydantic import ValidationError

from todo_manager.domain import CLEAR, UNSET, Priority, SetTo, TaskPatch, is_overdue, priority_sort_key
from todo_manager.models import TaskCreate, TaskUpdate


def test_priority_order_and_parse():
    assert sorted(["low", "high", "medium"], key=priority_sort_key) == ["high", "medium", "low"]
    assert Priority.parse("medium") is Priority.MEDIUM
    with pytest.raises(ValueError):
        Priority.parse("HIGH")


def test_update_body_to_patch_tri_state():
    patch = TaskUpdate.model_validate({"due_date": "", "completed": True}).to_patch()
    assert patch.due_date is CLEAR
    assert patch.completed == SetTo(True)
    assert patch.title is UNSET
    assert patch.changed_fields() == ["completed", "due_date"]
    assert patch.column_values() == {"completed": True, "due_date": None}

    untouched = TaskUpdate.model_validate({"title": "x"}).to_patch()
    assert untouched.due_date is UNSET
    assert untouched.column_values() == {"title": "x"}


def test_patch_empty_and_priority_values():
    assert TaskPatch().is_empty()
    patch = TaskPatch(priority=SetTo(Priority.HIGH))
    assert not patch.is_empty()
    assert patch.column_values() == {"priority": "high"}


def test_due_date_parsing():
    body = TaskCreate(title="t", due_date="2026-05-01")
    assert body.due_date == datetime(2026, 5, 1)
    aware = TaskCreate(title="t", due_date="2026-05-01T10:00:00+02:00")
    assert aware.due_date == datetime(2026, 5, 1, 8, 0)
    assert TaskCreate(title="t", due_date="").due_date is None
    with pytest.raises(ValidationError):
        TaskCreate(title="t", due_date="tomorrow")


def test_is_overdue_day_granularity():
    today = date(2026, 5, 2)
    assert is_overdue(datetime(2026, 5, 1, 23, 59), today)
    assert not is_overdue(datetime(2026, 5, 2, 0, 0), today)
    assert not is_overdue(datetime(2026, 5, 3), today)
    assert not is_overdue(None, today)
