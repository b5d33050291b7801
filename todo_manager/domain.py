"""Domain vocabulary for tasks: priority ordering, partial-update values
and the overdue completion rule.

Update inputs distinguish three states per field:

* ``UNSET``       -- the field was not supplied; leave the column alone.
* ``CLEAR``       -- the field was supplied empty; store NULL.
* ``SetTo(v)``    -- the field was supplied with a value.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class Priority(str, Enum):
    """Priority level for a task; declaration order is display order."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank: high (0) < medium (1) < low (2)."""
        return _PRIORITY_RANK[self]

    @classmethod
    def values(cls) -> list[str]:
        return [p.value for p in cls]

    @classmethod
    def parse(cls, raw: str) -> "Priority":
        """Strict lookup by value; raises ValueError for anything else."""
        try:
            return cls(raw)
        except ValueError:
            raise ValueError(
                f'Priority "{raw}" is not valid. Use: {", ".join(cls.values())}'
            ) from None


_PRIORITY_RANK = {p: i for i, p in enumerate(Priority)}


def priority_sort_key(priority: Priority | str) -> int:
    return Priority(priority).rank


class _Marker:
    __slots__ = ("_name",)

    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Marker("UNSET")
CLEAR: Any = _Marker("CLEAR")


@dataclass(frozen=True)
class SetTo(Generic[T]):
    value: T


FieldChange = Union[_Marker, SetTo[T]]


@dataclass(frozen=True)
class TaskPatch:
    """Partial update of a task. Only title/priority/completed cannot be cleared."""

    title: FieldChange[str] = UNSET
    description: FieldChange[str] = UNSET
    completed: FieldChange[bool] = UNSET
    priority: FieldChange[Priority] = UNSET
    due_date: FieldChange[datetime] = UNSET

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is UNSET for f in fields(self))

    def changed_fields(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) is not UNSET]

    def column_values(self) -> dict[str, Any]:
        """Column -> new value for every supplied field (CLEAR becomes None)."""
        values: dict[str, Any] = {}
        for name in self.changed_fields():
            change = getattr(self, name)
            if change is CLEAR:
                values[name] = None
            else:
                value = change.value
                values[name] = value.value if isinstance(value, Priority) else value
        return values


def today_utc() -> date:
    return datetime.now(UTC).date()


def is_overdue(due_date: datetime | None, today: date | None = None) -> bool:
    """A task is overdue when its due *day* is strictly before today."""
    if due_date is None:
        return False
    return due_date.date() < (today or today_utc())
