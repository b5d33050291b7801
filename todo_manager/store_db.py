# PURPOSE: task store. Single-row create/read/update/delete, every one of
# them scoped by owner.
#
# Ownership rule: every statement filters on id AND owner_id. A row that
# belongs to someone else is indistinguishable from a missing row; both
# raise NotFoundError("Task not found").

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.orm import Query, Session

from .db_models import TaskDB, now_utc
from .domain import UNSET, SetTo, TaskPatch, is_overdue
from .exceptions import DomainRuleError, NotFoundError, ValidationError
from .logging_utils import log_event
from .models import TaskCreate

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Task not found"
OVERDUE_MESSAGE = "Overdue task cannot be completed"


def _not_found() -> NotFoundError:
    return NotFoundError(TASK_NOT_FOUND, ["The task does not exist or is not accessible"])


def owned(db: Session, task_id: int, owner_id: int) -> Query:
    """Query for one task by id, restricted to its owner."""
    return db.query(TaskDB).filter(TaskDB.id == task_id, TaskDB.owner_id == owner_id)


# --- CRUD: Tasks -----------------------------------------------------------


def get_task(db: Session, task_id: int, *, owner_id: int) -> TaskDB:
    row = owned(db, task_id, owner_id).one_or_none()
    if row is None:
        raise _not_found()
    return row


def create_task(db: Session, data: TaskCreate, *, owner_id: int) -> TaskDB:
    """Insert a task for owner_id and return the row as persisted."""
    row = TaskDB(
        title=data.title,
        description=data.description,
        completed=data.completed,
        priority=data.priority.value,
        due_date=data.due_date,
        owner_id=owner_id,
    )
    db.add(row)
    db.commit()
    log_event(logger, "task_created", task_id=row.id, owner_id=owner_id, priority=row.priority)
    # re-read: timestamps and defaults are assigned by the store
    return get_task(db, row.id, owner_id=owner_id)


def update_task(
    db: Session,
    task_id: int,
    patch: TaskPatch,
    *,
    owner_id: int,
    today: date | None = None,
) -> TaskDB:
    """Apply a partial update; fields left UNSET are not touched.

    Raises ValidationError for an empty patch, NotFoundError when the task is
    missing or not owned, DomainRuleError when completing an overdue task.
    """
    if patch.is_empty():
        raise ValidationError(
            "No valid fields to update",
            ["Provide at least one field: title, description, completed, priority, due_date"],
        )

    current = get_task(db, task_id, owner_id=owner_id)
    if isinstance(patch.completed, SetTo) and patch.completed.value and not current.completed:
        # judge against the due date the task will have after this update
        due = current.due_date
        if patch.due_date is not UNSET:
            due = patch.due_date.value if isinstance(patch.due_date, SetTo) else None
        if is_overdue(due, today):
            log_event(
                logger,
                "overdue_completion_rejected",
                level=logging.WARNING,
                task_id=task_id,
                owner_id=owner_id,
            )
            raise DomainRuleError(OVERDUE_MESSAGE, ["The due date has passed"])

    values = patch.column_values()
    values["updated_at"] = now_utc()
    changed = owned(db, task_id, owner_id).update(values, synchronize_session=False)
    if changed == 0:
        # deleted between the read above and this write
        db.rollback()
        raise _not_found()
    db.commit()
    log_event(
        logger,
        "task_updated",
        task_id=task_id,
        owner_id=owner_id,
        fields=",".join(patch.changed_fields()),
    )
    return get_task(db, task_id, owner_id=owner_id)


def toggle_task(db: Session, task_id: int, *, owner_id: int, today: date | None = None) -> TaskDB:
    """Flip completion: a read followed by an ordinary update."""
    current = get_task(db, task_id, owner_id=owner_id)
    return update_task(
        db,
        task_id,
        TaskPatch(completed=SetTo(not current.completed)),
        owner_id=owner_id,
        today=today,
    )


def delete_task(db: Session, task_id: int, *, owner_id: int) -> None:
    deleted = owned(db, task_id, owner_id).delete(synchronize_session=False)
    if deleted == 0:
        db.rollback()
        raise _not_found()
    db.commit()
    log_event(logger, "task_deleted", task_id=task_id, owner_id=owner_id)
