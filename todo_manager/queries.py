# PURPOSE: query engine for task listings, statistics and bulk operations.
#
# - TaskFilter turns optional filters into a list of SQLAlchemy clauses.
#   Values travel as bound parameters; user text is never spliced into SQL.
#   The page query and the count query are built from the same clause list.
# - PageRequest clamps page/limit instead of rejecting them.
# - Ordering: priority rank (high, medium, low), then newest first, then id.

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import case, func
from sqlalchemy.orm import Query, Session
from sqlalchemy.sql.elements import ColumnElement

from .db_models import MAX_ROW_ID, TaskDB, now_utc
from .domain import Priority
from .logging_utils import log_event

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# OFFSET + LIMIT must fit a signed 64-bit integer.
MAX_OFFSET = MAX_ROW_ID - MAX_LIMIT
# Search terms shorter than this (after trimming) are ignored rather than
# rejected: a one-letter substring match is noise, not an error.
MIN_SEARCH_LENGTH = 2


def normalize_search(term: str | None) -> str | None:
    if term is None:
        return None
    term = term.strip()
    if len(term) < MIN_SEARCH_LENGTH:
        if term:
            log_event(logger, "search_ignored", reason="too_short", term=term)
        return None
    return term


def _like_pattern(term: str) -> str:
    # escape LIKE wildcards so "%" and "_" match literally
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def priority_rank_expr() -> ColumnElement[int]:
    """SQL CASE mirroring Priority.rank so the DB sorts high < medium < low."""
    return case(
        {p.value: p.rank for p in Priority},
        value=TaskDB.priority,
        else_=len(Priority),
    )


def _apply_ordering(query: Query) -> Query:
    return query.order_by(priority_rank_expr().asc(), TaskDB.created_at.desc(), TaskDB.id.desc())


@dataclass(frozen=True)
class TaskFilter:
    """Listing filters for one owner; None means "no filter"."""

    owner_id: int
    completed: bool | None = None
    priority: Priority | None = None
    search: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "search", normalize_search(self.search))

    def clauses(self) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = [TaskDB.owner_id == self.owner_id]
        if self.completed is not None:
            clauses.append(TaskDB.completed.is_(self.completed))
        if self.priority is not None:
            clauses.append(TaskDB.priority == self.priority.value)
        if self.search:
            pattern = _like_pattern(self.search)
            clauses.append(
                TaskDB.title.ilike(pattern, escape="\\")
                | TaskDB.description.ilike(pattern, escape="\\")
            )
        return clauses

    @property
    def is_narrowed(self) -> bool:
        return self.completed is not None or self.priority is not None or bool(self.search)


@dataclass(frozen=True)
class PageRequest:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @classmethod
    def clamped(cls, page: int | None = None, limit: int | None = None) -> "PageRequest":
        """page < 1 becomes 1; limit outside [1, MAX_LIMIT] becomes DEFAULT_LIMIT.

        Pages whose offset would overflow the store's integer are pulled back
        to the last representable page, which is simply empty.
        """
        if page is None:
            page = DEFAULT_PAGE
        elif page < 1:
            log_event(logger, "page_clamped", requested=page, used=DEFAULT_PAGE)
            page = DEFAULT_PAGE
        if limit is None:
            limit = DEFAULT_LIMIT
        elif not 1 <= limit <= MAX_LIMIT:
            log_event(logger, "limit_clamped", requested=limit, used=DEFAULT_LIMIT)
            limit = DEFAULT_LIMIT
        last_page = MAX_OFFSET // limit + 1
        if page > last_page:
            log_event(logger, "page_clamped", requested=page, used=last_page)
            page = last_page
        return cls(page=page, limit=limit)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class TaskPage:
    items: list[TaskDB]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def pagination(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": self.total_pages,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


# --- Listing ---------------------------------------------------------------


def count_tasks(db: Session, filters: TaskFilter) -> int:
    """Total matching rows for the filters, ignoring pagination."""
    return int(db.query(func.count(TaskDB.id)).filter(*filters.clauses()).scalar() or 0)


def list_tasks(db: Session, filters: TaskFilter, page: PageRequest | None = None) -> TaskPage:
    """One page of the owner's tasks plus the unpaginated total."""
    page = page or PageRequest()
    query = _apply_ordering(db.query(TaskDB).filter(*filters.clauses()))
    items = query.offset(page.offset).limit(page.limit).all()
    total = count_tasks(db, filters)
    log_event(
        logger,
        "tasks_listed",
        owner_id=filters.owner_id,
        completed=filters.completed,
        priority=filters.priority.value if filters.priority else None,
        search=filters.search,
        page=page.page,
        limit=page.limit,
        returned=len(items),
        total=total,
        level=logging.DEBUG,
    )
    return TaskPage(items=items, page=page.page, limit=page.limit, total=total)


def find_pending(db: Session, owner_id: int, limit: int = DEFAULT_LIMIT) -> list[TaskDB]:
    """Pending tasks in listing order (most urgent first)."""
    query = db.query(TaskDB).filter(*TaskFilter(owner_id, completed=False).clauses())
    return _apply_ordering(query).limit(limit).all()


def find_recent_completed(db: Session, owner_id: int, limit: int = DEFAULT_LIMIT) -> list[TaskDB]:
    query = db.query(TaskDB).filter(*TaskFilter(owner_id, completed=True).clauses())
    return query.order_by(TaskDB.updated_at.desc(), TaskDB.id.desc()).limit(limit).all()


# --- Statistics ------------------------------------------------------------


def count_by_status(db: Session, owner_id: int) -> dict[str, int]:
    stats = task_stats(db, owner_id)
    return {"pending": stats["pending"], "completed": stats["completed"]}


def task_stats(db: Session, owner_id: int) -> dict[str, Any]:
    """Totals for one owner; every priority key is present even at zero."""
    rows = (
        db.query(TaskDB.priority, TaskDB.completed, func.count(TaskDB.id))
        .filter(TaskDB.owner_id == owner_id)
        .group_by(TaskDB.priority, TaskDB.completed)
        .all()
    )
    by_priority = {p.value: 0 for p in Priority}
    total = completed = 0
    for priority, is_completed, count in rows:
        by_priority[priority] = by_priority.get(priority, 0) + count
        total += count
        if is_completed:
            completed += count
    return {
        "total": total,
        "completed": completed,
        # derived, never counted separately
        "pending": total - completed,
        "by_priority": by_priority,
    }


# --- Bulk ops --------------------------------------------------------------


def delete_completed(db: Session, owner_id: int) -> int:
    """Delete every completed task of the owner; returns rows removed."""
    deleted = (
        db.query(TaskDB)
        .filter(TaskDB.owner_id == owner_id, TaskDB.completed.is_(True))
        .delete(synchronize_session=False)
    )
    db.commit()
    log_event(logger, "completed_tasks_deleted", owner_id=owner_id, deleted=deleted)
    return deleted


def mark_all_completed(db: Session, owner_id: int) -> int:
    """Mark every pending task of the owner completed; returns rows changed."""
    updated = (
        db.query(TaskDB)
        .filter(TaskDB.owner_id == owner_id, TaskDB.completed.is_(False))
        .update({"completed": True, "updated_at": now_utc()}, synchronize_session=False)
    )
    db.commit()
    log_event(logger, "tasks_marked_completed", owner_id=owner_id, updated=updated)
    return updated
