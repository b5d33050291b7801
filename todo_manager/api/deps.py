from __future__ import annotations

from collections.abc import Iterator

from fastapi import Query, Request
from sqlalchemy.orm import Session

from ..config import Settings
from ..domain import Priority
from ..exceptions import ValidationError

_TRUE = ("true", "1")
_FALSE = ("false", "0")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Iterator[Session]:
    """Yield a per-request session from the app's Database handle."""
    db = request.app.state.database.session_factory()
    try:
        yield db
    finally:
        db.close()


def parse_completed(completed: str | None = Query(None)) -> bool | None:
    """Tri-state completion filter: absent, true or false."""
    if completed is None or completed == "":
        return None
    value = completed.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValidationError(
        "Invalid completed filter",
        [f'Completed filter "{completed}" is not valid. Use: true, false'],
    )


def parse_priority(priority: str | None = Query(None)) -> Priority | None:
    if priority is None or priority == "":
        return None
    try:
        return Priority.parse(priority)
    except ValueError as err:
        raise ValidationError("Invalid priority filter", [str(err)]) from err


def _lenient_int(raw: str | None) -> int | None:
    # non-numeric page/limit fall back to defaults like out-of-range ones
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def parse_page(page: str | None = Query(None)) -> int | None:
    return _lenient_int(page)


def parse_limit(limit: str | None = Query(None)) -> int | None:
    return _lenient_int(limit)
