# PURPOSE: credential store. Identity rows keyed by id, unique by email.
# Uniqueness is enforced by the users.email index; IntegrityError is
# translated to ConflictError here so routers never see raw DB errors.

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db_models import UserDB
from .exceptions import ConflictError
from .logging_utils import log_event

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "This email is already registered"


def get_user(db: Session, user_id: int) -> UserDB | None:
    return db.get(UserDB, user_id)


def get_user_by_email(db: Session, email: str) -> UserDB | None:
    return db.query(UserDB).filter(UserDB.email == email).one_or_none()


def _commit_or_conflict(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(EMAIL_TAKEN, ["Email already in use"]) from exc


def create_user(db: Session, *, name: str, email: str, password_hash: str) -> UserDB:
    """Insert a new identity; duplicate email -> ConflictError."""
    if get_user_by_email(db, email) is not None:
        raise ConflictError(EMAIL_TAKEN, ["Email already in use"])
    user = UserDB(name=name, email=email, password_hash=password_hash)
    db.add(user)
    # a concurrent register can still win the race; the unique index decides
    _commit_or_conflict(db)
    db.refresh(user)
    log_event(logger, "user_registered", user_id=user.id)
    return user


def update_profile(
    db: Session, user: UserDB, *, name: str | None = None, email: str | None = None
) -> UserDB:
    if email is not None and email != user.email:
        other = get_user_by_email(db, email)
        if other is not None and other.id != user.id:
            raise ConflictError("This email is already in use", ["Email already in use"])
        user.email = email
    if name is not None:
        user.name = name
    _commit_or_conflict(db)
    db.refresh(user)
    log_event(logger, "profile_updated", user_id=user.id)
    return user


def set_password_hash(db: Session, user: UserDB, password_hash: str) -> None:
    user.password_hash = password_hash
    db.commit()
    log_event(logger, "password_changed", user_id=user.id)
