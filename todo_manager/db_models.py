# PURPOSE: define how User and Task rows look in the database.

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base
from .domain import Priority

# Largest value a SQLite/Postgres signed 64-bit INTEGER column can hold.
MAX_ROW_ID = 2**63 - 1


def now_utc():
    """Return timezone-aware UTC datetime (stored in DB)."""
    return datetime.now(UTC)


class UserDB(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, onupdate=now_utc)

    # DB-level ON DELETE CASCADE does the work; the ORM only has to not interfere
    tasks = relationship(
        "TaskDB",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class TaskDB(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint(
            "priority IN (" + ", ".join(f"'{v}'" for v in Priority.values()) + ")",
            name="ck_tasks_priority",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default=Priority.MEDIUM.value)
    due_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    # owner is bound at creation and never reassigned
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, onupdate=now_utc)

    owner = relationship("UserDB", back_populates="tasks")


# Indexes backing the listing filters
Index("ix_tasks_owner_id", TaskDB.owner_id)
Index("ix_tasks_completed", TaskDB.completed)
Index("ix_tasks_priority", TaskDB.priority)
Index("ix_tasks_due_date", TaskDB.due_date)
