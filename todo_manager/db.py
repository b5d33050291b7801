# PURPOSE: the store handle. One Database owns one Engine + Session factory;
# it is built by create_app() and shared through app.state, never imported
# as a module global.

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .logging_utils import log_event

logger = logging.getLogger(__name__)

# Base: parent class for all ORM models (tables)
Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores FOREIGN KEY / ON DELETE CASCADE unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Engine and session factory for one DATABASE_URL."""

    def __init__(self, url: str, *, echo: bool = False):
        self.url = url
        is_sqlite = url.startswith("sqlite")
        # SQLite-specific connect_args only when needed (FastAPI uses a threadpool)
        connect_args = {"check_same_thread": False} if is_sqlite else {}
        self.engine: Engine = create_engine(url, connect_args=connect_args, echo=echo)
        if is_sqlite:
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        # Sessions are opened/closed per request by api.deps.get_db
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session scope for work outside a request: commit on success, rollback on error."""
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def create_schema(self) -> None:
        """Create all tables and indexes in a single transaction.

        engine.begin() commits when every statement succeeded and rolls back
        on the first failure, so a half-built schema is never left behind.
        """
        from . import db_models  # noqa: F401  (register tables on Base.metadata)

        with self.engine.begin() as conn:
            Base.metadata.create_all(bind=conn)
        log_event(logger, "schema_ready", tables=",".join(sorted(Base.metadata.tables)))

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as exc:
            log_event(logger, "database_ping_failed", level=logging.ERROR, error=exc)
            return False

    def dispose(self) -> None:
        self.engine.dispose()
