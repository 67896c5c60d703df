"""
Database engine and session management.

One DatabaseManager per process owns the engine. The API, the Celery
workers and the tests all go through the module-level `db` object:

    from badge_core.db import db

    db.initialize()
    with db.session() as session:
        repository = session.query(Repository).first()

Awards, badges, memberships and webhook deliveries are inserted inside
SAVEPOINTs (session.begin_nested) so a unique-constraint conflict undoes
only that insert. SQLite needs explicit BEGIN handling for this to work,
which `_enable_sqlite_savepoints` installs.
"""

import time
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, Optional

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from .config import Settings, get_settings


class Base(DeclarativeBase):
    pass


def _engine_options(url: str, settings: Settings) -> dict[str, Any]:
    if url.startswith("sqlite"):
        # One shared connection; in-memory databases vanish with their connection
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {
        "poolclass": QueuePool,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": settings.db_pool_pre_ping,
    }


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """pysqlite defers BEGIN on its own, which breaks nested transactions."""

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class DatabaseManager:
    """Process-wide engine and session factory."""

    _instance: Optional["DatabaseManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "DatabaseManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def initialize(self, database_url: str | None = None) -> None:
        """
        Create the engine and session factory. Later calls are ignored until reset().

        Args:
            database_url: Overrides DATABASE_URL, e.g. "sqlite://" in tests.
        """
        if self._initialized:
            return

        settings = get_settings()
        url = database_url or settings.database_url

        self.engine = create_engine(url, echo=settings.database_echo, **_engine_options(url, settings))
        if self.engine.dialect.name == "sqlite":
            _enable_sqlite_savepoints(self.engine)

        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )
        self._initialized = True

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def create_all_tables(self) -> None:
        """Create missing tables. Production schemas are managed by Alembic."""
        self._ensure_initialized()
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Session that commits on success and rolls back on any exception."""
        self._ensure_initialized()
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_session(self) -> Session:
        """Unmanaged session; the caller commits and closes it."""
        self._ensure_initialized()
        return self.SessionLocal()

    def health_check(self) -> dict[str, Any]:
        """Round-trip a trivial query. Returns healthy, latency_ms and error."""
        if not self._initialized:
            return {"healthy": False, "latency_ms": 0, "error": "Database not initialized"}

        start = time.perf_counter()
        error = None
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            error = str(exc)
        latency_ms = round((time.perf_counter() - start) * 1000, 2)
        return {"healthy": error is None, "latency_ms": latency_ms, "error": error}

    def reset(self) -> None:
        """Dispose the engine so initialize() can run again (tests)."""
        engine = getattr(self, "engine", None)
        if engine is not None:
            engine.dispose()
            self.engine = None
        self._initialized = False

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("DatabaseManager not initialized. Call initialize() first.")


db = DatabaseManager()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, committed when the handler returns."""
    with db.session() as session:
        yield session


__all__ = ["Base", "DatabaseManager", "db", "get_db"]
