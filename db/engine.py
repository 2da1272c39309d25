"""
db.engine - Store handle: engine bootstrap, session factory, transactions.

One Store is built at process start (see main.create_app) and handed to
whoever needs the database.  The connection string can be swapped to
Postgres by changing config.DB_URL; no other code needs to change.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.models import Base

logger = logging.getLogger(__name__)


class Store:
    """Process-wide database handle with an explicit open/close lifecycle."""

    def __init__(self, db_url: str, *, timeout: float = 5.0):
        self.db_url = db_url
        self.timeout = timeout
        self._engine: Engine | None = None
        self._SessionLocal: sessionmaker | None = None

    # ── Lifecycle ──────────────────────────────────────────────────────

    def open(self) -> "Store":
        """Create the engine, apply SQLite pragmas, and emit CREATE TABLE."""
        self._engine = create_engine(
            self.db_url, echo=False, future=True,
            connect_args=self._connect_args(),
        )

        if self.is_sqlite:
            @event.listens_for(self._engine, "connect")
            def _sqlite_pragmas(dbapi_conn, _rec):
                cur = dbapi_conn.cursor()
                cur.execute("PRAGMA journal_mode=WAL")
                cur.execute("PRAGMA foreign_keys=ON")
                cur.execute("PRAGMA synchronous=NORMAL")
                cur.close()

        Base.metadata.create_all(self._engine)
        self._SessionLocal = sessionmaker(bind=self._engine, expire_on_commit=False)
        logger.info(f"Store opened: {self._engine.url.render_as_string(hide_password=True)}")
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Store closed")
        self._engine = None
        self._SessionLocal = None

    def _connect_args(self) -> dict:
        if self.is_sqlite:
            # busy timeout bounds how long a writer waits on a locked db
            return {"timeout": self.timeout, "check_same_thread": False}
        if self.db_url.startswith("postgresql"):
            return {
                "connect_timeout": max(1, int(self.timeout)),
                "options": f"-c statement_timeout={int(self.timeout * 1000)}",
            }
        return {}

    # ── Accessors ──────────────────────────────────────────────────────

    @property
    def is_sqlite(self) -> bool:
        return self.db_url.startswith("sqlite")

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Store not opened - call open() first")
        return self._engine

    def session(self) -> Session:
        """Return a new session.  Caller is responsible for .close()."""
        if self._SessionLocal is None:
            raise RuntimeError("Store not opened - call open() first")
        return self._SessionLocal()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Session bracketed by one transaction.

        Commits when the block exits normally, rolls back on any
        exception (which is re-raised), and always closes the session.
        """
        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
