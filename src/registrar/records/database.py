"""SQLite engine and sessions for the records layer."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from registrar.records.models import Base

if TYPE_CHECKING:
    from sqlalchemy import Engine

MEMORY = ":memory:"

# Seconds a writer waits on a locked database before OperationalError
BUSY_TIMEOUT = 15


def _configure_connection(dbapi_connection: object, _connection_record: object) -> None:
    # Foreign keys stay unenforced: references are checked by the integrity maintainer
    cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=OFF")
    cursor.close()


class Database:
    """Lazily built engine and session factory for one SQLite file.

    Args:
        db_path: Database file, or ":memory:" for a single shared connection.
    """

    def __init__(self, db_path: str = "registrar.db") -> None:
        self.db_path = db_path
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            if self.db_path == MEMORY:
                # One connection, so every session sees the same in-memory tables
                engine = create_engine(
                    "sqlite://",
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
            else:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                engine = create_engine(
                    f"sqlite:///{self.db_path}",
                    connect_args={"check_same_thread": False, "timeout": BUSY_TIMEOUT},
                )
            event.listen(engine, "connect", _configure_connection)
            self._engine = engine
        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        return self._session_factory

    def get_session(self) -> Session:
        return self.session_factory()

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        """Drop every records table; used by the seeder to start clean."""
        Base.metadata.drop_all(self.engine)

    def _pragma(self, name: str) -> object:
        with self.engine.connect() as conn:
            return conn.execute(text(f"PRAGMA {name}")).scalar()

    def is_wal_mode(self) -> bool:
        return self._pragma("journal_mode") == "wal"

    def foreign_keys_enforced(self) -> bool:
        return bool(self._pragma("foreign_keys"))

    def close(self) -> None:
        """Dispose of the engine; the next access builds a fresh one."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
