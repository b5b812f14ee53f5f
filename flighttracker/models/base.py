"""
SQLAlchemy base configuration and storage handle.

Uses SQLAlchemy 2.0 style with type hints and declarative base.
Each `Database` owns its own engine and session factory, so several
independent stores can be open in the same process (e.g. in tests).
"""

import logging
import threading
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from flighttracker.errors import StorageError

logger = logging.getLogger(__name__)

MEMORY_PATH = ':memory:'


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _set_sqlite_pragma(dbapi_connection, connection_record):
    """
    Configure SQLite for concurrent ingestion and queries.

    WAL mode allows reads to proceed while the ingestion tick writes.
    Foreign keys must be enabled per connection for trail cascades.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA journal_mode=WAL')
    cursor.execute('PRAGMA synchronous=NORMAL')
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()


class Database:
    """
    Handle to one persistent flight store.

    Usage:
        db = init_store('./data/flights.db')
        with db.transaction() as session:
            session.execute(...)
        close_store(db)
    """

    def __init__(self, path: str, echo: bool = False):
        self.path = path
        self._engine: Optional[Engine] = self._create_engine(path, echo)
        event.listen(self._engine, 'connect', _set_sqlite_pragma)

        self._session_factory = sessionmaker(
            bind=self._engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
        # SQLite allows a single writer; serialize writers in-process
        # instead of spinning on SQLITE_BUSY.
        self._write_lock = threading.RLock()

    @staticmethod
    def _create_engine(path: str, echo: bool) -> Engine:
        if path == MEMORY_PATH:
            # One shared connection, otherwise every session sees an empty database
            return create_engine(
                'sqlite://',
                echo=echo,
                connect_args={'check_same_thread': False},
                poolclass=StaticPool,
            )

        Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        return create_engine(
            f'sqlite:///{path}',
            echo=echo,
            connect_args={'check_same_thread': False, 'timeout': 30},
        )

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StorageError(f'Store at {self.path} is closed')
        return self._engine

    def create_schema(self) -> None:
        """Create all tables and indexes if they don't exist."""
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise StorageError(f'Failed to initialize schema: {e}') from e

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions.

        Automatically handles commit/rollback and session cleanup.
        Database failures surface as StorageError.
        """
        if not self.is_open:
            raise StorageError(f'Store at {self.path} is closed')

        # In-memory stores share one connection; no session may overlap an open write
        guard = self._write_lock if self.path == MEMORY_PATH else nullcontext()
        with guard:
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise StorageError(str(e)) from e
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """Session for a write that must be applied all-or-nothing."""
        with self._write_lock:
            with self.session() as session:
                yield session

    def close(self) -> None:
        """Release the engine. Closing twice is a no-op."""
        if self._engine is None:
            return
        with self._write_lock:
            self._engine.dispose()
            self._engine = None
        logger.info(f'Closed store at {self.path}')


def init_store(path: str, echo: bool = False) -> Database:
    """
    Open (or create) the store at `path` and ensure the schema exists.

    Pass ':memory:' for a private in-memory store.
    """
    try:
        db = Database(path, echo=echo)
    except SQLAlchemyError as e:
        raise StorageError(f'Failed to open store at {path}: {e}') from e
    except OSError as e:
        raise StorageError(f'Failed to create store directory for {path}: {e}') from e

    db.create_schema()
    logger.info(f'Opened store at {path}')
    return db


def close_store(db: Database) -> None:
    """Release the storage handle."""
    db.close()
