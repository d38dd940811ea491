"""Audio Store - Database engine, session management and metadata store.

SQLAlchemy sync engine/session factory for SQLite, plus MetadataStore, the
async facade every request goes through. SQLite gives us a single writer, so
the store serializes all operations behind one asyncio.Lock; the blocking
SQLAlchemy call itself runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from sqlalchemy import Engine, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from audio_store.config import get_db_path
from audio_store.errors import StoreError
from audio_store.models import Base, FileRow
from audio_store.schemas import FileRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_database_url(db_path: str | Path | None = None) -> str:
    """Get SQLite database URL.

    Args:
        db_path: Optional path override. Defaults to config.get_db_path().

    Returns:
        SQLite connection URL string.
    """
    path = db_path if db_path is not None else get_db_path()
    return f"sqlite:///{path}"


def create_db_engine(db_path: str | Path | None = None, echo: bool = False) -> Engine:
    """Create SQLAlchemy engine.

    Args:
        db_path: Optional path override for the database file.
        echo: If True, log all SQL statements.

    Returns:
        SQLAlchemy Engine instance.
    """
    url = get_database_url(db_path)
    return create_engine(
        url,
        echo=echo,
        # Sessions are opened inside worker threads (see MetadataStore._run),
        # never shared between them.
        connect_args={"check_same_thread": False},
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the given engine.

    Args:
        engine: SQLAlchemy Engine instance.

    Returns:
        Configured sessionmaker.
    """
    # - autoflush=False: explicit flush control
    # - expire_on_commit=False: rows stay readable after the session closes
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(
    db_path: str | Path | None = None, echo: bool = False
) -> tuple[Engine, sessionmaker]:
    """Initialize the database: create engine, session factory, and all tables.

    This is idempotent - safe to call multiple times.

    Args:
        db_path: Optional path override for the database file.
        echo: If True, log all SQL statements.

    Returns:
        Tuple of (engine, SessionFactory).
    """
    engine = create_db_engine(db_path, echo=echo)
    SessionFactory = create_session_factory(engine)

    Base.metadata.create_all(engine)

    return engine, SessionFactory


# --- Metadata Store ---


async def _wait_for_thread(future: asyncio.Future) -> None:
    """Wait until ``future`` is done, ignoring further cancellation requests.

    The outcome is retrieved so a failure does not go unreported.
    """
    while not future.done():
        try:
            await asyncio.shield(future)
        except asyncio.CancelledError:
            continue
        except Exception:
            break
    if not future.cancelled() and future.exception() is not None:
        logger.error("Cancelled metadata store call failed: %s", future.exception())


class MetadataStore:
    """Serialized CRUD access to the ``files`` table.

    Every public operation holds the store lock for its whole duration, so
    at most one database operation is in flight per store, no matter how
    many requests are waiting. A cancelled caller keeps the lock until its
    worker thread returns. Failures surface as StoreError.

    Args:
        session_factory: sessionmaker from init_db().
    """

    FILTERABLE_ATTRIBUTES = {
        "file_name": FileRow.file_name,
        "file_type": FileRow.file_type,
        "file_upload_date": FileRow.file_upload_date,
    }

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._lock = asyncio.Lock()

    async def insert(self, record: FileRecord) -> None:
        """Append a row for ``record``. Duplicate names are allowed."""
        await self._run("insert", self._insert_sync, record)

    async def list_names(self) -> list[str]:
        """All stored file names, in insertion order."""
        return await self._run("list_names", self._list_names_sync)

    async def find_by(self, attribute: str, value: Any) -> list[FileRecord]:
        """Records whose ``attribute`` equals ``value``.

        Args:
            attribute: One of file_name, file_type, file_upload_date.
            value: Value to compare against.

        Returns:
            Matching records; empty when nothing matches.

        Raises:
            ValueError: If attribute is not filterable.
            StoreError: If the query fails.
        """
        column = self.FILTERABLE_ATTRIBUTES.get(attribute)
        if column is None:
            raise ValueError(f"Cannot filter on unknown attribute {attribute!r}")
        return await self._run("find_by", self._find_by_sync, column, value)

    async def _run(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        async with self._lock:
            future = asyncio.ensure_future(asyncio.to_thread(fn, *args))
            try:
                return await asyncio.shield(future)
            except asyncio.CancelledError:
                # The worker thread cannot be interrupted; hold the lock until it returns
                await _wait_for_thread(future)
                logger.warning(
                    "Metadata store %s cancelled; waited for the running call", operation
                )
                raise
            except SQLAlchemyError as e:
                logger.error("Metadata store %s failed: %s", operation, e)
                raise StoreError(f"{operation} failed: {e}") from e

    # --- Blocking implementations (run in a worker thread under the lock) ---

    def _insert_sync(self, record: FileRecord) -> None:
        with self._session_factory() as session:
            session.add(
                FileRow(
                    file_name=record.file_name,
                    file_type=record.file_type,
                    file_upload_date=record.file_upload_date,
                )
            )
            session.commit()

    def _list_names_sync(self) -> list[str]:
        with self._session_factory() as session:
            stmt = select(FileRow.file_name).order_by(FileRow.id)
            return list(session.execute(stmt).scalars())

    def _find_by_sync(self, column, value: Any) -> list[FileRecord]:
        with self._session_factory() as session:
            stmt = select(FileRow).where(column == value).order_by(FileRow.id)
            rows = session.execute(stmt).scalars()
            return [FileRecord.model_validate(row) for row in rows]
