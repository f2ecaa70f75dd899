"""Durable record store: the source of truth for short path mappings.

``RecordStore`` establishes the contract every durable backend must honour;
``SQLRecordStore`` implements it on top of the SQLAlchemy async ORM.

Contract
========
::
    insert(record)                        -> None   (DuplicateKeyError if key exists)
    find_by_short_path(short_path)        -> LinkRecord | None   (no expiry filtering)
    find_live_by_original_url(url, now)   -> LinkRecord | None
    delete(short_path)                    -> None   (idempotent)
    delete_all_expired(now)               -> int    (rows removed)
    purge()                               -> int    (rows removed)
    ping()                                -> None

Key Behaviours
===============
- The store never interprets expiry on point lookups; stale rows stay visible
  so the caller can delete them explicitly.
- The primary key constraint on ``short_path`` is the final authority for
  uniqueness; an insert that loses a race raises ``DuplicateKeyError``.
- Each call opens and closes its own session, so the store is safe to share
  between concurrent requests and the background sweeper.
- Any other database failure surfaces as ``StoreUnavailableError``.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import delete, or_, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortlinks.exceptions import DuplicateKeyError, StoreUnavailableError
from shortlinks.models import ShortLink
from shortlinks.schemas import LinkRecord

__all__ = ["RecordStore", "SQLRecordStore"]

logger = logging.getLogger("shortlinks")


class RecordStore(ABC):
    """Interface for durable record stores."""

    @abstractmethod
    async def insert(self, record: LinkRecord) -> None:
        """Insert a new record.

        Raises:
            DuplicateKeyError: If a record (live or stale) already occupies ``short_path``.
            StoreUnavailableError: If there is an error in the data store.
        """

    @abstractmethod
    async def find_by_short_path(self, short_path: str) -> LinkRecord | None:
        """Exact-match lookup by key, expired rows included."""

    @abstractmethod
    async def find_live_by_original_url(self, original_url: str, now: int) -> LinkRecord | None:
        """Return a record for ``original_url`` whose expiry is null or after ``now``."""

    @abstractmethod
    async def delete(self, short_path: str) -> None:
        """Remove a record. No error if it is absent."""

    @abstractmethod
    async def delete_all_expired(self, now: int) -> int:
        """Bulk-remove every record with a non-null ``expires_at <= now``."""

    @abstractmethod
    async def purge(self) -> int:
        """Remove every record."""

    @abstractmethod
    async def ping(self) -> None:
        """Raise StoreUnavailableError if the store cannot be reached."""


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except (SQLAlchemyError, OSError) as exc:
        logger.error(f"Durable store {operation} failed: {exc}")
        raise StoreUnavailableError(f"Durable store {operation} failed") from exc


class SQLRecordStore(RecordStore):
    """RecordStore backed by the ``urls`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def insert(self, record: LinkRecord) -> None:
        with _store_errors("insert"):
            async with self._session_factory() as session:
                session.add(ShortLink.from_record(record))
                try:
                    await session.commit()
                except IntegrityError as exc:
                    await session.rollback()
                    raise DuplicateKeyError(f"Short path '{record.short_path}' already exists") from exc

    async def find_by_short_path(self, short_path: str) -> LinkRecord | None:
        with _store_errors("lookup"):
            async with self._session_factory() as session:
                row = await session.get(ShortLink, short_path)
                return row.to_record() if row is not None else None

    async def find_live_by_original_url(self, original_url: str, now: int) -> LinkRecord | None:
        stmt = (
            select(ShortLink)
            .where(ShortLink.original_url == original_url)
            .where(or_(ShortLink.expires_at.is_(None), ShortLink.expires_at > now))
            .order_by(ShortLink.created_at.desc())
            .limit(1)
        )
        with _store_errors("dedup lookup"):
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                row = result.scalar_one_or_none()
                return row.to_record() if row is not None else None

    async def delete(self, short_path: str) -> None:
        with _store_errors("delete"):
            async with self._session_factory() as session:
                await session.execute(delete(ShortLink).where(ShortLink.short_path == short_path))
                await session.commit()

    async def delete_all_expired(self, now: int) -> int:
        stmt = delete(ShortLink).where(ShortLink.expires_at.is_not(None)).where(ShortLink.expires_at <= now)
        with _store_errors("expiry sweep"):
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
                return result.rowcount or 0

    async def purge(self) -> int:
        with _store_errors("purge"):
            async with self._session_factory() as session:
                result = await session.execute(delete(ShortLink))
                await session.commit()
                return result.rowcount or 0

    async def ping(self) -> None:
        with _store_errors("ping"):
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
