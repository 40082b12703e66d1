"""PostgreSQL implementation of ``MappingStore``.

Each call opens a session from the shared pool, runs a single statement and
closes it; the statement is the transaction boundary, so a failed call leaves
no partial state. Every call is bounded by ``STORE_TIMEOUT_SECONDS``.

Statements
==========
::
    create    INSERT INTO urls (short_code, long_url) VALUES (...)
              ON CONFLICT (short_code) DO NOTHING RETURNING id
    find      SELECT ... WHERE short_code = :code
    delete    DELETE FROM urls WHERE short_code = :code RETURNING short_code
    list_all  SELECT ... ORDER BY created_at DESC
"""

import asyncio
import logging

from sqlalchemy import delete, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shorturl.enums import CreateOutcome
from shorturl.exceptions import StoreUnavailableError
from shorturl.models import UrlMapping
from shorturl.schemas import UrlMappingRecord
from shorturl.storage import MappingStore

__all__ = ["SqlMappingStore", "insert_if_absent"]

_STORE_ERRORS = (SQLAlchemyError, OSError, TimeoutError)


def insert_if_absent(short_code: str, long_url: str):
    return (
        pg_insert(UrlMapping)
        .values(short_code=short_code, long_url=long_url)
        .on_conflict_do_nothing(index_elements=[UrlMapping.short_code])
        .returning(UrlMapping.id)
    )


class SqlMappingStore(MappingStore):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout_seconds: float,
        logger: logging.Logger | None = None,
    ):
        self._session_factory = session_factory
        self._timeout = timeout_seconds
        self._logger = logger or logging.getLogger("shorturl")

    async def create(self, short_code: str, long_url: str) -> CreateOutcome:
        try:
            async with asyncio.timeout(self._timeout):
                async with self._session_factory() as session:
                    result = await session.execute(insert_if_absent(short_code, long_url))
                    inserted_id = result.scalar_one_or_none()
                    await session.commit()
        except _STORE_ERRORS as exc:
            self._logger.error(f"Database insert failed for {short_code}: {exc!r}")
            raise StoreUnavailableError("Failed to create short URL") from exc

        return CreateOutcome.INSERTED if inserted_id is not None else CreateOutcome.CONFLICT_ABSORBED

    async def find(self, short_code: str) -> UrlMappingRecord | None:
        try:
            async with asyncio.timeout(self._timeout):
                async with self._session_factory() as session:
                    result = await session.execute(
                        select(UrlMapping).where(UrlMapping.short_code == short_code)
                    )
                    row = result.scalar_one_or_none()
        except _STORE_ERRORS as exc:
            self._logger.error(f"Database lookup failed for {short_code}: {exc!r}")
            raise StoreUnavailableError() from exc

        return UrlMappingRecord.model_validate(row) if row is not None else None

    async def delete(self, short_code: str) -> bool:
        try:
            async with asyncio.timeout(self._timeout):
                async with self._session_factory() as session:
                    result = await session.execute(
                        delete(UrlMapping)
                        .where(UrlMapping.short_code == short_code)
                        .returning(UrlMapping.short_code)
                    )
                    deleted = result.scalar_one_or_none()
                    await session.commit()
        except _STORE_ERRORS as exc:
            self._logger.error(f"Database delete failed for {short_code}: {exc!r}")
            raise StoreUnavailableError() from exc

        return deleted is not None

    async def list_all(self) -> list[UrlMappingRecord]:
        try:
            async with asyncio.timeout(self._timeout):
                async with self._session_factory() as session:
                    result = await session.execute(
                        select(UrlMapping).order_by(UrlMapping.created_at.desc())
                    )
                    rows = result.scalars().all()
        except _STORE_ERRORS as exc:
            self._logger.error(f"Database list failed: {exc!r}")
            raise StoreUnavailableError() from exc

        return [UrlMappingRecord.model_validate(row) for row in rows]

    async def ping(self) -> None:
        try:
            async with asyncio.timeout(self._timeout):
                async with self._session_factory() as session:
                    await session.execute(text("SELECT 1"))
        except _STORE_ERRORS as exc:
            raise StoreUnavailableError() from exc
