"""PostgreSQL implementation of DocumentStore."""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studyquest.db.store import Document, Mutator, Transaction, collection_of
from studyquest.db.tables import DocumentRow
from studyquest.services.errors import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Two transactions can both see a key as absent and both try to insert it;
# the loser gets an IntegrityError and is re-run against the winner's row.
_MAX_ATTEMPTS = 3


class PgDocumentStore:
    """Satisfies the DocumentStore Protocol using one JSONB table.

    Transactions lock their rows with SELECT … FOR UPDATE in key order,
    so two transactions over overlapping key sets cannot deadlock.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, key: str) -> Document | None:
        stmt = select(DocumentRow.body).where(DocumentRow.key == key)
        try:
            async with self._session_factory() as session:
                return (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError("get", key) from e

    async def list_prefix(self, prefix: str) -> list[tuple[str, Document]]:
        stmt = (
            select(DocumentRow.key, DocumentRow.body)
            .where(DocumentRow.collection == collection_of(prefix))
            .where(DocumentRow.key.startswith(prefix, autoescape=True))
            .order_by(DocumentRow.key)
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as e:
            raise StorageError("list_prefix", prefix) from e
        return [(row.key, row.body) for row in rows]

    async def conditional_create(self, key: str, doc: Document) -> bool:
        stmt = (
            pg_insert(DocumentRow)
            .values(key=key, collection=collection_of(key), body=doc, version=1)
            .on_conflict_do_nothing(index_elements=[DocumentRow.key])
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError("conditional_create", key) from e
        return result.rowcount == 1

    async def atomic_increment(self, key: str, field: str, delta: int) -> int:
        return await self.transactional_update(
            [key], lambda txn: txn.increment(key, field, delta)
        )

    async def transactional_update(self, keys: Iterable[str], mutator: Mutator[T]) -> T:
        ordered = sorted(set(keys))
        for attempt in range(1, _MAX_ATTEMPTS + 1):
            try:
                return await self._run_transaction(ordered, mutator)
            except IntegrityError as e:
                if attempt == _MAX_ATTEMPTS:
                    raise StorageError("transactional_update", ",".join(ordered)) from e
                logger.info(
                    "Insert race on %s, retrying transaction (attempt %d)",
                    ordered,
                    attempt + 1,
                )
            except SQLAlchemyError as e:
                raise StorageError("transactional_update", ",".join(ordered)) from e
        raise AssertionError("unreachable")

    async def _run_transaction(self, ordered: list[str], mutator: Mutator[T]) -> T:
        stmt = (
            select(DocumentRow)
            .where(DocumentRow.key.in_(ordered))
            .order_by(DocumentRow.key)
            .with_for_update()
        )
        async with self._session_factory() as session:
            async with session.begin():
                rows = {row.key: row for row in (await session.execute(stmt)).scalars()}
                snapshot: dict[str, Document | None] = {
                    key: copy.deepcopy(rows[key].body) if key in rows else None
                    for key in ordered
                }
                txn = Transaction(snapshot)
                # A raising mutator aborts the session.begin() block, which
                # rolls back; nothing was written yet anyway.
                result = mutator(txn)

                for key, body in txn.writes.items():
                    row = rows.get(key)
                    if row is None:
                        session.add(
                            DocumentRow(
                                key=key,
                                collection=collection_of(key),
                                body=body,
                                version=1,
                            )
                        )
                    else:
                        row.body = body
                        row.version = row.version + 1
        return result

    async def ping(self) -> bool:
        try:
            async with self._session_factory() as session:
                await session.execute(select(1))
        except SQLAlchemyError:
            logger.exception("Document store ping failed")
            return False
        return True
