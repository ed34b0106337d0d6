"""SQL Document Store: DocumentStore protocol over SQLAlchemy async sessions.

Invariants:
    - Each write (insert, update, delete, next_sequence) commits its own transaction:
      a single filtered write is atomic, a sequence of calls is not
    - Returned documents are deep copies: callers may mutate them freely
    - Every condition passes check_condition() before any row is read
    - SQLAlchemyError and malformed filters surface as StorageError, after rollback
    - Writes lock only the rows that matched (SELECT ... WHERE id IN (...) FOR UPDATE),
      re-checking the condition on the locked rows

Design Decisions:
    - Conditions are evaluated in Python (core/filter_match.py): keeps Mongo-style
      filters portable across PostgreSQL and SQLite
    - String equality (or $in of strings) on owner and bk_obj_id is pushed into SQL
      as a JSON prefilter; the service always writes both fields as plain strings
"""

import copy
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Sequence as Seq

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cmdb_core.core.domain_types import OBJ_ID_FIELD, OWNER_FIELD
from cmdb_core.core.errors import ErrorContext, StorageError
from cmdb_core.core.filter_match import (
    apply_set, check_condition, matches, project, sort_documents,
)
from cmdb_core.models.document import Document
from cmdb_core.models.sequence import Sequence

logger = logging.getLogger(__name__)

_PREFILTER_FIELDS = (OWNER_FIELD, OBJ_ID_FIELD)


def _prefilter(condition: dict[str, Any]) -> list:
    """SQL predicates implied by condition; rows they drop can never match it."""
    condition = condition or {}
    predicates = []
    for field in _PREFILTER_FIELDS:
        expected = condition.get(field)
        column = Document.body[field].as_string()
        if isinstance(expected, str):
            predicates.append(column == expected)
        elif (
            isinstance(expected, dict) and list(expected) == ["$in"]
            and isinstance(expected["$in"], list) and expected["$in"]
            and all(isinstance(v, str) for v in expected["$in"])
        ):
            predicates.append(column.in_(expected["$in"]))
    return predicates


class SqlDocumentStore:
    """Document collections persisted in the documents table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _storage_errors(
        self, operation: str, collection: str, condition: dict[str, Any] | None = None,
    ) -> AsyncGenerator[None, None]:
        context = ErrorContext(
            condition=condition, debug_info={"collection": collection},
        )
        try:
            yield
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Store {operation} on {collection} failed: {e}",
                extra={"operation": operation, "collection": collection},
            )
            raise StorageError("Database driver error", operation, context) from e
        except ValueError as e:
            await self.db.rollback()
            logger.warning(
                f"Store {operation} on {collection} rejected condition: {e}",
                extra={"operation": operation, "collection": collection},
            )
            raise StorageError(f"Invalid condition: {e}", operation, context) from e

    async def _matching_rows(
        self, collection: str, condition: dict[str, Any], for_update: bool = False,
    ) -> list[Document]:
        check_condition(condition)
        query = (
            select(Document)
            .where(Document.collection == collection, *_prefilter(condition))
            .order_by(Document.id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        rows = [row for row in result.scalars().all() if matches(row.body, condition)]
        if not for_update or not rows:
            return rows

        locked = await self.db.execute(
            select(Document)
            .where(Document.id.in_([row.id for row in rows]))
            .order_by(Document.id)
            .with_for_update()
            .execution_options(populate_existing=True),
        )
        return [row for row in locked.scalars().all() if matches(row.body, condition)]

    async def find(
        self,
        collection: str,
        condition: dict[str, Any],
        *,
        start: int = 0,
        limit: int = 0,
        sort: str = "",
        fields: Seq[str] = (),
    ) -> list[dict[str, Any]]:
        async with self._storage_errors("find", collection, condition):
            rows = await self._matching_rows(collection, condition)
            documents = sort_documents(
                (copy.deepcopy(row.body) for row in rows), sort,
            )
        start = max(start, 0)
        documents = documents[start:start + limit] if limit > 0 else documents[start:]
        return [project(d, fields) for d in documents]

    async def count(self, collection: str, condition: dict[str, Any]) -> int:
        async with self._storage_errors("count", collection, condition):
            return len(await self._matching_rows(collection, condition))

    async def insert(self, collection: str, document: dict[str, Any]) -> None:
        async with self._storage_errors("insert", collection):
            self.db.add(Document(collection=collection, body=copy.deepcopy(document)))
            await self.db.commit()

    async def update(
        self, collection: str, condition: dict[str, Any], data: dict[str, Any],
    ) -> int:
        async with self._storage_errors("update", collection, condition):
            rows = await self._matching_rows(collection, condition, for_update=True)
            for row in rows:
                row.body = apply_set(row.body, data)
            await self.db.commit()
        return len(rows)

    async def delete(self, collection: str, condition: dict[str, Any]) -> int:
        async with self._storage_errors("delete", collection, condition):
            rows = await self._matching_rows(collection, condition, for_update=True)
            for row in rows:
                await self.db.delete(row)
            await self.db.commit()
        return len(rows)

    async def next_sequence(self, name: str) -> int:
        async with self._storage_errors("next_sequence", name):
            result = await self.db.execute(
                select(Sequence).where(Sequence.name == name).with_for_update(),
            )
            sequence = result.scalar_one_or_none()
            if sequence is None:
                sequence = Sequence(name=name, value=0)
                self.db.add(sequence)
            sequence.value += 1
            value = sequence.value
            await self.db.commit()
        return value
