"""
Key-document store used for every persisted record.

The portal talks to two independent stores (primary and mirror). Both expose
the same small surface: get/put/delete by key, a predicate query over a whole
collection, offset pagination and an atomic write batch.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from formportal.core.errors import PersistenceError
from formportal.models.document import Document

logger = logging.getLogger(__name__)

Predicate = Callable[[dict], bool]


@dataclass
class BatchOp:
    action: str  # "put" | "delete"
    collection: str
    key: str
    doc: dict | None = None


@dataclass
class WriteBatch:
    """
    Collects puts/deletes and commits them together.

        async with store.batch() as batch:
            batch.delete("categories", "a")
            batch.delete("pages", "a")
    """

    store: "DocumentStore"
    ops: list[BatchOp] = field(default_factory=list)

    def put(self, collection: str, key: str, doc: dict) -> None:
        self.ops.append(BatchOp("put", collection, key, doc))

    def delete(self, collection: str, key: str) -> None:
        self.ops.append(BatchOp("delete", collection, key))

    async def commit(self) -> None:
        if self.ops:
            await self.store.apply_batch(self.ops)
        self.ops = []

    async def __aenter__(self) -> "WriteBatch":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            await self.commit()


class DocumentStore(ABC):
    name: str

    @abstractmethod
    async def get(self, collection: str, key: str) -> dict | None: ...

    @abstractmethod
    async def put(self, collection: str, key: str, doc: dict) -> None: ...

    @abstractmethod
    async def delete(self, collection: str, key: str) -> None: ...

    @abstractmethod
    async def query(self, collection: str, predicate: Predicate | None = None) -> list[dict]: ...

    @abstractmethod
    async def page(self, collection: str, offset: int, limit: int) -> list[dict]: ...

    @abstractmethod
    async def apply_batch(self, ops: list[BatchOp]) -> None:
        """All ops commit or none do."""

    def batch(self) -> WriteBatch:
        return WriteBatch(self)


class SqlDocumentStore(DocumentStore):
    """DocumentStore over the `documents` table of one database."""

    def __init__(self, name: str, sessionmaker: async_sessionmaker[AsyncSession]):
        self.name = name
        self._sessionmaker = sessionmaker

    @asynccontextmanager
    async def _session(self, action: str):
        try:
            async with self._sessionmaker() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("%s store: %s failed: %s", self.name, action, exc, extra={"backend": self.name})
            raise PersistenceError(f"{self.name} {action} failed: {exc}", [self.name]) from exc

    async def get(self, collection: str, key: str) -> dict | None:
        async with self._session("read") as session:
            row = await session.get(Document, (collection, key))
            return dict(row.data) if row else None

    async def put(self, collection: str, key: str, doc: dict) -> None:
        async with self._session("write") as session:
            async with session.begin():
                await session.merge(Document(collection=collection, key=key, data=doc))

    async def delete(self, collection: str, key: str) -> None:
        async with self._session("delete") as session:
            async with session.begin():
                await session.execute(
                    delete(Document).where(Document.collection == collection, Document.key == key)
                )

    async def query(self, collection: str, predicate: Predicate | None = None) -> list[dict]:
        async with self._session("query") as session:
            result = await session.execute(
                select(Document.data).where(Document.collection == collection).order_by(Document.key)
            )
            docs = [dict(d) for d in result.scalars().all()]
        if predicate is None:
            return docs
        return [d for d in docs if predicate(d)]

    async def page(self, collection: str, offset: int, limit: int) -> list[dict]:
        async with self._session("query") as session:
            result = await session.execute(
                select(Document.data)
                .where(Document.collection == collection)
                .order_by(Document.key)
                .offset(offset)
                .limit(limit)
            )
            return [dict(d) for d in result.scalars().all()]

    async def apply_batch(self, ops: list[BatchOp]) -> None:
        async with self._session("batch") as session:
            async with session.begin():
                for op in ops:
                    if op.action == "put":
                        await session.merge(Document(collection=op.collection, key=op.key, data=op.doc))
                    else:
                        await session.execute(
                            delete(Document).where(
                                Document.collection == op.collection, Document.key == op.key
                            )
                        )


@dataclass
class DualStore:
    primary: DocumentStore
    mirror: DocumentStore

    def by_name(self, name: str) -> DocumentStore:
        return {self.primary.name: self.primary, self.mirror.name: self.mirror}[name]


def to_document(model: Any) -> dict:
    """pydantic model -> JSON-safe dict for storage"""
    return model.model_dump(mode="json")
