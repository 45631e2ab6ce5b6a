"""JSON document storage for catalog collections (coupons, extras, categories)."""

from __future__ import annotations

import json
import logging
import os
import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable, Iterable, Iterator, Mapping, Protocol, Sequence
from uuid import uuid4

from storefront.backend.app.models.catalog import CatalogDocument
from storefront.backend.app.services.errors import RepositoryError

logger = logging.getLogger(__name__)


class DocumentRepository(Protocol):
    """Storage contract consumed by the catalog services."""

    def list(
        self, collection: str, *, where: Mapping[str, Any] | None = None
    ) -> list[CatalogDocument]: ...

    def get(self, collection: str, document_id: str) -> CatalogDocument: ...

    def insert_many(
        self, collection: str, documents: Sequence[Mapping[str, Any]]
    ) -> list[CatalogDocument]: ...

    def replace(
        self, collection: str, document_id: str, data: Mapping[str, Any]
    ) -> CatalogDocument: ...

    def delete(self, collection: str, document_id: str) -> CatalogDocument: ...

    def delete_many(self, collection: str, document_ids: Iterable[str]) -> int: ...


def _matches(document: CatalogDocument, where: Mapping[str, Any] | None) -> bool:
    if not where:
        return True
    return all(document.get(key) == value for key, value in where.items())


def _newest_first(documents: Iterable[CatalogDocument]) -> list[CatalogDocument]:
    return sorted(documents, key=lambda document: document.created_at, reverse=True)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryDocumentRepository:
    """Thread-safe in-process document storage."""

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow
        self._collections: dict[str, dict[str, CatalogDocument]] = {}
        self._lock = Lock()

    def list(
        self, collection: str, *, where: Mapping[str, Any] | None = None
    ) -> list[CatalogDocument]:
        with self._lock:
            documents = list(self._collections.get(collection, {}).values())
        return _newest_first(document for document in documents if _matches(document, where))

    def get(self, collection: str, document_id: str) -> CatalogDocument:
        with self._lock:
            document = self._collections.get(collection, {}).get(document_id)
        if document is None:
            raise KeyError(document_id)
        return document

    def insert_many(
        self, collection: str, documents: Sequence[Mapping[str, Any]]
    ) -> list[CatalogDocument]:
        now = self._clock()
        created = [
            CatalogDocument(id=uuid4().hex, data=dict(data), created_at=now, updated_at=now)
            for data in documents
        ]
        with self._lock:
            store = self._collections.setdefault(collection, {})
            for document in created:
                store[document.id] = document
        return created

    def replace(
        self, collection: str, document_id: str, data: Mapping[str, Any]
    ) -> CatalogDocument:
        with self._lock:
            store = self._collections.get(collection, {})
            current = store.get(document_id)
            if current is None:
                raise KeyError(document_id)
            document = CatalogDocument(
                id=document_id,
                data=dict(data),
                created_at=current.created_at,
                updated_at=self._clock(),
            )
            store[document_id] = document
        return document

    def delete(self, collection: str, document_id: str) -> CatalogDocument:
        with self._lock:
            document = self._collections.get(collection, {}).pop(document_id, None)
        if document is None:
            raise KeyError(document_id)
        return document

    def delete_many(self, collection: str, document_ids: Iterable[str]) -> int:
        deleted = 0
        with self._lock:
            store = self._collections.get(collection, {})
            for document_id in set(document_ids):
                if store.pop(document_id, None) is not None:
                    deleted += 1
        return deleted


class SQLiteDocumentRepository:
    """SQLite-backed document storage; payloads are stored as JSON text."""

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = str(path)
        self._clock = clock or _utcnow
        self._lock = Lock()
        self._initialise()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(
            self._path,
            isolation_level=None,
            check_same_thread=False,
        )
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA journal_mode=WAL")
        connection.execute("PRAGMA synchronous=NORMAL")
        return connection

    @contextmanager
    def _transaction(self, *, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        try:
            with closing(self._connect()) as connection:
                connection.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
                try:
                    yield connection
                except BaseException:
                    connection.execute("ROLLBACK")
                    raise
                connection.execute("COMMIT")
        except sqlite3.Error as error:
            logger.error("Catalog storage failure at %s", self._path, exc_info=True)
            raise RepositoryError(f"Catalog storage failure: {error}") from error

    def _initialise(self) -> None:
        with self._transaction(immediate=True) as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS catalog_documents (
                    id TEXT PRIMARY KEY,
                    collection TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            connection.execute(
                "CREATE INDEX IF NOT EXISTS catalog_documents_collection"
                " ON catalog_documents (collection)"
            )

    @staticmethod
    def _decode_record(row: sqlite3.Row) -> CatalogDocument:
        created_at = datetime.fromisoformat(row["created_at"])
        updated_at = datetime.fromisoformat(row["updated_at"])
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        return CatalogDocument(
            id=row["id"],
            data=json.loads(row["payload"]),
            created_at=created_at,
            updated_at=updated_at,
        )

    @staticmethod
    def _fetch(
        connection: sqlite3.Connection, collection: str, document_id: str
    ) -> sqlite3.Row | None:
        return connection.execute(
            "SELECT * FROM catalog_documents WHERE collection = ? AND id = ?",
            (collection, document_id),
        ).fetchone()

    def list(
        self, collection: str, *, where: Mapping[str, Any] | None = None
    ) -> list[CatalogDocument]:
        with self._transaction() as connection:
            rows = connection.execute(
                "SELECT * FROM catalog_documents WHERE collection = ?",
                (collection,),
            ).fetchall()
        documents = (self._decode_record(row) for row in rows)
        return _newest_first(document for document in documents if _matches(document, where))

    def get(self, collection: str, document_id: str) -> CatalogDocument:
        with self._transaction() as connection:
            row = self._fetch(connection, collection, document_id)
        if row is None:
            raise KeyError(document_id)
        return self._decode_record(row)

    def insert_many(
        self, collection: str, documents: Sequence[Mapping[str, Any]]
    ) -> list[CatalogDocument]:
        now = self._clock()
        created = [
            CatalogDocument(id=uuid4().hex, data=dict(data), created_at=now, updated_at=now)
            for data in documents
        ]
        with self._lock:
            with self._transaction(immediate=True) as connection:
                connection.executemany(
                    "INSERT INTO catalog_documents (id, collection, payload, created_at,"
                    " updated_at) VALUES (?, ?, ?, ?, ?)",
                    [
                        (
                            document.id,
                            collection,
                            json.dumps(document.data, ensure_ascii=False),
                            document.created_at.isoformat(),
                            document.updated_at.isoformat(),
                        )
                        for document in created
                    ],
                )
        return created

    def replace(
        self, collection: str, document_id: str, data: Mapping[str, Any]
    ) -> CatalogDocument:
        with self._lock:
            with self._transaction(immediate=True) as connection:
                row = self._fetch(connection, collection, document_id)
                if row is None:
                    raise KeyError(document_id)
                current = self._decode_record(row)
                document = CatalogDocument(
                    id=document_id,
                    data=dict(data),
                    created_at=current.created_at,
                    updated_at=self._clock(),
                )
                connection.execute(
                    "UPDATE catalog_documents SET payload = ?, updated_at = ?"
                    " WHERE collection = ? AND id = ?",
                    (
                        json.dumps(document.data, ensure_ascii=False),
                        document.updated_at.isoformat(),
                        collection,
                        document_id,
                    ),
                )
        return document

    def delete(self, collection: str, document_id: str) -> CatalogDocument:
        with self._lock:
            with self._transaction(immediate=True) as connection:
                row = self._fetch(connection, collection, document_id)
                if row is None:
                    raise KeyError(document_id)
                connection.execute(
                    "DELETE FROM catalog_documents WHERE collection = ? AND id = ?",
                    (collection, document_id),
                )
        return self._decode_record(row)

    def delete_many(self, collection: str, document_ids: Iterable[str]) -> int:
        deleted = 0
        with self._lock:
            with self._transaction(immediate=True) as connection:
                for document_id in set(document_ids):
                    cursor = connection.execute(
                        "DELETE FROM catalog_documents WHERE collection = ? AND id = ?",
                        (collection, document_id),
                    )
                    deleted += cursor.rowcount
        return deleted


__all__ = [
    "DocumentRepository",
    "InMemoryDocumentRepository",
    "SQLiteDocumentRepository",
]
