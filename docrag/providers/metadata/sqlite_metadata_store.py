"""SQLite-backed document metadata store.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing IMetadataStore).
#
# Database: ``data/documents.db`` -- one row per uploaded document.
#
# Lease semantics live in SQL, not in Python:
#   - ``document_id`` is UNIQUE, so ``create()`` of an existing id fails
#     with an IntegrityError that maps to DocumentExistsError.
#   - a conditional ``update()`` is ``UPDATE ... WHERE status IN (...)``;
#     zero affected rows means another attempt got there first.
#
# One aiosqlite connection is opened by ``open()`` and shared.  Writes are
# serialized with an ``asyncio.Lock`` so read-modify-write sequences in
# ``update()`` see a stable row.  WAL mode lets readers proceed while a
# write is in progress.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from docrag.interfaces.metadata_store import IMetadataStore
from docrag.models.document import Document, DocumentStatus, DocumentUpdate
from docrag.utils.errors import (
    DocumentExistsError,
    DocumentNotFoundError,
    MetadataStoreError,
    StatusConflictError,
)

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/documents.db")

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_DOCUMENTS_TABLE = """\
CREATE TABLE IF NOT EXISTS documents (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id     TEXT    NOT NULL UNIQUE,
    title           TEXT    NOT NULL,
    filename        TEXT    NOT NULL,
    file_type       TEXT    NOT NULL,
    file_size       INTEGER NOT NULL,
    uploaded_at     TEXT    NOT NULL,
    processed_at    TEXT,
    status          TEXT    NOT NULL,
    error_message   TEXT,
    chunk_count     INTEGER,
    vector_count    INTEGER,
    content_length  INTEGER
);
"""

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_documents_status ON documents(status);",
    "CREATE INDEX IF NOT EXISTS idx_documents_uploaded ON documents(uploaded_at);",
]

# ── DML ───────────────────────────────────────────────────────────────

_COLUMNS = (
    "document_id",
    "title",
    "filename",
    "file_type",
    "file_size",
    "uploaded_at",
    "processed_at",
    "status",
    "error_message",
    "chunk_count",
    "vector_count",
    "content_length",
)

_INSERT_DOCUMENT = (
    f"INSERT INTO documents ({', '.join(_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in _COLUMNS)});"
)

_SELECT_DOCUMENT = f"SELECT {', '.join(_COLUMNS)} FROM documents WHERE document_id = ?;"

_SELECT_ALL = f"SELECT {', '.join(_COLUMNS)} FROM documents ORDER BY uploaded_at DESC, id DESC;"

_DELETE_DOCUMENT = "DELETE FROM documents WHERE document_id = ?;"


def _to_db(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, DocumentStatus):
        return value.value
    return value


def _row_to_document(row: aiosqlite.Row) -> Document:
    data = dict(zip(_COLUMNS, row))
    for key in ("uploaded_at", "processed_at"):
        if data[key] is not None:
            data[key] = datetime.fromisoformat(data[key])
    return Document.model_validate(data)


class SQLiteMetadataStore(IMetadataStore):
    """Document records persisted in a single SQLite table.

    Usable as an async context manager::

        async with SQLiteMetadataStore("data/documents.db") as store:
            await store.create(document)
    """

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)
        self._db: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    async def __aenter__(self) -> SQLiteMetadataStore:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── Lifecycle ─────────────────────────────────────────────────────

    async def open(self) -> None:
        """Open the connection and create the schema if it does not exist."""
        if self._db is not None:
            return
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            db = await aiosqlite.connect(str(self._db_path))
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_DOCUMENTS_TABLE)
            for idx_sql in _CREATE_INDICES:
                await db.execute(idx_sql)
            await db.commit()
        except aiosqlite.Error as exc:
            raise MetadataStoreError(
                message=f"Failed to open metadata database {self._db_path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        self._db = db
        logger.info("metadata_db_initialized", path=str(self._db_path))

    async def close(self) -> None:
        if self._db is None:
            return
        db, self._db = self._db, None
        await db.close()
        logger.debug("metadata_db_closed", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite"

    # ── CRUD ──────────────────────────────────────────────────────────

    async def create(self, document: Document) -> Document:
        db = self._conn()
        values = tuple(_to_db(getattr(document, col)) for col in _COLUMNS)
        async with self._write_lock:
            try:
                await db.execute(_INSERT_DOCUMENT, values)
                await db.commit()
            except aiosqlite.IntegrityError as exc:
                await db.rollback()
                raise DocumentExistsError(
                    message=f"Document {document.document_id} already exists",
                    provider_name=self.get_provider_name(),
                ) from exc
            except aiosqlite.Error as exc:
                await db.rollback()
                raise self._wrap("create", exc) from exc
        return document

    async def get(self, document_id: str) -> Document | None:
        db = self._conn()
        try:
            async with db.execute(_SELECT_DOCUMENT, (document_id,)) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise self._wrap("get", exc) from exc
        return _row_to_document(row) if row else None

    async def list_all(self) -> list[Document]:
        db = self._conn()
        try:
            async with db.execute(_SELECT_ALL) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise self._wrap("list_all", exc) from exc
        return [_row_to_document(row) for row in rows]

    async def update(
        self,
        document_id: str,
        update: DocumentUpdate,
        expected_statuses: Iterable[DocumentStatus] | None = None,
    ) -> Document:
        db = self._conn()
        expected = None if expected_statuses is None else sorted(s.value for s in expected_statuses)
        async with self._write_lock:
            current = await self.get(document_id)
            if current is None:
                raise DocumentNotFoundError(
                    message=f"Document {document_id} not found",
                    provider_name=self.get_provider_name(),
                )
            if expected is not None and current.status.value not in expected:
                raise StatusConflictError(
                    message=(
                        f"Document {document_id} is {current.status.value}, "
                        f"expected one of {expected}"
                    ),
                    provider_name=self.get_provider_name(),
                )

            # Validates lifecycle invariants before anything is written.
            updated = current.apply(update)
            changes = update.changes()
            if not changes:
                return current

            assignments = ", ".join(f"{col} = ?" for col in changes)
            sql = f"UPDATE documents SET {assignments} WHERE document_id = ?"
            params: list[Any] = [_to_db(getattr(updated, col)) for col in changes]
            params.append(document_id)
            if expected is not None:
                sql += f" AND status IN ({', '.join('?' for _ in expected)})"
                params.extend(expected)

            try:
                cursor = await db.execute(sql, params)
                rowcount = cursor.rowcount
                await cursor.close()
                await db.commit()
            except aiosqlite.Error as exc:
                await db.rollback()
                raise self._wrap("update", exc) from exc

        if rowcount == 0:
            # Another process changed the row between the read and the write.
            raise StatusConflictError(
                message=f"Document {document_id} changed concurrently",
                provider_name=self.get_provider_name(),
            )
        return updated

    async def delete(self, document_id: str) -> bool:
        db = self._conn()
        async with self._write_lock:
            try:
                cursor = await db.execute(_DELETE_DOCUMENT, (document_id,))
                deleted = cursor.rowcount > 0
                await cursor.close()
                await db.commit()
            except aiosqlite.Error as exc:
                await db.rollback()
                raise self._wrap("delete", exc) from exc
        return deleted

    # ── Internals ─────────────────────────────────────────────────────

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise MetadataStoreError(
                message="Metadata store is not open; call open() first",
                provider_name=self.get_provider_name(),
            )
        return self._db

    def _wrap(self, operation: str, exc: Exception) -> MetadataStoreError:
        return MetadataStoreError(
            message=f"SQLite {operation} failed: {exc}",
            provider_name=self.get_provider_name(),
        )
