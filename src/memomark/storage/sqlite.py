"""SQLite storage implementation for documents.

Provides persistent storage for Markdown documents using SQLite.
Uses aiosqlite for async operations.
"""

import os
from typing import Optional

import aiosqlite

from memomark.entities import (
    Document,
    DocumentSource,
    DocumentStatus,
    LocalSource,
    now_timestamp,
    source_from_location,
)
from memomark.observability.logging import get_logger
from memomark.storage.base import (
    ChangeKind,
    DocumentStore,
    NotFoundError,
    StorageConfig,
    StorageError,
    StorageIOError,
    resolve_status,
)

logger = get_logger(__name__)

_COLUMNS = "id, title, content, uri, status, is_starred, created_date, modified_date"


class SQLiteDocumentStore(DocumentStore):
    """SQLite document store implementation.

    Stores documents in a single ``markdown`` table. Every mutation is
    committed before the method returns.
    """

    storage_type = "sqlite"

    def __init__(self, config: StorageConfig) -> None:
        """Initialize SQLite document store."""
        super().__init__(config)
        conn_str = config.connection_string
        if conn_str is None:
            # Default to ~/.memomark/documents.db
            db_dir = os.path.expanduser("~/.memomark")
            os.makedirs(db_dir, exist_ok=True)
            self.db_path = os.path.join(db_dir, "documents.db")
        elif conn_str.startswith("sqlite:///"):
            self.db_path = os.path.expanduser(conn_str.replace("sqlite:///", ""))
        else:
            self.db_path = os.path.expanduser(conn_str)

        self.connection: Optional[aiosqlite.Connection] = None

    def _require_connection(self) -> aiosqlite.Connection:
        if not self.connection:
            raise StorageError("Database not initialized", storage_type=self.storage_type)
        return self.connection

    def _io_error(self, action: str, error: Exception) -> StorageIOError:
        logger.error("sqlite_operation_failed", action=action, error=str(error))
        return StorageIOError(
            f"Failed to {action}: {error}",
            storage_type=self.storage_type,
            original_error=error,
        )

    async def _rollback(self, connection: aiosqlite.Connection) -> None:
        # A failed commit leaves the transaction open; the next commit must not persist it
        try:
            await connection.rollback()
        except (aiosqlite.Error, OSError) as e:
            logger.warning("sqlite_rollback_failed", error=str(e))

    @staticmethod
    def _row_to_document(row: aiosqlite.Row) -> Document:
        return Document(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            source=source_from_location(row["uri"]),
            status=DocumentStatus(row["status"]),
            is_starred=bool(row["is_starred"]),
            created_date=row["created_date"],
            modified_date=row["modified_date"],
        )

    async def initialize(self) -> None:
        """Initialize the document store (create tables)."""
        try:
            db_dir = os.path.dirname(self.db_path)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)

            self.connection = await aiosqlite.connect(self.db_path)
            self.connection.row_factory = aiosqlite.Row

            # AUTOINCREMENT keeps ids of deleted rows from being reused
            await self.connection.execute("""
                CREATE TABLE IF NOT EXISTS markdown (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL DEFAULT '',
                    content TEXT NOT NULL DEFAULT '',
                    uri TEXT,
                    status INTEGER NOT NULL DEFAULT 0,
                    is_starred INTEGER NOT NULL DEFAULT 0,
                    created_date TEXT NOT NULL,
                    modified_date TEXT NOT NULL
                )
            """)

            await self.connection.execute(
                "CREATE INDEX IF NOT EXISTS idx_markdown_status ON markdown(status)"
            )
            await self.connection.execute(
                "CREATE INDEX IF NOT EXISTS idx_markdown_starred ON markdown(is_starred)"
            )

            await self.connection.commit()
            logger.debug("sqlite_store_initialized", path=self.db_path)

        except (aiosqlite.Error, OSError) as e:
            raise StorageIOError(
                f"Failed to initialize SQLite document store: {e}",
                storage_type=self.storage_type,
                original_error=e,
            )

    async def create(
        self,
        title: str = "",
        content: str = "",
        source: Optional[DocumentSource] = None,
        status: Optional[DocumentStatus] = None,
        is_starred: bool = False,
    ) -> Document:
        """Create and persist a new document."""
        connection = self._require_connection()
        source = source or LocalSource()
        status = resolve_status(source, status)
        timestamp = now_timestamp()

        # Validate before touching the table so a bad combination never gets an id
        draft = Document(
            id=1,
            title=title,
            content=content,
            source=source,
            status=status,
            is_starred=is_starred,
            created_date=timestamp,
            modified_date=timestamp,
        )

        try:
            cursor = await connection.execute(
                """
                INSERT INTO markdown (title, content, uri, status, is_starred, created_date, modified_date)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    draft.title,
                    draft.content,
                    draft.source_location,
                    draft.status.value,
                    int(draft.is_starred),
                    draft.created_date,
                    draft.modified_date,
                ),
            )
            await connection.commit()
        except (aiosqlite.Error, OSError) as e:
            await self._rollback(connection)
            raise self._io_error("create document", e)

        document = draft.model_copy(update={"id": cursor.lastrowid})
        self._notify(ChangeKind.CREATED, document.id)
        return document

    async def get(self, document_id: int) -> Optional[Document]:
        """Retrieve a document by ID."""
        connection = self._require_connection()

        try:
            cursor = await connection.execute(
                f"SELECT {_COLUMNS} FROM markdown WHERE id = ?",
                (document_id,),
            )
            row = await cursor.fetchone()
        except (aiosqlite.Error, OSError) as e:
            raise self._io_error("get document", e)

        if not row:
            return None
        return self._row_to_document(row)

    async def update(self, document: Document) -> Document:
        """Replace the stored record with the same id."""
        connection = self._require_connection()

        stored = await self.get(document.id)
        if stored is None:
            raise NotFoundError(document.id, storage_type=self.storage_type)

        modified_date = stored.modified_date
        if document.title != stored.title or document.content != stored.content:
            modified_date = max(now_timestamp(), stored.created_date)

        updated = Document.model_validate(
            {
                **document.model_dump(),
                "created_date": stored.created_date,
                "modified_date": modified_date,
            }
        )

        try:
            await connection.execute(
                """
                UPDATE markdown
                SET title = ?, content = ?, uri = ?, status = ?, is_starred = ?, modified_date = ?
                WHERE id = ?
                """,
                (
                    updated.title,
                    updated.content,
                    updated.source_location,
                    updated.status.value,
                    int(updated.is_starred),
                    updated.modified_date,
                    updated.id,
                ),
            )
            await connection.commit()
        except (aiosqlite.Error, OSError) as e:
            await self._rollback(connection)
            raise self._io_error("update document", e)

        self._notify(ChangeKind.UPDATED, updated.id)
        return updated

    async def delete(self, document: Document) -> None:
        """Permanently remove a document."""
        connection = self._require_connection()

        try:
            cursor = await connection.execute(
                "DELETE FROM markdown WHERE id = ?",
                (document.id,),
            )
            await connection.commit()
        except (aiosqlite.Error, OSError) as e:
            await self._rollback(connection)
            raise self._io_error("delete document", e)

        if cursor.rowcount == 0:
            raise NotFoundError(document.id, storage_type=self.storage_type)
        self._notify(ChangeKind.DELETED, document.id)

    async def _select(self, where: str = "", params: tuple = ()) -> list[Document]:
        connection = self._require_connection()
        try:
            cursor = await connection.execute(
                f"SELECT {_COLUMNS} FROM markdown {where} ORDER BY id",
                params,
            )
            rows = await cursor.fetchall()
        except (aiosqlite.Error, OSError) as e:
            raise self._io_error("query documents", e)
        return [self._row_to_document(row) for row in rows]

    async def find_all(self) -> list[Document]:
        """Return every document in id order."""
        return await self._select()

    async def find_by_status(self, *statuses: DocumentStatus) -> list[Document]:
        """Return documents whose status is any of the given ones."""
        if not statuses:
            return []
        placeholders = ", ".join("?" for _ in statuses)
        return await self._select(
            f"WHERE status IN ({placeholders})",
            tuple(DocumentStatus(status).value for status in statuses),
        )

    async def find_starred(self) -> list[Document]:
        """Return starred, non-archived documents."""
        return await self._select(
            "WHERE is_starred = 1 AND status != ?",
            (DocumentStatus.ARCHIVED.value,),
        )

    async def count(self) -> int:
        """Return total number of documents stored."""
        connection = self._require_connection()
        try:
            cursor = await connection.execute("SELECT COUNT(*) FROM markdown")
            row = await cursor.fetchone()
        except (aiosqlite.Error, OSError) as e:
            raise self._io_error("count documents", e)
        return row[0]

    async def close(self) -> None:
        """Close connections and cleanup resources."""
        if self.connection:
            await self.connection.close()
            self.connection = None
