"""In-memory storage implementation for testing and development.

Stores all documents in a dict and is useful for:
- Testing without a database file
- Throwaway sessions
"""

from typing import Optional

from memomark.entities import Document, DocumentSource, DocumentStatus, LocalSource, now_timestamp
from memomark.storage.base import (
    ChangeKind,
    DocumentStore,
    NotFoundError,
    StorageConfig,
    resolve_status,
)


class InMemoryDocumentStore(DocumentStore):
    """In-memory document store implementation."""

    storage_type = "memory"

    def __init__(self, config: StorageConfig) -> None:
        """Initialize in-memory document store."""
        super().__init__(config)
        self.documents: dict[int, Document] = {}
        self._last_id = 0

    async def initialize(self) -> None:
        """Initialize the document store."""
        pass

    async def create(
        self,
        title: str = "",
        content: str = "",
        source: Optional[DocumentSource] = None,
        status: Optional[DocumentStatus] = None,
        is_starred: bool = False,
    ) -> Document:
        """Create and persist a new document."""
        timestamp = now_timestamp()
        document = Document(
            id=self._last_id + 1,
            title=title,
            content=content,
            source=source or LocalSource(),
            status=resolve_status(source, status),
            is_starred=is_starred,
            created_date=timestamp,
            modified_date=timestamp,
        )
        # ids are consumed only once validation succeeded
        self._last_id = document.id
        self.documents[document.id] = document
        self._notify(ChangeKind.CREATED, document.id)
        return document.model_copy(deep=True)

    async def get(self, document_id: int) -> Optional[Document]:
        """Retrieve a document by ID."""
        document = self.documents.get(document_id)
        return document.model_copy(deep=True) if document else None

    async def update(self, document: Document) -> Document:
        """Replace the stored record with the same id."""
        stored = self.documents.get(document.id)
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
        self.documents[updated.id] = updated
        self._notify(ChangeKind.UPDATED, updated.id)
        return updated.model_copy(deep=True)

    async def delete(self, document: Document) -> None:
        """Permanently remove a document."""
        if document.id not in self.documents:
            raise NotFoundError(document.id, storage_type=self.storage_type)
        del self.documents[document.id]
        self._notify(ChangeKind.DELETED, document.id)

    async def find_all(self) -> list[Document]:
        """Return every document in id order."""
        return [self.documents[key].model_copy(deep=True) for key in sorted(self.documents)]

    async def find_by_status(self, *statuses: DocumentStatus) -> list[Document]:
        """Return documents whose status is any of the given ones."""
        return [doc for doc in await self.find_all() if doc.status in statuses]

    async def find_starred(self) -> list[Document]:
        """Return starred, non-archived documents."""
        return [doc for doc in await self.find_all() if doc.is_starred and not doc.is_archived]

    async def count(self) -> int:
        """Return total number of documents stored."""
        return len(self.documents)

    async def close(self) -> None:
        """Close connections and cleanup resources."""
        pass
