"""Abstract base class for document storage backends.

Why this exists:
- Allows swapping between SQLite and in-memory storage
- Keeps the CRUD contract in one place for the library and the CLI
- Enables testing with the in-memory implementation

How to extend:
1. Subclass DocumentStore
2. Implement all abstract methods
3. Register in create_document_store()
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel

from memomark.entities import Document, DocumentSource, DocumentStatus
from memomark.observability.logging import get_logger

logger = get_logger(__name__)


class StorageConfig(BaseModel):
    """Base configuration for storage backends."""

    store_type: str
    connection_string: str | None = None
    extra_params: dict[str, Any] = {}


class ChangeKind(str, Enum):
    """Kinds of durable store mutations."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class StoreChange(BaseModel):
    """Notification emitted after a mutation has been committed."""

    kind: ChangeKind
    document_id: int


StoreListener = Callable[[StoreChange], None]


class DocumentStore(ABC):
    """Abstract interface for document storage backends.

    Implementations must handle:
    - Assigning unique, never reused integer ids
    - Stamping created/modified dates
    - Making every mutation durable before returning
    - Notifying subscribers after each mutation
    """

    storage_type = "abstract"

    def __init__(self, config: StorageConfig) -> None:
        """Initialize storage with configuration."""
        self.config = config
        self._listeners: list[StoreListener] = []

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener.

        Args:
            listener: Callable receiving a StoreChange after each mutation

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, kind: ChangeKind, document_id: int) -> None:
        change = StoreChange(kind=kind, document_id=document_id)
        logger.debug("store_change", kind=kind.value, document_id=document_id)
        for listener in list(self._listeners):
            listener(change)

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the store (create tables, etc.)."""
        pass

    @abstractmethod
    async def create(
        self,
        title: str = "",
        content: str = "",
        source: Optional[DocumentSource] = None,
        status: Optional[DocumentStatus] = None,
        is_starred: bool = False,
    ) -> Document:
        """Create and persist a new document.

        Args:
            title: Document title
            content: Markdown body
            source: Where the content lives (None means a local document)
            status: Initial status (None derives INTERNAL/EXTERNAL from source)
            is_starred: Initial star flag

        Returns:
            The stored document with its assigned id and timestamps

        Raises:
            StorageIOError: If the write fails
        """
        pass

    @abstractmethod
    async def get(self, document_id: int) -> Document | None:
        """Retrieve a document by ID.

        Args:
            document_id: Document ID

        Returns:
            Document if found, None otherwise
        """
        pass

    @abstractmethod
    async def update(self, document: Document) -> Document:
        """Replace the stored record with the same id.

        ``modified_date`` is refreshed only when title or content changed.

        Args:
            document: Document carrying the new field values

        Returns:
            The document as stored

        Raises:
            NotFoundError: If no record has this id
            StorageIOError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, document: Document) -> None:
        """Permanently remove a document.

        Args:
            document: Document to remove

        Raises:
            NotFoundError: If no record has this id
            StorageIOError: If the write fails
        """
        pass

    @abstractmethod
    async def find_all(self) -> list[Document]:
        """Return every document in id order."""
        pass

    @abstractmethod
    async def find_by_status(self, *statuses: DocumentStatus) -> list[Document]:
        """Return documents whose status is any of the given ones, in id order."""
        pass

    @abstractmethod
    async def find_starred(self) -> list[Document]:
        """Return starred, non-archived documents in id order."""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Return total number of documents stored."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close connections and cleanup resources."""
        pass


def resolve_status(source: Optional[DocumentSource], status: Optional[DocumentStatus]) -> DocumentStatus:
    """Pick the creation status, deriving it from the source when not given."""
    if status is not None:
        return status
    if source is not None and source.kind == "linked":
        return DocumentStatus.EXTERNAL
    return DocumentStatus.INTERNAL


class StorageError(Exception):
    """Base exception for storage errors."""

    def __init__(self, message: str, storage_type: str, original_error: Exception | None = None):
        self.message = message
        self.storage_type = storage_type
        self.original_error = original_error
        super().__init__(self.message)


class NotFoundError(StorageError):
    """Raised when an update or delete targets a missing document."""

    def __init__(self, document_id: int, storage_type: str):
        self.document_id = document_id
        super().__init__(f"Document {document_id} not found", storage_type=storage_type)


class StorageIOError(StorageError):
    """Raised when the underlying persistence fails."""

    pass
