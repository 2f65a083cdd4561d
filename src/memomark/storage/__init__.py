"""Storage layer: document stores."""

from memomark.storage.base import (
    ChangeKind,
    DocumentStore,
    NotFoundError,
    StorageConfig,
    StorageError,
    StorageIOError,
    StoreChange,
)


def create_document_store(config: StorageConfig) -> DocumentStore:
    """Factory function to create document stores based on configuration.

    Args:
        config: Storage configuration with store_type

    Returns:
        Document store (call ``initialize()`` before use)

    Raises:
        ValueError: If store_type is unknown
        StorageError: If store dependencies are missing

    Example:
        config = StorageConfig(
            store_type="sqlite",
            connection_string="sqlite:///~/.memomark/documents.db",
        )
        store = create_document_store(config)
        await store.initialize()
    """
    store_type = config.store_type.lower()

    if store_type == "memory":
        from memomark.storage.memory import InMemoryDocumentStore

        return InMemoryDocumentStore(config)

    elif store_type == "sqlite":
        try:
            from memomark.storage.sqlite import SQLiteDocumentStore

            return SQLiteDocumentStore(config)
        except ImportError as e:
            raise StorageError(
                message=(
                    "SQLite document store requires aiosqlite package. "
                    "Install with: pip install aiosqlite"
                ),
                storage_type="sqlite",
                original_error=e,
            )

    else:
        raise ValueError(
            f"Unknown document store type: '{store_type}'. "
            f"Supported types: memory, sqlite"
        )


__all__ = [
    "ChangeKind",
    "DocumentStore",
    "NotFoundError",
    "StorageConfig",
    "StorageError",
    "StorageIOError",
    "StoreChange",
    "create_document_store",
]
