"""Store initialization service.

Provides helper functions for building the library from configuration.
"""

from memomark.config.schema import AppConfig
from memomark.core.library import DocumentLibrary
from memomark.core.preferences import PreferenceStore
from memomark.storage import StorageConfig, create_document_store
from memomark.storage.base import DocumentStore


async def initialize_store(config: AppConfig) -> DocumentStore:
    """Create and initialize the configured document store.

    Args:
        config: Application configuration

    Returns:
        Initialized document store
    """
    store = create_document_store(
        StorageConfig(
            store_type=config.document_store.store_type.value,
            connection_string=config.document_store.connection_string,
            extra_params=config.document_store.extra_params,
        )
    )
    await store.initialize()
    return store


async def initialize_library(config: AppConfig) -> DocumentLibrary:
    """Build a document library backed by the configured stores.

    Args:
        config: Application configuration

    Returns:
        Library with an initialized store (close ``library.store`` when done)
    """
    store = await initialize_store(config)
    preferences = PreferenceStore(config.preferences_path, history_size=config.history_size)
    return DocumentLibrary(store, preferences, export_dir=config.export_dir)
