"""Service layer - Wiring configuration to stores and the library.

This module contains helpers that build runtime components:
- initialize_store: Document store initialization helper
- initialize_library: Library construction helper
"""

from memomark.service.stores import initialize_library, initialize_store

__all__ = [
    "initialize_library",
    "initialize_store",
]
