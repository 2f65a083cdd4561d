"""Entities - Domain models for the Markdown note library.

This module contains pure domain entities without business logic:
- Document: A single Markdown note
- DocumentStatus: Lifecycle stage of a document
- LocalSource / LinkedSource: Where a document's content lives
"""

from memomark.entities.document import (
    TIMESTAMP_FORMAT,
    Document,
    DocumentSource,
    DocumentStatus,
    LinkedSource,
    LocalSource,
    now_timestamp,
    source_from_location,
)

__all__ = [
    "TIMESTAMP_FORMAT",
    "Document",
    "DocumentSource",
    "DocumentStatus",
    "LinkedSource",
    "LocalSource",
    "now_timestamp",
    "source_from_location",
]
