"""View projection: what a single list screen should display.

``project`` is a pure function: it filters a raw document collection by
category and orders it with a stable sort, so documents with equal keys
keep the order they arrived in.
"""

from enum import Enum
from typing import Callable, Iterable, Optional

from memomark.entities import Document, DocumentStatus


class Category(str, Enum):
    """Named filters for the document list."""

    CREATED = "created"
    VIEWED = "viewed"
    STARRED = "starred"
    ARCHIVED = "archived"


class SortOrder(str, Enum):
    """Supported list orders.

    Titles compare case-sensitively by code point ("Apple" < "banana" <
    "cherry", but "Zebra" < "apple"). Dates compare as their fixed-width
    ``yyyy-MM-dd HH:mm:ss`` strings, which is chronological order.
    """

    TITLE_ASCEND = "title_ascend"
    TITLE_DESCEND = "title_descend"
    CREATED_DATE_ASCEND = "created_date_ascend"
    CREATED_DATE_DESCEND = "created_date_descend"
    MODIFIED_DATE_ASCEND = "modified_date_ascend"
    MODIFIED_DATE_DESCEND = "modified_date_descend"


_LIVE_STATUSES = (DocumentStatus.INTERNAL, DocumentStatus.EXTERNAL)

_FILTERS: dict[Category, Callable[[Document], bool]] = {
    Category.CREATED: lambda doc: doc.status in _LIVE_STATUSES,
    Category.VIEWED: lambda doc: not doc.is_archived,
    Category.STARRED: lambda doc: doc.is_starred and not doc.is_archived,
    Category.ARCHIVED: lambda doc: doc.is_archived,
}

_SORT_KEYS: dict[SortOrder, tuple[Callable[[Document], str], bool]] = {
    SortOrder.TITLE_ASCEND: (lambda doc: doc.title, False),
    SortOrder.TITLE_DESCEND: (lambda doc: doc.title, True),
    SortOrder.CREATED_DATE_ASCEND: (lambda doc: doc.created_date, False),
    SortOrder.CREATED_DATE_DESCEND: (lambda doc: doc.created_date, True),
    SortOrder.MODIFIED_DATE_ASCEND: (lambda doc: doc.modified_date, False),
    SortOrder.MODIFIED_DATE_DESCEND: (lambda doc: doc.modified_date, True),
}


def matches(document: Document, category: Category) -> bool:
    """Whether a document belongs in the given category."""
    return _FILTERS[Category(category)](document)


def project(
    documents: Iterable[Document],
    category: Category,
    sort_order: Optional[SortOrder] = None,
) -> list[Document]:
    """Filter documents by category and order them.

    Args:
        documents: Raw collection, in store order
        category: Which documents to keep
        sort_order: Comparator to apply; None keeps the input order

    Returns:
        Screen-ready ordered list (empty for empty input)
    """
    selected = [doc for doc in documents if matches(doc, category)]
    if sort_order is None:
        return selected

    key, reverse = _SORT_KEYS[SortOrder(sort_order)]
    # sorted() stays stable with reverse=True, so ties keep input order
    return sorted(selected, key=key, reverse=reverse)
