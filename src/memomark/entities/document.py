"""Document entity - represents a single Markdown note."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def now_timestamp() -> str:
    """Current local time in the fixed ``yyyy-MM-dd HH:mm:ss`` format."""
    return datetime.now().strftime(TIMESTAMP_FORMAT)


class DocumentStatus(int, Enum):
    """Lifecycle stage of a document.

    Integer codes match the persisted column values.
    """

    INTERNAL = 0
    EXTERNAL = 1
    ARCHIVED = 2


class LocalSource(BaseModel):
    """Content is fully owned by the store."""

    kind: Literal["local"] = "local"


class LinkedSource(BaseModel):
    """Content mirrors an external location (file path or URI)."""

    kind: Literal["linked"] = "linked"
    reference: str = Field(..., min_length=1, description="Opaque reference to the external file")


DocumentSource = Annotated[Union[LocalSource, LinkedSource], Field(discriminator="kind")]


def source_from_location(location: Optional[str]) -> LocalSource | LinkedSource:
    """Build a source from the nullable column value."""
    if location:
        return LinkedSource(reference=location)
    return LocalSource()


class Document(BaseModel):
    """A Markdown document tracked by the store.

    Documents are created by the store, which assigns ``id`` and both
    timestamps. Lifecycle changes go through the helper methods, which
    always return a new validated copy.
    """

    id: int = Field(..., ge=1, description="Surrogate key assigned by the store")
    title: str = ""
    content: str = ""
    source: DocumentSource = Field(default_factory=LocalSource)
    status: DocumentStatus = DocumentStatus.INTERNAL
    is_starred: bool = False
    created_date: str = Field(default_factory=now_timestamp)
    modified_date: str = Field(default_factory=now_timestamp)

    @model_validator(mode="after")
    def check_lifecycle(self) -> "Document":
        if self.status == DocumentStatus.EXTERNAL and not isinstance(self.source, LinkedSource):
            raise ValueError("External documents require a linked source")
        if self.status == DocumentStatus.ARCHIVED:
            self.is_starred = False
        for value in (self.created_date, self.modified_date):
            datetime.strptime(value, TIMESTAMP_FORMAT)
        if self.modified_date < self.created_date:
            raise ValueError("modified_date cannot precede created_date")
        return self

    @property
    def source_location(self) -> Optional[str]:
        """Nullable view of the source, as stored in the ``uri`` column."""
        if isinstance(self.source, LinkedSource):
            return self.source.reference
        return None

    @property
    def is_linked(self) -> bool:
        return isinstance(self.source, LinkedSource)

    @property
    def is_archived(self) -> bool:
        return self.status == DocumentStatus.ARCHIVED

    def _replace(self, **changes) -> "Document":
        return Document.model_validate({**self.model_dump(), **changes})

    def archived(self) -> "Document":
        """Move to the archive; archiving clears the star."""
        return self._replace(status=DocumentStatus.ARCHIVED, is_starred=False)

    def restored(self) -> "Document":
        """Bring an archived document back to its live status."""
        status = DocumentStatus.EXTERNAL if self.is_linked else DocumentStatus.INTERNAL
        return self._replace(status=status)

    def with_star(self, starred: bool) -> "Document":
        if starred and self.is_archived:
            raise ValueError("Archived documents cannot be starred")
        return self._replace(is_starred=starred)

    def edited(self, title: Optional[str] = None, content: Optional[str] = None) -> "Document":
        changes = {}
        if title is not None:
            changes["title"] = title
        if content is not None:
            changes["content"] = content
        return self._replace(**changes)

    def __str__(self) -> str:
        return (
            f"Document(id={self.id}, title={self.title!r}, "
            f"status={self.status.name}, is_starred={self.is_starred})"
        )
