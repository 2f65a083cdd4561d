"""Document library: the use cases a front end calls.

Provides high-level operations on top of a DocumentStore:
- Creating new documents and importing Markdown files
- Opening documents (refreshing linked files, recording history)
- Editing, starring, archiving and restoring
- Permanent deletion, allowed only from the archive
- Browsing a category in a chosen order
- Exporting documents to Markdown files
"""

import re
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

from memomark.core.preferences import PreferenceStore
from memomark.core.projection import Category, SortOrder, project
from memomark.entities import Document, DocumentStatus, LinkedSource
from memomark.observability.logging import get_logger
from memomark.storage.base import DocumentStore, NotFoundError

logger = get_logger(__name__)

MARKDOWN_SUFFIXES = (".md", ".markdown")


def linked_path(document: Document) -> Optional[Path]:
    """Local file behind a linked document, if its reference is a path.

    Plain paths and ``file://`` URIs resolve to a Path; other schemes are
    opaque and return None.
    """
    reference = document.source_location
    if reference is None:
        return None
    if reference.startswith("file://"):
        return Path(unquote(urlparse(reference).path))
    if "://" in reference:
        return None
    return Path(reference).expanduser()


def export_filename(document: Document) -> str:
    """File name for an exported document."""
    stem = re.sub(r"[^\w\- ]+", "_", document.title).strip(" _")
    return f"{stem or f'document-{document.id}'}.md"


class DocumentLibrary:
    """Use-case layer for the Markdown note library.

    Coordinates the document store with the preference store, and keeps
    linked documents in sync with their files.
    """

    def __init__(
        self,
        store: DocumentStore,
        preferences: PreferenceStore,
        export_dir: Optional[Path] = None,
    ):
        """Initialize document library.

        Args:
            store: Storage for documents
            preferences: Storage for preferences and view history
            export_dir: Default directory for exported documents
        """
        self.store = store
        self.preferences = preferences
        self.export_dir = Path(export_dir).expanduser() if export_dir else None

    async def require(self, document_id: int) -> Document:
        """Fetch a document or raise NotFoundError."""
        document = await self.store.get(document_id)
        if document is None:
            raise NotFoundError(document_id, storage_type=self.store.storage_type)
        return document

    async def new_document(self, title: str = "", content: str = "") -> Document:
        """Create a document owned by the library."""
        document = await self.store.create(title=title, content=content)
        logger.info("document_created", document_id=document.id, title=title)
        return document

    async def import_file(self, path: Path) -> Document:
        """Import a Markdown file as a linked document.

        Args:
            path: File to import

        Returns:
            The new EXTERNAL document

        Raises:
            LibraryError: If the file cannot be read
        """
        path = Path(path).expanduser().resolve()
        if not path.is_file():
            raise LibraryError(f"File not found: {path}")
        if path.suffix.lower() not in MARKDOWN_SUFFIXES:
            logger.warning("import_non_markdown_file", path=str(path))

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise LibraryError(f"Cannot read {path}: {e}") from e

        document = await self.store.create(
            title=path.stem,
            content=content,
            source=LinkedSource(reference=str(path)),
            status=DocumentStatus.EXTERNAL,
        )
        logger.info("document_imported", document_id=document.id, path=str(path))
        return document

    async def open_document(self, document_id: int) -> Document:
        """Open a document for reading or editing.

        Linked documents are refreshed from their file when it still
        exists. The view is recorded in the history.
        """
        document = await self.require(document_id)

        path = linked_path(document)
        if path is not None and path.is_file():
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("linked_file_unreadable", document_id=document.id, error=str(e))
            else:
                if content != document.content:
                    document = await self.store.update(document.edited(content=content))
                    logger.info("document_refreshed", document_id=document.id, path=str(path))

        self.preferences.record_view(document.id)
        return document

    async def edit(
        self,
        document_id: int,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Document:
        """Change title and/or content.

        Linked documents are written back to their file before the store is
        updated, so a failed write leaves the stored document untouched.
        Local documents are exported when automatic export is enabled; an
        export failure after the edit is saved is logged, not raised.

        Raises:
            LibraryError: If the linked file cannot be written, or automatic
                export is on without an export directory
        """
        document = await self.require(document_id)
        changed = document.edited(title=title, content=content)

        path = linked_path(changed)
        auto_export = not changed.is_linked and self.preferences.load().auto_export
        if auto_export and self.export_dir is None:
            raise LibraryError("Automatic export is on but no export directory is configured")

        if path is not None:
            try:
                path.write_text(changed.content, encoding="utf-8")
            except OSError as e:
                raise LibraryError(f"Cannot write linked file {path}: {e}") from e

        document = await self.store.update(changed)
        logger.info("document_edited", document_id=document.id)

        if auto_export:
            try:
                await self.export(document.id)
            except LibraryError as e:
                logger.warning("auto_export_failed", document_id=document.id, error=str(e))

        return document

    async def toggle_star(self, document_id: int) -> Document:
        """Flip the star flag."""
        document = await self.require(document_id)
        if document.is_archived:
            raise LibraryError(f"Document {document_id} is archived and cannot be starred")
        document = await self.store.update(document.with_star(not document.is_starred))
        logger.info("document_star_toggled", document_id=document.id, is_starred=document.is_starred)
        return document

    async def archive(self, document_id: int) -> Document:
        """Move a document to the archive, clearing its star."""
        document = await self.require(document_id)
        if document.is_archived:
            return document
        document = await self.store.update(document.archived())
        logger.info("document_archived", document_id=document.id)
        return document

    async def restore(self, document_id: int) -> Document:
        """Bring an archived document back."""
        document = await self.require(document_id)
        if not document.is_archived:
            return document
        document = await self.store.update(document.restored())
        logger.info("document_restored", document_id=document.id, status=document.status.name)
        return document

    async def delete_permanently(self, document_id: int) -> None:
        """Delete an archived document for good.

        Raises:
            ArchiveRequiredError: If the document is not archived
            NotFoundError: If the document does not exist
        """
        document = await self.require(document_id)
        if not document.is_archived:
            raise ArchiveRequiredError(
                f"Document {document_id} must be archived before it can be deleted"
            )
        await self.store.delete(document)
        self.preferences.forget(document_id)
        logger.info("document_deleted", document_id=document_id)

    async def browse(
        self,
        category: Category,
        sort_order: Optional[SortOrder] = None,
    ) -> list[Document]:
        """Documents of a category, ordered for display.

        Args:
            category: Which documents to show
            sort_order: Order to apply (defaults to the saved list order)
        """
        preferences = self.preferences.load()
        sort_order = sort_order or preferences.list_order

        category = Category(category)
        if category == Category.CREATED:
            documents = await self.store.find_by_status(DocumentStatus.INTERNAL, DocumentStatus.EXTERNAL)
        elif category == Category.STARRED:
            documents = await self.store.find_starred()
        elif category == Category.ARCHIVED:
            documents = await self.store.find_by_status(DocumentStatus.ARCHIVED)
        else:
            documents = []
            for document_id in preferences.recent_document_ids:
                document = await self.store.get(document_id)
                if document is not None:
                    documents.append(document)

        return project(documents, category, sort_order)

    async def export(self, document_id: int, directory: Optional[Path] = None) -> Path:
        """Write a document's content to a Markdown file.

        Args:
            document_id: Document to export
            directory: Target directory (defaults to the library export dir)

        Returns:
            Path of the written file
        """
        document = await self.require(document_id)
        directory = Path(directory).expanduser() if directory else self.export_dir
        if directory is None:
            raise LibraryError("No export directory configured")

        target = directory / export_filename(document)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            target.write_text(document.content, encoding="utf-8")
        except OSError as e:
            raise LibraryError(f"Cannot export to {target}: {e}") from e

        logger.info("document_exported", document_id=document.id, path=str(target))
        return target


class LibraryError(Exception):
    """Exception raised during library operations."""

    pass


class ArchiveRequiredError(LibraryError):
    """Exception raised when deleting a document that is not archived."""

    pass
