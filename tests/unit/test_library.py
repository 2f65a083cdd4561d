"""Unit tests for DocumentLibrary."""

import pytest

from memomark.core.library import (
    ArchiveRequiredError,
    DocumentLibrary,
    LibraryError,
    export_filename,
    linked_path,
)
from memomark.core.preferences import PreferenceStore
from memomark.core.projection import Category, SortOrder
from memomark.entities import Document, DocumentStatus, LinkedSource
from memomark.storage import NotFoundError
from memomark.storage.base import StorageConfig
from memomark.storage.memory import InMemoryDocumentStore


@pytest.mark.asyncio
class TestDocumentLibrary:
    """Test DocumentLibrary functionality."""

    @pytest.fixture
    async def library(self, tmp_path):
        """Create a library over an in-memory store."""
        store = InMemoryDocumentStore(StorageConfig(store_type="memory"))
        await store.initialize()
        preferences = PreferenceStore(tmp_path / "preferences.json", history_size=5)
        yield DocumentLibrary(store, preferences, export_dir=tmp_path / "exports")
        await store.close()

    @pytest.fixture
    def markdown_file(self, tmp_path):
        path = tmp_path / "notes" / "journal.md"
        path.parent.mkdir()
        path.write_text("# Journal\n\nDay one.", encoding="utf-8")
        return path

    async def test_new_document(self, library):
        doc = await library.new_document("Ideas", "- one")

        assert doc.status == DocumentStatus.INTERNAL
        assert not doc.is_linked
        assert (await library.store.get(doc.id)).title == "Ideas"

    async def test_import_file(self, library, markdown_file):
        doc = await library.import_file(markdown_file)

        assert doc.title == "journal"
        assert doc.content == "# Journal\n\nDay one."
        assert doc.status == DocumentStatus.EXTERNAL
        assert doc.source_location == str(markdown_file.resolve())

    async def test_import_missing_file(self, library, tmp_path):
        with pytest.raises(LibraryError, match="File not found"):
            await library.import_file(tmp_path / "nope.md")
        assert await library.store.count() == 0

    async def test_open_refreshes_linked_content(self, library, markdown_file):
        doc = await library.import_file(markdown_file)
        markdown_file.write_text("# Journal\n\nDay two.", encoding="utf-8")

        opened = await library.open_document(doc.id)

        assert opened.content == "# Journal\n\nDay two."
        assert (await library.store.get(doc.id)).content == "# Journal\n\nDay two."

    async def test_open_records_history(self, library):
        first = await library.new_document("first")
        second = await library.new_document("second")

        await library.open_document(first.id)
        await library.open_document(second.id)

        assert library.preferences.load().recent_document_ids == [second.id, first.id]

    async def test_open_missing_document(self, library):
        with pytest.raises(NotFoundError):
            await library.open_document(12)

    async def test_edit_writes_back_linked_file(self, library, markdown_file):
        doc = await library.import_file(markdown_file)

        await library.edit(doc.id, content="rewritten")

        assert markdown_file.read_text(encoding="utf-8") == "rewritten"

    async def test_edit_auto_exports_local_documents(self, library, tmp_path):
        library.preferences.update(auto_export=True)
        doc = await library.new_document("Shopping list", "eggs")

        await library.edit(doc.id, content="eggs, flour")

        exported = tmp_path / "exports" / "Shopping list.md"
        assert exported.read_text(encoding="utf-8") == "eggs, flour"

    async def test_edit_auto_export_without_directory_saves_nothing(self, library):
        bare = DocumentLibrary(library.store, library.preferences, export_dir=None)
        bare.preferences.update(auto_export=True)
        doc = await bare.new_document("Shopping list", "eggs")

        with pytest.raises(LibraryError):
            await bare.edit(doc.id, content="eggs, flour")

        assert (await bare.store.get(doc.id)).content == "eggs"

    async def test_edit_keeps_saved_content_when_export_fails(self, library, tmp_path):
        library.preferences.update(auto_export=True)
        doc = await library.new_document("Shopping list", "eggs")
        # A file where the export directory should be makes the export fail
        (tmp_path / "exports").write_text("in the way", encoding="utf-8")

        edited = await library.edit(doc.id, content="eggs, flour")

        assert edited.content == "eggs, flour"
        assert (await library.store.get(doc.id)).content == "eggs, flour"

    async def test_edit_unwritable_linked_file_leaves_store_unchanged(self, library, markdown_file):
        doc = await library.import_file(markdown_file)
        markdown_file.unlink()
        markdown_file.mkdir()

        with pytest.raises(LibraryError):
            await library.edit(doc.id, content="rewritten")

        assert (await library.store.get(doc.id)).content == "# Journal\n\nDay one."

    async def test_edit_without_auto_export_writes_nothing(self, library, tmp_path):
        doc = await library.new_document("Plain", "x")
        await library.edit(doc.id, title="Still plain")
        assert not (tmp_path / "exports").exists()

    async def test_toggle_star(self, library):
        doc = await library.new_document("s")

        starred = await library.toggle_star(doc.id)
        unstarred = await library.toggle_star(doc.id)

        assert starred.is_starred is True
        assert unstarred.is_starred is False
        assert unstarred.modified_date == doc.modified_date

    async def test_cannot_star_archived(self, library):
        doc = await library.new_document("s")
        await library.archive(doc.id)

        with pytest.raises(LibraryError, match="archived"):
            await library.toggle_star(doc.id)

    async def test_archive_clears_star(self, library):
        doc = await library.new_document("s")
        await library.toggle_star(doc.id)

        archived = await library.archive(doc.id)

        assert archived.status == DocumentStatus.ARCHIVED
        assert archived.is_starred is False

    async def test_restore_linked_document(self, library, markdown_file):
        doc = await library.import_file(markdown_file)
        await library.archive(doc.id)

        restored = await library.restore(doc.id)

        assert restored.status == DocumentStatus.EXTERNAL

    async def test_delete_requires_archive(self, library):
        doc = await library.new_document("keep me")

        with pytest.raises(ArchiveRequiredError):
            await library.delete_permanently(doc.id)

        assert await library.store.get(doc.id) is not None

    async def test_delete_archived_document(self, library):
        doc = await library.new_document("bye")
        await library.open_document(doc.id)
        await library.archive(doc.id)

        await library.delete_permanently(doc.id)

        assert await library.store.get(doc.id) is None
        assert doc.id not in library.preferences.load().recent_document_ids

    async def test_delete_missing_document(self, library):
        with pytest.raises(NotFoundError):
            await library.delete_permanently(3)

    async def test_browse_categories(self, library):
        a = await library.new_document("b-note")
        b = await library.new_document("a-note")
        c = await library.new_document("c-note")
        await library.toggle_star(a.id)
        await library.archive(c.id)

        created = await library.browse(Category.CREATED, SortOrder.TITLE_ASCEND)
        starred = await library.browse(Category.STARRED)
        archived = await library.browse(Category.ARCHIVED)

        assert [d.id for d in created] == [b.id, a.id]
        assert [d.id for d in starred] == [a.id]
        assert [d.id for d in archived] == [c.id]

    async def test_browse_uses_saved_order(self, library):
        await library.new_document("b")
        await library.new_document("a")
        library.preferences.update(list_order=SortOrder.TITLE_DESCEND)

        docs = await library.browse(Category.CREATED)

        assert [d.title for d in docs] == ["b", "a"]

    async def test_browse_viewed(self, library):
        a = await library.new_document("a")
        b = await library.new_document("b")
        await library.new_document("never opened")
        await library.open_document(a.id)
        await library.open_document(b.id)

        docs = await library.browse(Category.VIEWED, SortOrder.TITLE_ASCEND)

        assert [d.title for d in docs] == ["a", "b"]

    async def test_export(self, library, tmp_path):
        doc = await library.new_document("Report: Q1/Q2", "numbers")

        target = await library.export(doc.id, tmp_path / "out")

        assert target.parent == tmp_path / "out"
        assert target.read_text(encoding="utf-8") == "numbers"


def test_export_filename():
    assert export_filename(Document(id=4, title="My notes")) == "My notes.md"
    assert export_filename(Document(id=4, title="a/b")) == "a_b.md"
    assert export_filename(Document(id=4, title="")) == "document-4.md"


def test_linked_path():
    local = Document(id=1)
    plain = Document(id=2, source=LinkedSource(reference="/notes/a.md"), status=DocumentStatus.EXTERNAL)
    uri = Document(id=3, source=LinkedSource(reference="file:///notes/my%20b.md"), status=DocumentStatus.EXTERNAL)
    opaque = Document(
        id=4,
        source=LinkedSource(reference="content://provider/doc/7"),
        status=DocumentStatus.EXTERNAL,
    )

    assert linked_path(local) is None
    assert str(linked_path(plain)) == "/notes/a.md"
    assert str(linked_path(uri)) == "/notes/my b.md"
    assert linked_path(opaque) is None
