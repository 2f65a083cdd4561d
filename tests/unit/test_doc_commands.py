"""Unit tests for the document CLI commands."""

import json
import os
import subprocess
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import typer
from typer.testing import CliRunner

from memomark.core.library import DocumentLibrary
from memomark.core.preferences import PreferenceStore
from memomark.core.projection import Category, SortOrder
from memomark.entities import DocumentStatus
from memomark.interfaces.cli import (
    _archive_async,
    _delete_async,
    _edit_async,
    _list_async,
    _new_async,
    _parse_color,
    _show_async,
    _star_async,
    app,
)
from memomark.storage.base import StorageConfig
from memomark.storage.memory import InMemoryDocumentStore


@pytest.fixture
async def library(tmp_path):
    """Library over an in-memory store; closing the store keeps its data."""
    store = InMemoryDocumentStore(StorageConfig(store_type="memory"))
    await store.initialize()
    return DocumentLibrary(
        store,
        PreferenceStore(tmp_path / "preferences.json"),
        export_dir=tmp_path / "exports",
    )


@pytest.mark.asyncio
class TestDocumentCommands:
    """Test the async command implementations."""

    @patch("memomark.interfaces.cli._load_config")
    @patch("memomark.interfaces.cli._open_library")
    async def test_new_creates_document(self, mock_open, mock_load_config, library):
        mock_load_config.return_value = MagicMock()
        mock_open.return_value = library

        await _new_async(title="Inbox", content="- call Sam", content_file=None, config_file=None)

        docs = await library.store.find_all()
        assert len(docs) == 1
        assert docs[0].title == "Inbox"
        assert docs[0].content == "- call Sam"

    @patch("memomark.interfaces.cli._load_config")
    @patch("memomark.interfaces.cli._open_library")
    async def test_new_reads_content_file(self, mock_open, mock_load_config, library, tmp_path):
        mock_load_config.return_value = MagicMock()
        mock_open.return_value = library
        source = tmp_path / "draft.md"
        source.write_text("# Draft", encoding="utf-8")

        await _new_async(title="Draft", content=None, content_file=source, config_file=None)

        doc = (await library.store.find_all())[0]
        assert doc.content == "# Draft"
        # Copied, not linked
        assert doc.status == DocumentStatus.INTERNAL

    async def test_edit_without_changes_exits(self):
        with pytest.raises(typer.Exit):
            await _edit_async(1, title=None, content=None, content_file=None, config_file=None)

    @patch("memomark.interfaces.cli._load_config")
    @patch("memomark.interfaces.cli._open_library")
    async def test_edit_updates_document(self, mock_open, mock_load_config, library):
        mock_load_config.return_value = MagicMock()
        mock_open.return_value = library
        doc = await library.new_document("Old", "text")

        await _edit_async(doc.id, title="New", content=None, content_file=None, config_file=None)

        stored = await library.store.get(doc.id)
        assert stored.title == "New"
        assert stored.content == "text"

    @patch("memomark.interfaces.cli._load_config")
    @patch("memomark.interfaces.cli._open_library")
    async def test_star_toggles(self, mock_open, mock_load_config, library):
        mock_load_config.return_value = MagicMock()
        mock_open.return_value = library
        doc = await library.new_document("s")

        await _star_async(doc.id, config_file=None)

        assert (await library.store.get(doc.id)).is_starred is True

    @patch("memomark.interfaces.cli._load_config")
    @patch("memomark.interfaces.cli._open_library")
    async def test_show_missing_document_exits(self, mock_open, mock_load_config, library):
        mock_load_config.return_value = MagicMock()
        mock_open.return_value = library

        with pytest.raises(typer.Exit):
            await _show_async(404, full=False, raw=False, json_output=False, config_file=None)

    @patch("memomark.interfaces.cli._load_config")
    @patch("memomark.interfaces.cli._open_library")
    async def test_show_json(self, mock_open, mock_load_config, library, capsys):
        mock_load_config.return_value = MagicMock()
        mock_open.return_value = library
        doc = await library.new_document("Shown", "[not markup] body")

        await _show_async(doc.id, full=True, raw=False, json_output=True, config_file=None)

        payload = json.loads(capsys.readouterr().out)
        assert payload["id"] == doc.id
        assert payload["content"] == "[not markup] body"
        assert payload["status"] == "INTERNAL"
        assert library.preferences.load().recent_document_ids == [doc.id]

    @patch("memomark.interfaces.cli._load_config")
    @patch("memomark.interfaces.cli._open_library")
    async def test_delete_requires_archive(self, mock_open, mock_load_config, library):
        mock_load_config.return_value = MagicMock()
        mock_open.return_value = library
        doc = await library.new_document("live")

        with pytest.raises(typer.Exit):
            await _delete_async(doc.id, force=True, config_file=None)

        assert await library.store.get(doc.id) is not None

    @patch("memomark.interfaces.cli._load_config")
    @patch("memomark.interfaces.cli._open_library")
    async def test_delete_archived_with_force(self, mock_open, mock_load_config, library):
        mock_load_config.return_value = MagicMock()
        mock_open.return_value = library
        doc = await library.new_document("old")

        await _archive_async(doc.id, config_file=None)
        await _delete_async(doc.id, force=True, config_file=None)

        assert await library.store.get(doc.id) is None

    @patch("memomark.interfaces.cli.typer.confirm")
    @patch("memomark.interfaces.cli._load_config")
    @patch("memomark.interfaces.cli._open_library")
    async def test_delete_cancelled(self, mock_open, mock_load_config, mock_confirm, library):
        mock_load_config.return_value = MagicMock()
        mock_open.return_value = library
        mock_confirm.side_effect = typer.Abort()
        doc = await library.archive((await library.new_document("maybe")).id)

        with pytest.raises(typer.Exit):
            await _delete_async(doc.id, force=False, config_file=None)

        assert await library.store.get(doc.id) is not None

    @patch("memomark.interfaces.cli._load_config")
    @patch("memomark.interfaces.cli._open_library")
    async def test_list_json(self, mock_open, mock_load_config, library, capsys):
        mock_load_config.return_value = MagicMock()
        mock_open.return_value = library
        await library.new_document("banana")
        await library.new_document("Apple")
        await library.new_document("cherry")

        await _list_async(Category.CREATED, SortOrder.TITLE_ASCEND, json_output=True, config_file=None)

        result = json.loads(capsys.readouterr().out)
        assert result["total_documents"] == 3
        assert result["sort"] == "title_ascend"
        assert [d["title"] for d in result["documents"]] == ["Apple", "banana", "cherry"]


def test_parse_color():
    assert _parse_color("#6750A4") == 0xFF6750A4
    assert _parse_color("0x806750A4") == 0x806750A4
    with pytest.raises(typer.BadParameter):
        _parse_color("#123")
    with pytest.raises(typer.BadParameter):
        _parse_color("#zzzzzz")


class TestCliEndToEnd:
    """Run commands through typer against a SQLite file."""

    @pytest.fixture
    def config_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            f'data_dir = "{tmp_path / "data"}"\n'
            "\n"
            "[document_store]\n"
            'store_type = "sqlite"\n'
            f'connection_string = "sqlite:///{tmp_path / "data" / "documents.db"}"\n',
            encoding="utf-8",
        )
        return path

    def test_document_lifecycle(self, config_file):
        runner = CliRunner()
        config = ["--config", str(config_file)]

        result = runner.invoke(app, ["new", "Groceries", "--content", "- milk", *config])
        assert result.exit_code == 0, result.output
        assert "Created document 1" in result.output

        assert runner.invoke(app, ["star", "1", *config]).exit_code == 0

        result = runner.invoke(app, ["list", "--category", "starred", "--json", *config])
        assert result.exit_code == 0, result.output
        listed = json.loads(result.output)
        assert [d["id"] for d in listed["documents"]] == [1]

        result = runner.invoke(app, ["delete", "1", "--force", *config])
        assert result.exit_code == 1
        assert "not archived" in result.output

        assert runner.invoke(app, ["archive", "1", *config]).exit_code == 0

        result = runner.invoke(app, ["list", "--category", "archived", "--json", *config])
        archived = json.loads(result.output)["documents"]
        assert archived[0]["is_starred"] is False

        result = runner.invoke(app, ["delete", "1", "--force", *config])
        assert result.exit_code == 0, result.output

        result = runner.invoke(app, ["list", "--category", "archived", "--json", *config])
        assert json.loads(result.output)["total_documents"] == 0

    def test_prefs_set_and_show(self, config_file):
        runner = CliRunner()
        config = ["--config", str(config_file)]

        result = runner.invoke(app, ["prefs", "set", "--sort", "title_descend", "--auto-export", *config])
        assert result.exit_code == 0, result.output

        result = runner.invoke(app, ["prefs", "show", *config])
        assert result.exit_code == 0
        assert "title_descend" in result.output
        assert "on" in result.output

    def test_json_output_is_clean_in_a_fresh_process(self, tmp_path):
        """Logs go to stderr, so stdout of a new process parses as JSON."""
        config_path = tmp_path / "debug.toml"
        config_path.write_text(
            f'data_dir = "{tmp_path / "data"}"\n'
            'log_level = "DEBUG"\n'
            "\n"
            "[document_store]\n"
            f'connection_string = "sqlite:///{tmp_path / "data" / "documents.db"}"\n',
            encoding="utf-8",
        )
        src_dir = Path(__file__).resolve().parents[2] / "src"
        env = {**os.environ, "PYTHONPATH": os.pathsep.join(filter(None, [str(src_dir), os.environ.get("PYTHONPATH")]))}
        command = [sys.executable, "-m", "memomark.interfaces.cli"]

        created = subprocess.run(
            [*command, "new", "Fresh", "--config", str(config_path)],
            capture_output=True, text=True, env=env, check=False,
        )
        assert created.returncode == 0, created.stderr

        listed = subprocess.run(
            [*command, "list", "--json", "--config", str(config_path)],
            capture_output=True, text=True, env=env, check=False,
        )

        assert listed.returncode == 0, listed.stderr
        payload = json.loads(listed.stdout)
        assert [d["title"] for d in payload["documents"]] == ["Fresh"]
        assert "sqlite_store_initialized" in listed.stderr

    def test_prefs_set_requires_a_value(self, config_file):
        result = CliRunner().invoke(app, ["prefs", "set", "--config", str(config_file)])
        assert result.exit_code == 1
