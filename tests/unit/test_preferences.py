"""Unit tests for preferences and view history."""

import pytest
from pydantic import ValidationError

from memomark.core.preferences import DEFAULT_THEME_COLOR, DisplayMode, PreferenceStore, Preferences
from memomark.core.projection import SortOrder


@pytest.fixture
def prefs(tmp_path):
    return PreferenceStore(tmp_path / "prefs" / "preferences.json", history_size=3)


def test_missing_file_gives_defaults(prefs):
    loaded = prefs.load()
    assert loaded == Preferences()
    assert loaded.list_order == SortOrder.CREATED_DATE_DESCEND
    assert loaded.display_mode == DisplayMode.LIST
    assert loaded.auto_export is False
    assert loaded.theme_color == DEFAULT_THEME_COLOR


def test_update_persists(prefs):
    prefs.update(list_order=SortOrder.TITLE_ASCEND, display_mode=DisplayMode.GRID, auto_export=True)

    reloaded = PreferenceStore(prefs.path).load()

    assert reloaded.list_order == SortOrder.TITLE_ASCEND
    assert reloaded.display_mode == DisplayMode.GRID
    assert reloaded.auto_export is True


def test_update_rejects_invalid_values(prefs):
    with pytest.raises(ValidationError):
        prefs.update(theme_color=-1)
    assert not prefs.path.exists()


def test_corrupt_file_falls_back_to_defaults(prefs):
    prefs.path.parent.mkdir(parents=True)
    prefs.path.write_text("{not json", encoding="utf-8")

    assert prefs.load() == Preferences()


def test_undecodable_file_falls_back_to_defaults(prefs):
    prefs.path.parent.mkdir(parents=True)
    prefs.path.write_bytes(b"\xff\xfe{garbage")

    assert prefs.load() == Preferences()

    # The next update replaces the unreadable file
    prefs.update(auto_export=True)
    assert PreferenceStore(prefs.path).load().auto_export is True


def test_record_view_moves_to_front_and_dedupes(prefs):
    prefs.record_view(1)
    prefs.record_view(2)
    prefs.record_view(1)

    assert prefs.load().recent_document_ids == [1, 2]


def test_history_is_capped(prefs):
    for document_id in range(1, 6):
        prefs.record_view(document_id)

    assert prefs.load().recent_document_ids == [5, 4, 3]


def test_forget(prefs):
    prefs.record_view(1)
    prefs.record_view(2)

    prefs.forget(1)
    prefs.forget(99)

    assert prefs.load().recent_document_ids == [2]
