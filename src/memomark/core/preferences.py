"""User preferences and recently-viewed history.

Preferences are explicit, serializable view state: the list order, the
display mode, automatic export and the theme color. They live in a small
JSON file next to the document database, together with the history that
feeds the "viewed" category.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from memomark.core.projection import SortOrder
from memomark.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_THEME_COLOR = 0xFF6750A4


class DisplayMode(str, Enum):
    """How the document list is laid out."""

    LIST = "list"
    GRID = "grid"


class Preferences(BaseModel):
    """Persisted user preferences."""

    list_order: SortOrder = SortOrder.CREATED_DATE_DESCEND
    display_mode: DisplayMode = DisplayMode.LIST
    auto_export: bool = Field(default=False, description="Export local documents after each edit")
    theme_color: int = Field(default=DEFAULT_THEME_COLOR, ge=0, le=0xFFFFFFFF, description="ARGB color")
    theme_color_index: int = Field(default=0, ge=0)
    recent_document_ids: list[int] = Field(default_factory=list, description="Most recent first")


class PreferenceStore:
    """Loads and saves Preferences as JSON.

    A missing file yields defaults. A file that cannot be read or parsed is
    logged and replaced by defaults on the next save.
    """

    def __init__(self, path: Path, history_size: int = 20):
        """Initialize preference store.

        Args:
            path: JSON file holding the preferences
            history_size: Maximum number of recently viewed documents kept
        """
        self.path = Path(path).expanduser()
        self.history_size = history_size

    def load(self) -> Preferences:
        if not self.path.exists():
            return Preferences()
        try:
            return Preferences.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            logger.warning("preferences_unreadable", path=str(self.path), error=str(e))
            return Preferences()

    def save(self, preferences: Preferences) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(preferences.model_dump_json(indent=2), encoding="utf-8")
        logger.debug("preferences_saved", path=str(self.path))

    def update(self, **changes) -> Preferences:
        """Apply field changes and persist them.

        Raises:
            ValidationError: If a value is not valid for its field
        """
        current = self.load()
        updated = Preferences.model_validate({**current.model_dump(), **changes})
        self.save(updated)
        logger.info("preferences_updated", fields=sorted(changes))
        return updated

    def record_view(self, document_id: int) -> Preferences:
        """Move a document to the front of the history."""
        current = self.load()
        recent = [document_id] + [i for i in current.recent_document_ids if i != document_id]
        return self.update(recent_document_ids=recent[: self.history_size])

    def forget(self, document_id: int) -> Preferences:
        """Drop a document from the history."""
        current = self.load()
        if document_id not in current.recent_document_ids:
            return current
        recent = [i for i in current.recent_document_ids if i != document_id]
        return self.update(recent_document_ids=recent)
