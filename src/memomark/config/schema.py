"""Configuration schema using Pydantic.

Why this exists:
- Type-safe configuration with validation
- Environment variable support
- Multiple profiles (e.g. a throwaway in-memory profile)
- Clear documentation of all settings

How to extend:
1. Add new fields to existing config classes
2. Create new config classes for new components
3. Document the new settings in config.toml
"""

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DocumentStoreType(str, Enum):
    """Supported document stores."""

    SQLITE = "sqlite"
    MEMORY = "memory"


class DocumentStoreConfig(BaseModel):
    """Document store configuration."""

    store_type: DocumentStoreType = DocumentStoreType.SQLITE
    connection_string: Optional[str] = "sqlite:///~/.memomark/documents.db"
    extra_params: dict[str, Any] = Field(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        """Expand ~ in connection string."""
        if self.connection_string and "~" in self.connection_string:
            self.connection_string = self.connection_string.replace(
                "~", str(Path.home())
            )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = LogLevel.WARNING
    log_dir: Path = Field(default=Path.home() / ".memomark" / "logs")
    max_days: int = Field(default=30, gt=0, description="Days of log files to keep")
    enable_file: bool = False

    def model_post_init(self, __context: Any) -> None:
        """Expand ~ in paths."""
        self.log_dir = self.log_dir.expanduser()


class AppConfig(BaseSettings):
    """Main application configuration.

    Loads from:
    1. Config file (TOML), passed in as init values
    2. Environment variables (prefixed with MEMOMARK_)
    3. .env file loaded by the config loader
    """

    model_config = SettingsConfigDict(
        env_prefix="MEMOMARK_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    # Application settings
    app_name: str = "memomark"
    log_level: LogLevel = LogLevel.WARNING
    json_logs: bool = False
    data_dir: Path = Field(default=Path.home() / ".memomark")
    export_dir: Optional[Path] = None
    history_size: int = Field(default=20, gt=0, description="Recently viewed documents to remember")

    # Component configurations
    document_store: DocumentStoreConfig = Field(default_factory=DocumentStoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def model_post_init(self, __context: Any) -> None:
        """Post-initialization: create data directory if needed."""
        self.data_dir = self.data_dir.expanduser()
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if self.export_dir is None:
            self.export_dir = self.data_dir / "exports"
        else:
            self.export_dir = self.export_dir.expanduser()

    @property
    def preferences_path(self) -> Path:
        return self.data_dir / "preferences.json"
