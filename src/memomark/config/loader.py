"""Configuration loading from files and environment.

Supports:
- TOML config files
- Environment variables (MEMOMARK_* prefix)
- .env files
- Named profiles overlaid on the base config
"""

import os
import re
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from memomark.config.schema import AppConfig
from memomark.observability.logging import get_logger

logger = get_logger(__name__)


def _substitute_env_vars(obj: Any) -> Any:
    """Recursively substitute environment variables in a data structure.

    Supports formats:
    - ${VAR_NAME}
    - ${VAR_NAME:-default}

    Args:
        obj: Input data (dict, list, str, etc.)

    Returns:
        Data structure with environment variables substituted
    """
    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_substitute_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        def replace_var(match):
            var_expr = match.group(1)
            if ":-" in var_expr:
                var_name, default_value = var_expr.split(":-", 1)
                return os.getenv(var_name.strip(), default_value)
            var_name = var_expr.strip()
            value = os.getenv(var_name)
            if value is None:
                # Leave the placeholder in place
                logger.warning(
                    "env_var_not_found",
                    var_name=var_name,
                    suggestion="Check that the environment variable is set",
                )
                return match.group(0)
            return value

        return re.sub(r"\$\{([^}]+)\}", replace_var, obj)
    else:
        return obj


def _merge_profile(base: dict[str, Any], profile: dict[str, Any]) -> dict[str, Any]:
    """Overlay a profile on the base config, merging tables one level deep.

    ``[profiles.x.logging]`` only replaces the keys it sets; the rest of the
    base ``[logging]`` table is kept.
    """
    merged = dict(base)
    for key, value in profile.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config(
    config_path: Optional[Path] = None,
    profile: Optional[str] = None,
    env_file: Optional[Path] = None,
) -> AppConfig:
    """Load application configuration.

    Priority (highest to lowest):
    1. Config file (profile values override base values)
    2. Environment variables and .env values
    3. Defaults

    Args:
        config_path: Path to TOML config file
        profile: Config profile to use (e.g., "scratch")
        env_file: Path to .env file

    Returns:
        Loaded and validated configuration
    """
    if env_file and env_file.exists():
        load_dotenv(env_file)
        logger.info("loaded_env_file", path=str(env_file))

    config_data: dict[str, Any] = {}
    if config_path and config_path.exists():
        with open(config_path, "rb") as f:
            config_data = tomllib.load(f)
        logger.info("loaded_config_file", path=str(config_path))

        if profile and profile in config_data.get("profiles", {}):
            profile_data = config_data["profiles"][profile]
            config_data = _merge_profile(config_data, profile_data)
            logger.info("applied_profile", profile=profile)
        elif profile:
            logger.warning("profile_not_found", profile=profile, path=str(config_path))

        config_data = _substitute_env_vars(config_data)
        logger.debug("substituted_env_vars_in_config")

        config_data.pop("profiles", None)

    config = AppConfig(**config_data)
    logger.info(
        "config_loaded",
        log_level=config.log_level,
        data_dir=str(config.data_dir),
        document_store=config.document_store.store_type,
    )

    return config


def get_default_config_path() -> Path:
    """Get the default config file path.

    Searches in order:
    1. ./config.toml
    2. ~/.memomark/config.toml
    3. /etc/memomark/config.toml
    """
    search_paths = [
        Path.cwd() / "config.toml",
        Path.home() / ".memomark" / "config.toml",
        Path("/etc/memomark/config.toml"),
    ]

    for path in search_paths:
        if path.exists():
            return path

    return search_paths[0]
