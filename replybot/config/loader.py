"""Configuration loading utilities."""

import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from replybot.config.schema import Config
from replybot.errors import ConfigurationError


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".replybot" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Keys may use the snake_case field names or the camelCase names used by
    the plugin marketplace format (``replyMode``, ``keywordRules``...).

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.

    Raises:
        ConfigurationError: If the file exists but is not a valid config.
    """
    path = config_path or get_config_path()

    if not path.exists():
        logger.debug(f"No config at {path}, using defaults")
        return Config()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigurationError(f"Failed to read config from {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config in {path} must be a JSON object")

    # Bare plugin configs (without the auto_reply wrapper) are accepted too
    if not {"auto_reply", "autoReply", "log_level"} & data.keys():
        data = {"auto_reply": data}
    if "autoReply" in data:
        data["auto_reply"] = data.pop("autoReply")

    try:
        return Config(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config in {path}: {e}") from e


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(mode="json")

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
