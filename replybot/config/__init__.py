"""Configuration module for ReplyBot."""

from replybot.config.loader import get_config_path, load_config, save_config
from replybot.config.schema import (
    AIConfig,
    AutoReplyConfig,
    Config,
    ReplyRule,
    SessionConfig,
    StatsConfig,
    WorkingHoursConfig,
)

__all__ = [
    "Config",
    "AutoReplyConfig",
    "AIConfig",
    "ReplyRule",
    "SessionConfig",
    "StatsConfig",
    "WorkingHoursConfig",
    "get_config_path",
    "load_config",
    "save_config",
]
