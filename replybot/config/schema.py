"""Configuration schema using Pydantic."""

import re
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict


_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class _Section(BaseModel):
    """Base for config sections; accepts snake_case and camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReplyRule(_Section):
    """A curated keyword -> canned response mapping."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    keywords: tuple[str, ...] = ()
    response: str = ""
    enabled: bool = True
    name: str = ""  # Optional label for logs


class AIConfig(_Section):
    """AI reply generation configuration."""
    provider: str = ""  # e.g. "openai", "anthropic", "openrouter"
    model: str = ""
    system_prompt: str = "You are a helpful customer service assistant."
    max_tokens: int = 500
    api_key: str = ""
    api_base: str | None = None
    timeout_seconds: float = 30.0  # Bounded wait for the AI call


class WorkingHoursConfig(_Section):
    """
    Local-time window in which automatic replies are sent.

    Both bounds are inclusive. Windows that wrap past midnight
    (start > end) are not supported.
    """
    enabled: bool = False
    timezone: str = "Asia/Shanghai"
    start: str = "09:00"
    end: str = "18:00"

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown time zone {value!r}") from e
        return value

    @field_validator("start", "end")
    @classmethod
    def _check_hhmm(cls, value: str) -> str:
        if not _HHMM.match(value):
            raise ValueError(f"expected zero-padded 24-hour HH:MM, got {value!r}")
        return value

    @property
    def wraps_midnight(self) -> bool:
        """True if the window is configured past midnight (unsupported)."""
        return self.start > self.end


class SessionConfig(_Section):
    """Conversation session retention."""
    max_sessions: int = 10_000  # LRU capacity, 0 = unbounded
    idle_ttl_seconds: int = 86_400  # Evict after a day of silence, 0 = never
    history_limit: int = 20


class StatsConfig(_Section):
    """Reply statistics persistence."""
    flush_every: int = 10
    storage_dir: str = "~/.replybot/data"


class AutoReplyConfig(_Section):
    """Auto-reply plugin configuration."""
    enabled: bool = False
    reply_mode: str = "hybrid"  # keyword | ai | hybrid; anything else -> fallback
    keyword_rules: list[ReplyRule] = Field(default_factory=list)
    ai_config: AIConfig = Field(default_factory=AIConfig)
    working_hours: WorkingHoursConfig = Field(default_factory=WorkingHoursConfig)
    response_delay: float = 2.0  # Seconds; negative is treated as zero
    fallback_message: str = "Thanks for your message! We'll get back to you shortly."
    bot_id: str = "bot@c.us"  # Own account id, used for self/mention checks
    account_id: str = ""  # Account notifications are delivered to
    max_message_length: int = 4096
    sessions: SessionConfig = Field(default_factory=SessionConfig)
    stats: StatsConfig = Field(default_factory=StatsConfig)

    @property
    def mode(self) -> str:
        """Reply mode with a blank value treated as hybrid."""
        return self.reply_mode.strip() or "hybrid"

    @property
    def uses_ai(self) -> bool:
        """Whether the configured mode may call the AI generator."""
        return self.mode in ("ai", "hybrid")


class Config(BaseSettings):
    """Root configuration for ReplyBot."""
    model_config = SettingsConfigDict(
        env_prefix="REPLYBOT_",
        env_nested_delimiter="__",
    )

    auto_reply: AutoReplyConfig = Field(default_factory=AutoReplyConfig)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @property
    def storage_path(self) -> Path:
        """Get expanded stats storage directory."""
        return Path(self.auto_reply.stats.storage_dir).expanduser()
