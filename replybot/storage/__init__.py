"""Durable storage for ReplyBot."""

from replybot.storage.store import DurableStore, JsonFileStore, MemoryStore

__all__ = ["DurableStore", "JsonFileStore", "MemoryStore"]
