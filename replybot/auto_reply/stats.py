"""
Reply statistics for auto-reply.

Tracks:
- Total replies
- Replies by kind (keyword / ai / fallback)

Counters are flushed to the durable store every ``flush_every`` replies.
Flushing is best effort: a crash may lose the last few increments, and a
failed flush keeps the in-memory counters.
"""

import asyncio
from dataclasses import dataclass
from typing import Any

from loguru import logger

from replybot.auto_reply.policy import ReplyKind
from replybot.storage.store import DurableStore

STATS_KEY = "stats.json"


@dataclass
class ReplyStats:
    """Process-wide reply counters."""
    total_replies: int = 0
    keyword_matches: int = 0
    ai_replies: int = 0
    fallback_replies: int = 0

    def to_dict(self) -> dict[str, int]:
        """Serialize with the plugin's camelCase keys."""
        return {
            "totalReplies": self.total_replies,
            "keywordMatches": self.keyword_matches,
            "aiReplies": self.ai_replies,
            "fallbackReplies": self.fallback_replies,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReplyStats":
        return cls(
            total_replies=int(data.get("totalReplies", 0)),
            keyword_matches=int(data.get("keywordMatches", 0)),
            ai_replies=int(data.get("aiReplies", 0)),
            fallback_replies=int(data.get("fallbackReplies", 0)),
        )


class StatsRecorder:
    """Counts replies and periodically persists the counters."""

    _FIELDS = {
        ReplyKind.KEYWORD: "keyword_matches",
        ReplyKind.AI: "ai_replies",
        ReplyKind.FALLBACK: "fallback_replies",
    }

    def __init__(self, store: DurableStore, flush_every: int = 10):
        self.store = store
        self.flush_every = flush_every
        self.stats = ReplyStats()

        self._flush_tasks: set[asyncio.Task] = set()
        self._flush_count = 0
        self._flush_errors = 0
        self._flush_lock = asyncio.Lock()

    def record(self, kind: ReplyKind | str) -> None:
        """Count one reply of the given kind."""
        kind = ReplyKind(kind)

        self.stats.total_replies += 1
        field_name = self._FIELDS[kind]
        setattr(self.stats, field_name, getattr(self.stats, field_name) + 1)

        if self.flush_every and self.stats.total_replies % self.flush_every == 0:
            self._schedule_flush()

    def _schedule_flush(self) -> None:
        task = asyncio.create_task(self.flush())
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)

    async def flush(self) -> bool:
        """
        Write the current snapshot to the store.

        Returns:
            True if written, False if the write failed.
        """
        # Serialized so the stored counters never go backwards
        async with self._flush_lock:
            snapshot = self.snapshot()
            self._flush_count += 1
            try:
                await self.store.write_json(STATS_KEY, snapshot)
            except Exception as e:
                self._flush_errors += 1
                logger.error(f"Failed to save reply stats: {e}")
                return False

        logger.debug(f"Reply stats saved: {snapshot}")
        return True

    async def load(self) -> None:
        """Restore counters from the store, if a snapshot exists."""
        try:
            data = await self.store.read_json(STATS_KEY)
        except Exception as e:
            logger.warning(f"Could not load reply stats, starting from zero: {e}")
            return

        if isinstance(data, dict):
            self.stats = ReplyStats.from_dict(data)
            logger.info(f"Reply stats restored: {self.stats.total_replies} total replies")

    async def wait_flushed(self) -> None:
        """Wait for scheduled flushes to finish."""
        if self._flush_tasks:
            await asyncio.gather(*self._flush_tasks, return_exceptions=True)

    def snapshot(self) -> dict[str, int]:
        """Current counters."""
        return self.stats.to_dict()

    @property
    def flush_count(self) -> int:
        """Number of flush attempts so far."""
        return self._flush_count

    def get_stats(self) -> dict[str, Any]:
        return {
            **self.snapshot(),
            "flushCount": self._flush_count,
            "flushErrors": self._flush_errors,
        }
