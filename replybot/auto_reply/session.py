"""
Per-conversation session state for auto-reply.

Provides:
- Lazy session creation with activity tracking
- Bounded conversation history
- Per-conversation locking (different conversations never block each other)
- LRU capacity and idle-TTL eviction
"""

import asyncio
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable

from loguru import logger


DEFAULT_HISTORY_LIMIT = 20


@dataclass
class Session:
    """Conversation state shared across messages of one conversation."""
    conversation_id: str
    started_at: float = field(default_factory=time.time)
    last_activity_at: float = field(default_factory=time.time)
    message_count: int = 0
    history: list[str] = field(default_factory=list)
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def turns(self) -> int:
        """Number of complete user/reply turns in history."""
        return len(self.history) // 2


class SessionStore:
    """
    Owns all sessions. Sessions are only mutated through this store.

    Work on one conversation is serialized with ``lock()``; sessions of
    other conversations stay independent.
    """

    def __init__(
        self,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        max_sessions: int = 0,  # 0 = unbounded
        idle_ttl_seconds: float = 0,  # 0 = never expire
        clock: Callable[[], float] = time.time,
    ):
        self.history_limit = history_limit
        self.max_sessions = max_sessions
        self.idle_ttl_seconds = idle_ttl_seconds
        self._clock = clock

        # Least recently active first
        self._sessions: OrderedDict[str, Session] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}  # Holders + waiters per conversation
        self._evicted_count = 0

    @asynccontextmanager
    async def lock(self, conversation_id: str) -> AsyncIterator[None]:
        """Serialize read-modify-write work on one conversation."""
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock

        self._lock_users[conversation_id] = self._lock_users.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users[conversation_id] - 1
            if remaining:
                self._lock_users[conversation_id] = remaining
            else:
                del self._lock_users[conversation_id]
                if conversation_id not in self._sessions:
                    self._locks.pop(conversation_id, None)

    def get_or_create(self, conversation_id: str) -> Session:
        """
        Get the session for a conversation, creating it on first use.

        Counts the message and refreshes the activity timestamp.
        """
        now = self._clock()
        session = self._sessions.get(conversation_id)

        if session is None:
            session = Session(
                conversation_id=conversation_id,
                started_at=now,
                last_activity_at=now,
            )
            self._sessions[conversation_id] = session
            logger.debug(f"Session created: {conversation_id}")
            self._evict_over_capacity()
        else:
            self._sessions.move_to_end(conversation_id)

        session.last_activity_at = now
        session.message_count += 1
        return session

    def get(self, conversation_id: str) -> Session | None:
        """Get a session without touching it."""
        return self._sessions.get(conversation_id)

    def append_turn(self, session: Session, user_text: str, reply_text: str) -> None:
        """Record a user message and its reply, keeping the newest entries."""
        session.history.append(user_text)
        session.history.append(reply_text)

        if len(session.history) > self.history_limit:
            session.history = session.history[-self.history_limit:]

    def sweep(self, now: float | None = None) -> int:
        """
        Remove sessions idle longer than the TTL.

        Returns:
            Number of sessions evicted.
        """
        if not self.idle_ttl_seconds:
            return 0

        now = self._clock() if now is None else now
        cutoff = now - self.idle_ttl_seconds

        expired = [
            cid for cid, session in self._sessions.items()
            if session.last_activity_at < cutoff and not self._is_locked(cid)
        ]
        for cid in expired:
            self._evict(cid)

        if expired:
            logger.debug(f"Session sweep evicted {len(expired)} idle sessions")
        return len(expired)

    def clear(self) -> None:
        """Drop all sessions."""
        self._sessions.clear()
        self._locks = {cid: lock for cid, lock in self._locks.items() if self._is_locked(cid)}

    def _evict_over_capacity(self) -> None:
        if not self.max_sessions:
            return

        # Oldest first; sessions in use are skipped
        for cid in list(self._sessions):
            if len(self._sessions) <= self.max_sessions:
                break
            if self._is_locked(cid):
                continue
            self._evict(cid)

    def _evict(self, conversation_id: str) -> None:
        self._sessions.pop(conversation_id, None)
        if not self._is_locked(conversation_id):
            self._locks.pop(conversation_id, None)
        self._evicted_count += 1

    def _is_locked(self, conversation_id: str) -> bool:
        return conversation_id in self._lock_users

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._sessions

    def get_stats(self) -> dict[str, Any]:
        """Get session store statistics."""
        return {
            "active_sessions": len(self._sessions),
            "evicted_sessions": self._evicted_count,
            "locked_conversations": len(self._lock_users),
        }
