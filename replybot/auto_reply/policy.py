"""
Reply decision policy.

For each inbound message the policy either gates it (no reply attempted)
or decides a reply source:

    Gated                       plugin disabled, own message, outside
                                working hours, group without mention
    Deciding -> Resolved(reply) keyword / ai / fallback
             -> Resolved(None)  nothing to say

In hybrid mode a keyword rule always wins over AI.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable
from zoneinfo import ZoneInfo

from loguru import logger

from replybot.auto_reply.ai import AIReplyAdapter
from replybot.auto_reply.events import MessageEvent
from replybot.auto_reply.keywords import KeywordIndex, normalize
from replybot.auto_reply.session import Session
from replybot.config.schema import AutoReplyConfig, WorkingHoursConfig
from replybot.errors import GenerationFailure


class ReplyKind(str, Enum):
    """Source of a reply."""
    KEYWORD = "keyword"
    AI = "ai"
    FALLBACK = "fallback"


class ReplyMode(str, Enum):
    """Configured decision mode."""
    KEYWORD = "keyword"
    AI = "ai"
    HYBRID = "hybrid"


class GateReason(str, Enum):
    """Why a message was dropped before deciding."""
    DISABLED = "disabled"
    SELF_MESSAGE = "self_message"
    OUTSIDE_WORKING_HOURS = "outside_working_hours"
    NOT_MENTIONED = "not_mentioned"


class PolicyState(str, Enum):
    GATED = "gated"
    RESOLVED = "resolved"


@dataclass
class Reply:
    """A reply produced by the policy and delivered by the dispatcher."""
    kind: ReplyKind
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)
    sent: bool = False
    sent_at: float | None = None
    send_error: str | None = None


@dataclass
class PolicyOutcome:
    """Result of evaluating one message."""
    state: PolicyState
    reply: Reply | None = None
    gate_reason: GateReason | None = None
    session: Session | None = None

    @property
    def gated(self) -> bool:
        return self.state == PolicyState.GATED


def current_local_hhmm(timezone: str, now: datetime | None = None) -> str:
    """Format the current time in a time zone as zero-padded HH:MM."""
    tz = ZoneInfo(timezone)
    moment = now.astimezone(tz) if now is not None else datetime.now(tz)
    return moment.strftime("%H:%M")


def within_window(local_hhmm: str, start: str, end: str) -> bool:
    """
    Inclusive HH:MM window check.

    Compares the 4-digit strings with the colon removed. Windows that wrap
    past midnight (start > end) are not supported and never match.
    """
    current = local_hhmm.replace(":", "")
    return start.replace(":", "") <= current <= end.replace(":", "")


def is_working_hours(
    working_hours: WorkingHoursConfig,
    local_hhmm: str | None = None,
) -> bool:
    """Check whether replies are allowed now. Always true if not enabled."""
    if not working_hours.enabled:
        return True

    if local_hhmm is None:
        local_hhmm = current_local_hhmm(working_hours.timezone)

    return within_window(local_hhmm, working_hours.start, working_hours.end)


class ReplyPolicy:
    """Hybrid reply decision state machine."""

    def __init__(
        self,
        config: AutoReplyConfig,
        keyword_index: KeywordIndex,
        ai_adapter: AIReplyAdapter | None = None,
        clock: Callable[[], str] | None = None,
    ):
        """
        Args:
            config: Plugin configuration.
            keyword_index: Index used for keyword replies.
            ai_adapter: AI adapter, or None if AI is unavailable.
            clock: Returns the local "HH:MM" used for working hours.
        """
        self.config = config
        self.keyword_index = keyword_index
        self.ai_adapter = ai_adapter
        self._clock = clock
        self.enabled = config.enabled

    def gate(self, event: MessageEvent) -> GateReason | None:
        """Apply the gating rules in order; None means the message may proceed."""
        if not self.enabled:
            return GateReason.DISABLED

        if event.author_is_self:
            return GateReason.SELF_MESSAGE

        local_hhmm = self._clock() if self._clock else None
        if not is_working_hours(self.config.working_hours, local_hhmm):
            return GateReason.OUTSIDE_WORKING_HOURS

        if event.is_group and self.config.bot_id not in event.mentioned_ids:
            return GateReason.NOT_MENTIONED

        return None

    async def evaluate(
        self,
        event: MessageEvent,
        get_session: Callable[[str], Session],
    ) -> PolicyOutcome:
        """
        Gate a message and, if it passes, decide its reply.

        The session is only fetched (and counted) once gating has passed.
        """
        reason = self.gate(event)
        if reason is not None:
            logger.debug(f"Message in {event.conversation_id} gated: {reason.value}")
            return PolicyOutcome(state=PolicyState.GATED, gate_reason=reason)

        session = get_session(event.conversation_id)
        reply = await self.decide(event.text, session)
        return PolicyOutcome(state=PolicyState.RESOLVED, reply=reply, session=session)

    def prepare_text(self, text: str | None) -> str:
        """Strip message text and cut it to ``max_message_length``."""
        return (text or "").strip()[:self.config.max_message_length]

    async def decide(self, text: str, session: Session) -> Reply | None:
        """Pick a reply for message text according to the configured mode."""
        message_text = self.prepare_text(text)
        if not message_text:
            return None

        mode = self.config.mode

        if mode == ReplyMode.KEYWORD:
            return self.keyword_reply(message_text)

        if mode == ReplyMode.AI:
            return await self.ai_reply(message_text, session)

        if mode == ReplyMode.HYBRID:
            keyword_reply = self.keyword_reply(message_text)
            if keyword_reply:
                return keyword_reply
            return await self.ai_reply(message_text, session)

        return self.fallback_reply({"mode": mode})

    def keyword_reply(self, message_text: str) -> Reply | None:
        """Reply from the first matching keyword rule."""
        match = self.keyword_index.lookup(normalize(message_text))
        if match is None:
            return None

        metadata: dict[str, Any] = {"keyword": match.keyword, "rule": match.rule}
        if match.fuzzy:
            metadata["fuzzy"] = True
        return Reply(kind=ReplyKind.KEYWORD, content=match.rule.response, metadata=metadata)

    async def ai_reply(self, message_text: str, session: Session) -> Reply | None:
        """Reply from the AI adapter, falling back on any failure."""
        if self.ai_adapter is None:
            logger.debug("AI adapter unavailable, using fallback")
            return self.fallback_reply({"reason": "ai_unavailable"})

        try:
            content = await self.ai_adapter.reply(message_text, session)
        except GenerationFailure as e:
            logger.error(f"AI reply failed: {e}")
            return self.fallback_reply({"reason": "ai_failed", "error": str(e)})

        return Reply(kind=ReplyKind.AI, content=content)

    def fallback_reply(self, metadata: dict[str, Any] | None = None) -> Reply | None:
        """The configured fallback reply; None if no fallback text is set."""
        if not self.config.fallback_message.strip():
            return None
        return Reply(
            kind=ReplyKind.FALLBACK,
            content=self.config.fallback_message,
            metadata=metadata or {},
        )
