"""
Auto-reply engine for ReplyBot.

Provides automated replies to inbound chat messages:
- Keyword rules with fuzzy (edit-distance) matching
- AI-generated replies with a fixed fallback
- Per-conversation sessions with bounded history
- Working hours, response delay and group-mention gating
- Durable reply statistics
"""

from replybot.auto_reply.ai import AIReplyAdapter, build_context
from replybot.auto_reply.dispatch import DispatchConfig, DispatchScheduler
from replybot.auto_reply.events import (
    Chat,
    Contact,
    InboundEventKind,
    MessageEvent,
    OutboundSink,
    SendOptions,
)
from replybot.auto_reply.fuzzy import fuzzy_match, levenshtein_distance
from replybot.auto_reply.keywords import KeywordIndex, KeywordMatch, normalize
from replybot.auto_reply.plugin import AutoReplyPlugin, create_plugin
from replybot.auto_reply.policy import (
    GateReason,
    PolicyOutcome,
    PolicyState,
    Reply,
    ReplyKind,
    ReplyMode,
    ReplyPolicy,
    is_working_hours,
    within_window,
)
from replybot.auto_reply.session import Session, SessionStore
from replybot.auto_reply.stats import ReplyStats, StatsRecorder

__all__ = [
    # Matching
    "levenshtein_distance",
    "fuzzy_match",
    "KeywordIndex",
    "KeywordMatch",
    "normalize",
    # Sessions
    "Session",
    "SessionStore",
    # Policy
    "ReplyPolicy",
    "Reply",
    "ReplyKind",
    "ReplyMode",
    "GateReason",
    "PolicyOutcome",
    "PolicyState",
    "is_working_hours",
    "within_window",
    # AI
    "AIReplyAdapter",
    "build_context",
    # Dispatch
    "DispatchScheduler",
    "DispatchConfig",
    # Stats
    "StatsRecorder",
    "ReplyStats",
    # Events
    "MessageEvent",
    "Contact",
    "Chat",
    "InboundEventKind",
    "OutboundSink",
    "SendOptions",
    # Plugin
    "AutoReplyPlugin",
    "create_plugin",
]
