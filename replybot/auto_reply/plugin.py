"""
Auto-reply plugin.

Owns every piece of reply state (keyword index, sessions, stats) and the
collaborators it talks to (outbound sink, text generator, durable store,
notification hub). Nothing here is a process-wide singleton; construct one
plugin per bot account.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable

from loguru import logger

from replybot import __version__
from replybot.auto_reply.ai import AIReplyAdapter
from replybot.auto_reply.dispatch import DispatchConfig, DispatchScheduler
from replybot.auto_reply.events import InboundEventKind, MessageEvent, OutboundSink
from replybot.auto_reply.keywords import KeywordIndex
from replybot.auto_reply.policy import Reply, ReplyPolicy
from replybot.auto_reply.session import SessionStore
from replybot.auto_reply.stats import StatsRecorder
from replybot.config.schema import AutoReplyConfig, Config, ReplyRule
from replybot.errors import ConfigurationError
from replybot.hooks.service import HookEvent, NotificationHub
from replybot.providers.base import LLMProvider
from replybot.providers.litellm_provider import LiteLLMProvider
from replybot.storage.store import DurableStore, JsonFileStore, MemoryStore

PLUGIN_NAME = "whatsapp-auto-reply"

EventHandler = Callable[[MessageEvent], Awaitable[Reply | None]]


class AutoReplyPlugin:
    """
    Automated reply engine for inbound chat messages.

    Flow per message:
    1. Gate (disabled, own message, working hours, group mention)
    2. Lock the conversation and fetch its session
    3. Decide a reply (keyword / AI / fallback)
    4. Wait the response delay and send it once
    5. Record stats, update the session, notify the account

    On destroy, new messages are refused and in-flight replies are
    allowed to finish.
    """

    def __init__(
        self,
        config: AutoReplyConfig,
        sink: OutboundSink,
        generator: LLMProvider | None = None,
        store: DurableStore | None = None,
        notifier: NotificationHub | None = None,
        clock: Callable[[], str] | None = None,
    ):
        """
        Args:
            config: Plugin configuration.
            sink: Outbound message sink.
            generator: Text generator for AI replies.
            store: Durable store for stats; in-memory if omitted.
            notifier: Notification hub for account events.
            clock: Returns local "HH:MM" for working hours (tests).
        """
        self.config = config
        self.sink = sink
        self.generator = generator
        self.notifier = notifier

        self.keyword_index = KeywordIndex()
        self.sessions = SessionStore(
            history_limit=config.sessions.history_limit,
            max_sessions=config.sessions.max_sessions,
            idle_ttl_seconds=config.sessions.idle_ttl_seconds,
        )
        self.stats = StatsRecorder(
            store or MemoryStore(),
            flush_every=config.stats.flush_every,
        )
        self.dispatcher = DispatchScheduler(
            sink,
            DispatchConfig(delay_seconds=config.response_delay),
        )
        self.policy = ReplyPolicy(config, self.keyword_index, clock=clock)

        # Inbound event kind -> handler
        self._handlers: dict[InboundEventKind, EventHandler] = {
            InboundEventKind.MESSAGE_RECEIVED: self.on_message,
            InboundEventKind.GROUP_MESSAGE_RECEIVED: self.on_group_message,
        }

        self._tasks: set[asyncio.Task] = set()
        self._sweeper: asyncio.Task | None = None
        self._initialized = False
        self._destroyed = False
        self._started_at: float | None = None
        self._error_count = 0

    @property
    def enabled(self) -> bool:
        return self.policy.enabled and not self._destroyed

    @property
    def account_id(self) -> str:
        return self.config.account_id or self.config.bot_id

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Build the keyword index, set up AI and restore stats."""
        if self._initialized:
            return

        logger.info(
            f"Initializing {PLUGIN_NAME} v{__version__} "
            f"(enabled={self.config.enabled}, mode={self.config.mode})"
        )

        if self.config.working_hours.enabled and self.config.working_hours.wraps_midnight:
            logger.warning(
                f"Working hours {self.config.working_hours.start}-{self.config.working_hours.end} "
                "wrap past midnight; this is unsupported and no message will be answered"
            )

        if self.config.uses_ai:
            self._initialize_ai()

        self.keyword_index.build(self.config.keyword_rules)
        await self.stats.load()

        if self.sessions.idle_ttl_seconds:
            self._sweeper = asyncio.create_task(self._sweep_loop())

        self._initialized = True
        self._started_at = time.time()

        await self._notify(HookEvent.PLUGIN_INITIALIZED, {
            "name": PLUGIN_NAME,
            "version": __version__,
        })

    def _initialize_ai(self) -> None:
        """Set up the AI adapter; on bad config the AI path stays disabled."""
        try:
            if self.generator is None:
                raise ConfigurationError("No text generator configured")
            self.policy.ai_adapter = AIReplyAdapter(self.generator, self.config.ai_config)
            logger.info(
                f"AI replies ready (provider={self.config.ai_config.provider or 'auto'}, "
                f"model={self.config.ai_config.model})"
            )
        except ConfigurationError as e:
            self.policy.ai_adapter = None
            logger.error(f"AI reply setup failed, AI path disabled: {e}")

    async def destroy(self) -> None:
        """Stop accepting messages, let in-flight replies finish, save stats."""
        if self._destroyed:
            return
        self._destroyed = True

        if self._sweeper is not None:
            self._sweeper.cancel()
            await asyncio.gather(self._sweeper, return_exceptions=True)
            self._sweeper = None

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.dispatcher.wait_pending()
        await self.stats.wait_flushed()
        await self.stats.flush()

        self.sessions.clear()

        logger.info(f"{PLUGIN_NAME} destroyed")
        await self._notify(HookEvent.PLUGIN_DESTROYED, {"name": PLUGIN_NAME})

    def set_enabled(self, enabled: bool) -> None:
        """Turn auto-reply on or off at runtime."""
        self.policy.enabled = enabled
        logger.info(f"Auto-reply {'enabled' if enabled else 'disabled'}")

    def reload_rules(self, rules: list[ReplyRule]) -> None:
        """Replace the keyword rules and rebuild the index."""
        self.config.keyword_rules = list(rules)
        self.keyword_index.build(self.config.keyword_rules)

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------

    async def handle(self, kind: InboundEventKind | str, event: MessageEvent) -> Reply | None:
        """
        Process an inbound event to completion.

        Returns:
            The reply (sent or marked unsent), or None if no reply was made.
        """
        handler = self._handlers.get(InboundEventKind(kind))
        if handler is None:
            raise ValueError(f"No handler for event kind: {kind}")
        return await handler(event)

    def submit(self, kind: InboundEventKind | str, event: MessageEvent) -> "asyncio.Task[Reply | None]":
        """Process an inbound event in the background; the caller never waits."""
        task = asyncio.create_task(self.handle(kind, event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def on_group_message(self, event: MessageEvent) -> Reply | None:
        """Group messages are only answered when they mention the bot."""
        event.is_group = True
        return await self.on_message(event)

    async def on_message(self, event: MessageEvent) -> Reply | None:
        """Decide, send and record a reply for one message."""
        if self._destroyed:
            logger.debug(f"Plugin destroyed, ignoring message in {event.conversation_id}")
            return None

        try:
            return await self._process(event)
        except Exception as e:
            self._error_count += 1
            logger.error(f"Failed to process message from {event.author}: {e}")
            return None

    async def _process(self, event: MessageEvent) -> Reply | None:
        cid = event.conversation_id

        async with self.sessions.lock(cid):
            outcome = await self.policy.evaluate(event, self.sessions.get_or_create)
            if outcome.gated or outcome.reply is None:
                return None

            reply = await self.dispatcher.dispatch(
                outcome.reply,
                cid,
                quoted_message_id=event.message_id,
            )

            self.stats.record(reply.kind)
            self.sessions.append_turn(
                outcome.session,
                self.policy.prepare_text(event.text),
                reply.content,
            )

        if reply.sent:
            logger.info(
                f"Auto reply sent to {event.author} ({reply.kind.value}): {reply.content[:50]}"
            )
            await self._notify(HookEvent.REPLY_SENT, self._reply_payload(cid, reply))
        else:
            await self._notify(HookEvent.REPLY_FAILED, {
                **self._reply_payload(cid, reply),
                "error": reply.send_error,
            })

        return reply

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    async def _sweep_loop(self) -> None:
        interval = min(self.sessions.idle_ttl_seconds, 300)
        while True:
            await asyncio.sleep(interval)
            self.sessions.sweep()

    async def _notify(self, event: HookEvent, payload: dict[str, Any]) -> None:
        if self.notifier is None:
            return
        await self.notifier.notify(self.account_id, event, payload)

    @staticmethod
    def _reply_payload(conversation_id: str, reply: Reply) -> dict[str, Any]:
        return {
            "conversation_id": conversation_id,
            "kind": reply.kind.value,
            "content": reply.content,
            "sent_at": reply.sent_at,
        }

    def get_status(self) -> dict[str, Any]:
        """Get plugin status."""
        return {
            "name": PLUGIN_NAME,
            "version": __version__,
            "enabled": self.enabled,
            "mode": self.config.mode,
            "ai_available": self.policy.ai_adapter is not None,
            "stats": self.stats.snapshot(),
            "active_sessions": len(self.sessions),
            "keyword_rules": self.keyword_index.rule_count,
            "keywords": self.keyword_index.size,
            "pending_messages": len(self._tasks),
            "errors": self._error_count,
            "uptime": time.time() - self._started_at if self._started_at else 0.0,
        }


def create_plugin(
    config: Config,
    sink: OutboundSink,
    notifier: NotificationHub | None = None,
    store: DurableStore | None = None,
) -> AutoReplyPlugin:
    """Build a plugin with the LiteLLM generator and file-backed stats."""
    auto_reply = config.auto_reply
    ai = auto_reply.ai_config

    generator = None
    if auto_reply.uses_ai and ai.model:
        generator = LiteLLMProvider(
            provider=ai.provider,
            api_key=ai.api_key or None,
            api_base=ai.api_base,
            default_model=ai.model,
        )

    return AutoReplyPlugin(
        auto_reply,
        sink,
        generator=generator,
        store=store or JsonFileStore(config.storage_path),
        notifier=notifier,
    )
