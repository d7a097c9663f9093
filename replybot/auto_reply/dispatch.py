"""
Reply dispatcher for auto-reply.

Delivers decided replies with:
- Configurable response delay (non-blocking)
- Exactly one send attempt, no retries
- Delivery status recorded on the reply
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any

from loguru import logger

from replybot.auto_reply.events import OutboundSink, SendOptions
from replybot.auto_reply.policy import Reply
from replybot.errors import DispatchFailure


@dataclass
class DispatchConfig:
    """Configuration for the dispatcher."""
    delay_seconds: float = 0.0
    link_preview: bool = False
    send_timeout_seconds: float = 30.0


class DispatchScheduler:
    """
    Sends replies after the configured delay.

    Pending dispatches are not cancelled on shutdown; ``wait_pending()``
    lets them finish.
    """

    def __init__(self, sink: OutboundSink, config: DispatchConfig | None = None):
        self.sink = sink
        self.config = config or DispatchConfig()

        self._pending: set[asyncio.Task] = set()

        # Stats
        self._sent_count = 0
        self._failed_count = 0

    @property
    def delay_seconds(self) -> float:
        """Effective delay; negative values count as zero."""
        return max(0.0, self.config.delay_seconds)

    async def dispatch(
        self,
        reply: Reply,
        conversation_id: str,
        quoted_message_id: str | None = None,
    ) -> Reply:
        """
        Wait, then send a reply once.

        Never raises for send failures; the outcome is recorded on the reply.
        """
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        options = SendOptions(
            quoted_message_id=quoted_message_id,
            link_preview=self.config.link_preview,
        )

        try:
            await self._send(conversation_id, reply.content, options)
        except DispatchFailure as e:
            reply.sent = False
            reply.send_error = str(e)
            self._failed_count += 1
            logger.error(f"Failed to send reply to {conversation_id}: {e}")
            return reply

        reply.sent = True
        reply.sent_at = time.time()
        reply.send_error = None
        self._sent_count += 1
        return reply

    async def _send(self, conversation_id: str, text: str, options: SendOptions) -> None:
        try:
            await asyncio.wait_for(
                self.sink.send(conversation_id, text, options),
                timeout=self.config.send_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise DispatchFailure(
                f"send timed out after {self.config.send_timeout_seconds}s"
            ) from e
        except Exception as e:
            raise DispatchFailure(str(e) or type(e).__name__) from e

    def submit(
        self,
        reply: Reply,
        conversation_id: str,
        quoted_message_id: str | None = None,
    ) -> "asyncio.Task[Reply]":
        """Schedule a dispatch in the background and track it."""
        task = asyncio.create_task(self.dispatch(reply, conversation_id, quoted_message_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def wait_pending(self) -> None:
        """Wait for all submitted dispatches to finish."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def get_stats(self) -> dict[str, Any]:
        """Get dispatcher statistics."""
        return {
            "sent_count": self._sent_count,
            "failed_count": self._failed_count,
            "pending": len(self._pending),
            "delay_seconds": self.delay_seconds,
        }
