"""
Account notifications for ReplyBot.

The plugin reports lifecycle and reply events as "event E for account A".
Each account can subscribe through:
- Webhooks (JSON POST)
- In-process callbacks (e.g. a real-time broadcast room)
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

ANY = "*"

Callback = Callable[[dict[str, Any]], Awaitable[Any]]


class HookAction(str, Enum):
    """How a subscription is delivered."""
    WEBHOOK = "webhook"
    CALLBACK = "callback"


class HookEvent(str, Enum):
    """Events emitted by the auto-reply plugin."""
    PLUGIN_INITIALIZED = "plugin.initialized"
    PLUGIN_DESTROYED = "plugin.destroyed"
    REPLY_SENT = "reply.sent"
    REPLY_FAILED = "reply.failed"


@dataclass
class Hook:
    """A subscription of one account (or all) to one event (or all)."""
    id: str
    event: str  # Event name or "*"
    action: HookAction
    target: str  # Webhook URL or registered callback name
    account_id: str = ANY
    enabled: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)  # e.g. {"headers": {...}}

    def matches(self, account_id: str, event: str) -> bool:
        return (
            self.enabled
            and self.event in (ANY, event)
            and self.account_id in (ANY, account_id)
        )


@dataclass
class HookResult:
    """Outcome of delivering one event to one hook."""
    hook_id: str
    success: bool
    response: str = ""
    error: str = ""
    duration_ms: float = 0.0


class NotificationHub:
    """
    Delivers plugin events to the hooks of an account.

    Delivery problems are logged and reported in the returned results; they
    never propagate to the plugin.
    """

    def __init__(
        self,
        webhook_timeout: float = 10.0,
        max_retries: int = 3,
        client: httpx.AsyncClient | None = None,
        retry_delay: float = 1.0,
    ):
        self.webhook_timeout = webhook_timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay

        self._client = client
        self._hooks: dict[str, Hook] = {}
        self._callbacks: dict[str, Callback] = {}

        self._deliverers = {
            HookAction.WEBHOOK: self._post_webhook,
            HookAction.CALLBACK: self._invoke_callback,
        }

        # Stats
        self._notify_count = 0
        self._delivered_count = 0
        self._failed_count = 0

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def add_hook(self, hook: Hook) -> None:
        self._hooks[hook.id] = hook
        logger.debug(f"Hook {hook.id}: {hook.event} for account {hook.account_id} via {hook.action.value}")

    def remove_hook(self, hook_id: str) -> bool:
        return self._hooks.pop(hook_id, None) is not None

    def list_hooks(self, account_id: str | None = None) -> list[Hook]:
        """Hooks delivering for an account, or all hooks."""
        if not account_id:
            return list(self._hooks.values())
        return [h for h in self._hooks.values() if h.account_id in (ANY, account_id)]

    def register_callback(self, name: str, callback: Callback) -> None:
        """Make an in-process callback addressable by callback hooks."""
        self._callbacks[name] = callback

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def notify(
        self,
        account_id: str,
        event: HookEvent | str,
        payload: dict[str, Any],
    ) -> list[HookResult]:
        """
        Deliver an event to every matching hook of an account, concurrently.

        Args:
            account_id: Account the event belongs to.
            event: Event name.
            payload: Event data.

        Returns:
            One result per matching hook.
        """
        name = event.value if isinstance(event, HookEvent) else event
        self._notify_count += 1

        targets = [h for h in self._hooks.values() if h.matches(account_id, name)]
        if not targets:
            return []

        message = {"event": name, "account_id": account_id, "payload": payload}
        results = await asyncio.gather(*(self._deliver(hook, message) for hook in targets))

        for result in results:
            if result.success:
                self._delivered_count += 1
            else:
                self._failed_count += 1
                logger.warning(f"Notification {name} for {account_id} via {result.hook_id} failed: {result.error}")

        return list(results)

    async def _deliver(self, hook: Hook, message: dict[str, Any]) -> HookResult:
        started = time.monotonic()
        try:
            response = await self._deliverers[hook.action](hook, message)
        except Exception as e:
            return HookResult(
                hook_id=hook.id,
                success=False,
                error=str(e) or type(e).__name__,
                duration_ms=(time.monotonic() - started) * 1000,
            )

        return HookResult(
            hook_id=hook.id,
            success=True,
            response="" if response is None else str(response),
            duration_ms=(time.monotonic() - started) * 1000,
        )

    async def _post_webhook(self, hook: Hook, message: dict[str, Any]) -> str:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.webhook_timeout)

        body = {**message, "hook_id": hook.id}
        headers = hook.metadata.get("headers", {})

        attempt = 1
        while True:
            try:
                response = await self._client.post(hook.target, json=body, headers=headers)
                response.raise_for_status()
                return response.text
            except httpx.HTTPError as e:
                if attempt >= self.max_retries:
                    raise
                logger.debug(f"Webhook {hook.id} attempt {attempt} failed: {e}")
                attempt += 1
                await asyncio.sleep(self.retry_delay)

    async def _invoke_callback(self, hook: Hook, message: dict[str, Any]) -> Any:
        callback = self._callbacks.get(hook.target)
        if callback is None:
            raise LookupError(f"Callback not found: {hook.target}")
        return await callback(dict(message))

    async def close(self) -> None:
        """Release the webhook HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def get_stats(self) -> dict[str, Any]:
        return {
            "hook_count": len(self._hooks),
            "notify_count": self._notify_count,
            "delivered_count": self._delivered_count,
            "error_count": self._failed_count,
        }
