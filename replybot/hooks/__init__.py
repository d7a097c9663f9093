"""Notification hooks for ReplyBot."""

from replybot.hooks.service import (
    Hook,
    HookAction,
    HookEvent,
    HookResult,
    NotificationHub,
)

__all__ = [
    "Hook",
    "HookAction",
    "HookEvent",
    "HookResult",
    "NotificationHub",
]
