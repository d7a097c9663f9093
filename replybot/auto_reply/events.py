"""
Inbound and outbound message types for auto-reply.

The transport that produces MessageEvents and the sink that delivers
replies live outside this package; these are the shapes they exchange
with the reply engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol


class InboundEventKind(str, Enum):
    """Events the transport can push to the plugin."""
    MESSAGE_RECEIVED = "whatsapp.message.received"
    GROUP_MESSAGE_RECEIVED = "whatsapp.group.message.received"


@dataclass(frozen=True)
class Contact:
    """Author of an inbound message."""
    id: str
    name: str = ""
    number: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.number or self.id


@dataclass(frozen=True)
class Chat:
    """Chat (direct or group) a message arrived in."""
    id: str
    is_group: bool = False
    name: str = ""


@dataclass
class MessageEvent:
    """A single inbound chat message."""
    conversation_id: str
    text: str
    author_is_self: bool = False
    is_group: bool = False
    mentioned_ids: frozenset[str] = field(default_factory=frozenset)
    message_id: str | None = None
    contact: Contact | None = None
    chat: Chat | None = None

    @property
    def author(self) -> str:
        """Readable author for logs."""
        return self.contact.display_name if self.contact else "unknown"


@dataclass(frozen=True)
class SendOptions:
    """Delivery options passed to the outbound sink."""
    quoted_message_id: str | None = None
    link_preview: bool = False


class OutboundSink(Protocol):
    """Delivers replies to a conversation. Raises on failure."""

    async def send(self, conversation_id: str, text: str, options: SendOptions) -> None:
        ...
