"""
Pytest configuration and shared fixtures for ReplyBot tests.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from replybot.auto_reply.events import SendOptions
from replybot.config.schema import AutoReplyConfig, ReplyRule
from replybot.providers.base import LLMProvider, LLMResponse


class RecordingSink:
    """Outbound sink that records sends and can be told to fail."""

    def __init__(self, fail_for: set[str] | None = None, delay: float = 0.0):
        self.fail_for = fail_for or set()
        self.delay = delay
        self.sent: list[tuple[str, str, SendOptions]] = []

    async def send(self, conversation_id: str, text: str, options: SendOptions) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if conversation_id in self.fail_for:
            raise ConnectionError(f"chat {conversation_id} unreachable")
        self.sent.append((conversation_id, text, options))


class FakeGenerator(LLMProvider):
    """Text generator returning a canned answer, an error, or hanging."""

    def __init__(self, content: str | None = "Generated answer", error: bool = False, hang: bool = False):
        super().__init__()
        self.content = content
        self.error = error
        self.hang = hang
        self.calls: list[dict] = []

    async def generate(self, prompt, model=None, max_tokens=500, system_prompt=None, **kwargs):
        self.calls.append({
            "prompt": prompt,
            "model": model,
            "max_tokens": max_tokens,
            "system_prompt": system_prompt,
        })
        if self.hang:
            await asyncio.sleep(3600)
        if self.error:
            return LLMResponse(content="Error calling LLM: boom", finish_reason="error")
        return LLMResponse(content=self.content)

    def get_default_model(self) -> str:
        return "fake-model"


@pytest.fixture
def rules():
    """Keyword rules shared by most tests."""
    return [
        ReplyRule(name="greeting", keywords=("hello",), response="hi"),
        ReplyRule(name="pricing", keywords=("price", "cost"), response="See our price list."),
        ReplyRule(name="greeting-2", keywords=("hello",), response="second hello rule"),
        ReplyRule(name="disabled", keywords=("refund",), response="never", enabled=False),
    ]


@pytest.fixture
def auto_reply_config(rules):
    """Enabled hybrid config with no delay."""
    return AutoReplyConfig(
        enabled=True,
        reply_mode="hybrid",
        keyword_rules=rules,
        response_delay=0,
        fallback_message="We'll get back to you soon.",
        bot_id="bot@c.us",
        ai_config={"provider": "openai", "model": "gpt-4o-mini", "timeout_seconds": 0.5},
        sessions={"idle_ttl_seconds": 0},
    )


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def config_dir(tmp_path):
    """Create a temporary config directory."""
    config = tmp_path / "config"
    config.mkdir()
    return config
