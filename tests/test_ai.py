"""
Tests for the AI reply adapter.
"""

import pytest
from conftest import FakeGenerator

from replybot.auto_reply.ai import REPLY_INSTRUCTION, AIReplyAdapter, build_context
from replybot.auto_reply.session import Session
from replybot.config.schema import AIConfig
from replybot.errors import ConfigurationError, GenerationFailure


def session_with(history):
    return Session(conversation_id="c1", history=list(history))


class TestBuildContext:
    """Tests for prompt construction."""

    def test_without_history(self):
        context = build_context("Where is my order?", session_with([]))

        assert context == f"User message: Where is my order?\n\n{REPLY_INSTRUCTION}"

    def test_includes_last_three_turns_only(self):
        history = []
        for i in range(5):
            history += [f"q{i}", f"a{i}"]

        context = build_context("next", session_with(history))

        assert "User: q0" not in context
        assert "User: q1" not in context
        assert "User: q2\nAssistant: a2\n" in context
        assert "User: q4\nAssistant: a4\n" in context
        assert context.index("User message: next") < context.index("Conversation history:")
        assert context.endswith(REPLY_INSTRUCTION)

    def test_incomplete_pair_is_skipped(self):
        context = build_context("hi", session_with(["q0", "a0", "dangling"]))

        assert "User: q0\nAssistant: a0\n" in context
        assert "dangling" not in context

    def test_is_deterministic(self):
        session = session_with(["q", "a"])
        assert build_context("x", session) == build_context("x", session)


class TestAIReplyAdapter:
    """Tests for generation and failure reporting."""

    def test_requires_model(self):
        with pytest.raises(ConfigurationError):
            AIReplyAdapter(FakeGenerator(), AIConfig(model=""))

    @pytest.mark.asyncio
    async def test_passes_model_settings(self):
        generator = FakeGenerator(content="  Sure thing!  ")
        config = AIConfig(model="gpt-4o-mini", max_tokens=123, system_prompt="Be brief.")
        adapter = AIReplyAdapter(generator, config)

        text = await adapter.generate("prompt")

        assert text == "Sure thing!"
        assert generator.calls == [{
            "prompt": "prompt",
            "model": "gpt-4o-mini",
            "max_tokens": 123,
            "system_prompt": "Be brief.",
        }]

    @pytest.mark.asyncio
    async def test_error_response_is_failure(self):
        adapter = AIReplyAdapter(FakeGenerator(error=True), AIConfig(model="m"))
        with pytest.raises(GenerationFailure):
            await adapter.generate("prompt")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, "", "   "])
    async def test_empty_response_is_failure(self, content):
        adapter = AIReplyAdapter(FakeGenerator(content=content), AIConfig(model="m"))
        with pytest.raises(GenerationFailure):
            await adapter.generate("prompt")

    @pytest.mark.asyncio
    async def test_timeout_is_failure(self):
        generator = FakeGenerator(hang=True)
        adapter = AIReplyAdapter(generator, AIConfig(model="m", timeout_seconds=0.05))

        with pytest.raises(GenerationFailure, match="timed out"):
            await adapter.generate("prompt")
        assert len(generator.calls) == 1

    @pytest.mark.asyncio
    async def test_exception_is_failure_without_retry(self):
        class Exploding(FakeGenerator):
            async def generate(self, prompt, **kwargs):
                self.calls.append(kwargs)
                raise RuntimeError("connection reset")

        generator = Exploding()
        adapter = AIReplyAdapter(generator, AIConfig(model="m"))

        with pytest.raises(GenerationFailure, match="connection reset"):
            await adapter.generate("prompt")
        assert len(generator.calls) == 1
