"""
AI reply generation for auto-reply.

Builds a short conversational prompt from the session history and makes
one bounded call to the text generator. Any failure is raised as
GenerationFailure; falling back is the caller's job.
"""

import asyncio

from loguru import logger

from replybot.auto_reply.session import Session
from replybot.config.schema import AIConfig
from replybot.errors import ConfigurationError, GenerationFailure
from replybot.providers.base import LLMProvider

# Turns of history included in the prompt (one turn = user + reply)
CONTEXT_TURNS = 3

REPLY_INSTRUCTION = "Please write a friendly, professional reply:"


def build_context(message_text: str, session: Session) -> str:
    """
    Build the prompt for a message.

    Layout: the current message, then up to the last CONTEXT_TURNS complete
    turns as User/Assistant lines, then a fixed instruction.
    """
    context = f"User message: {message_text}\n"

    if session.history:
        context += "\nConversation history:\n"
        recent = session.history[-CONTEXT_TURNS * 2:]

        for i in range(0, len(recent), 2):
            pair = recent[i:i + 2]
            if len(pair) == 2:
                context += f"User: {pair[0]}\nAssistant: {pair[1]}\n"

    context += f"\n{REPLY_INSTRUCTION}"
    return context


class AIReplyAdapter:
    """Orchestrates a single AI generation call for a reply."""

    def __init__(self, generator: LLMProvider, config: AIConfig):
        if not config.model:
            raise ConfigurationError("AI reply requires ai_config.model")
        if config.max_tokens <= 0:
            raise ConfigurationError(f"Invalid ai_config.max_tokens: {config.max_tokens}")

        self.generator = generator
        self.config = config

    def build_context(self, message_text: str, session: Session) -> str:
        """Build the prompt for a message; see ``build_context``."""
        return build_context(message_text, session)

    async def generate(self, context: str) -> str:
        """
        Generate reply text.

        Raises:
            GenerationFailure: On timeout, provider error or empty output.
        """
        try:
            response = await asyncio.wait_for(
                self.generator.generate(
                    context,
                    model=self.config.model,
                    max_tokens=self.config.max_tokens,
                    system_prompt=self.config.system_prompt,
                ),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise GenerationFailure(
                f"AI generation timed out after {self.config.timeout_seconds}s"
            ) from e
        except Exception as e:
            raise GenerationFailure(f"AI generation failed: {e}") from e

        if response is None or response.is_error:
            detail = response.content if response is not None else "no response"
            raise GenerationFailure(f"AI provider error: {detail}")

        text = (response.content or "").strip()
        if not text:
            raise GenerationFailure("AI returned an empty reply")

        logger.debug(f"AI reply generated ({len(text)} chars)")
        return text

    async def reply(self, message_text: str, session: Session) -> str:
        """Build the context for a message and generate a reply."""
        return await self.generate(self.build_context(message_text, session))
