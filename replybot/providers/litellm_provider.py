"""Text generation through LiteLLM."""

import os
from dataclasses import dataclass
from typing import Any

import litellm
from litellm import acompletion

from replybot.providers.base import LLMProvider, LLMResponse


@dataclass(frozen=True)
class ProviderRoute:
    """How LiteLLM reaches one provider."""
    env_key: str = ""
    prefix: str = ""
    api_base: str | None = None


ROUTES: dict[str, ProviderRoute] = {
    "openai": ProviderRoute(env_key="OPENAI_API_KEY"),
    "anthropic": ProviderRoute(env_key="ANTHROPIC_API_KEY"),
    "openrouter": ProviderRoute(
        env_key="OPENROUTER_API_KEY",
        prefix="openrouter/",
        api_base="https://openrouter.ai/api/v1",
    ),
    "deepseek": ProviderRoute(
        env_key="DEEPSEEK_API_KEY",
        prefix="deepseek/",
        api_base="https://api.deepseek.com/v1",
    ),
    # DashScope speaks the OpenAI protocol
    "qwen": ProviderRoute(
        env_key="QWEN_API_KEY",
        prefix="openai/",
        api_base="https://dashscope.aliyuncs.com/compatible-mode/v1",
    ),
    "ollama": ProviderRoute(prefix="ollama/", api_base="http://localhost:11434"),
}

# (substring, provider) checked in order
_KEY_HINTS = (("sk-or-", "openrouter"), ("sk-ant-", "anthropic"))
_BASE_HINTS = (("openrouter", "openrouter"), ("deepseek", "deepseek"), ("dashscope", "qwen"), ("11434", "ollama"))
_MODEL_HINTS = (("deepseek/", "deepseek"), ("qwen/", "qwen"), ("ollama/", "ollama"), ("anthropic/", "anthropic"))


class LiteLLMProvider(LLMProvider):
    """
    Single-turn reply generation for any provider LiteLLM supports.

    The provider is given explicitly or inferred from the API key, base URL
    or model name. Call failures come back as an error LLMResponse.
    """

    def __init__(
        self,
        provider: str = "",
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gpt-4o-mini",
        temperature: float = 0.7,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.temperature = temperature
        self.provider = provider or self._detect_provider(default_model, api_key, api_base)
        self.route = ROUTES.get(self.provider, ROUTES["openai"])

        self._total_tokens = 0
        self._request_count = 0
        self._error_count = 0

        # LiteLLM reads provider keys from the environment
        if api_key and self.route.env_key:
            os.environ.setdefault(self.route.env_key, api_key)

        litellm.suppress_debug_info = True

    @staticmethod
    def _detect_provider(model: str, api_key: str | None, api_base: str | None) -> str:
        """Infer the provider; OpenAI when nothing hints otherwise."""
        if api_key:
            for hint, name in _KEY_HINTS:
                if api_key.startswith(hint):
                    return name

        if api_base:
            for hint, name in _BASE_HINTS:
                if hint in api_base:
                    return name

        model = model.lower()
        for hint, name in _MODEL_HINTS:
            if model.startswith(hint):
                return name
        if "claude" in model:
            return "anthropic"

        return "openai"

    def _format_model_name(self, model: str) -> str:
        prefix = self.route.prefix
        if prefix and not model.startswith(prefix):
            return prefix + model
        return model

    async def generate(
        self,
        prompt: str,
        model: str | None = None,
        max_tokens: int = 500,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Generate a reply to one prompt.

        Args:
            prompt: User prompt.
            model: Model identifier; the default model if omitted.
            max_tokens: Maximum tokens in response.
            system_prompt: Optional system instruction.

        Returns:
            LLMResponse; ``finish_reason == "error"`` on failure.
        """
        messages = [{"role": "user", "content": prompt}]
        if system_prompt:
            messages.insert(0, {"role": "system", "content": system_prompt})

        request: dict[str, Any] = {
            "model": self._format_model_name(model or self.default_model),
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": kwargs.get("temperature", self.temperature),
        }
        if self.api_key:
            request["api_key"] = self.api_key
        if self.api_base or self.route.api_base:
            request["api_base"] = self.api_base or self.route.api_base

        try:
            completion = await acompletion(**request)
        except Exception as e:
            self._error_count += 1
            return LLMResponse(content=f"Error calling LLM: {e}", finish_reason="error")

        self._request_count += 1
        return self._to_response(completion)

    def _to_response(self, completion: Any) -> LLMResponse:
        choice = completion.choices[0]

        usage: dict[str, int] = {}
        counts = getattr(completion, "usage", None)
        if counts:
            usage = {
                "prompt_tokens": counts.prompt_tokens,
                "completion_tokens": counts.completion_tokens,
                "total_tokens": counts.total_tokens,
            }
            self._total_tokens += counts.total_tokens or 0

        return LLMResponse(
            content=choice.message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
        )

    def get_default_model(self) -> str:
        return self.default_model

    def get_usage_stats(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "total_tokens": self._total_tokens,
            "request_count": self._request_count,
            "error_count": self._error_count,
        }
