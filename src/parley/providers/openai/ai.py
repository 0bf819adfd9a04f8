"""OpenAI AI provider, generating replies via the Chat Completions API."""

from __future__ import annotations

from typing import Any

from parley.providers.ai.base import (
    AIContext,
    AIMessage,
    AIProvider,
    AIResponse,
    ProviderError,
)
from parley.providers.openai.config import OpenAIConfig

_RETRYABLE_STATUS = (429, 500, 502, 503)


class OpenAIAIProvider(AIProvider):
    """AI provider using the OpenAI Chat Completions API."""

    def __init__(self, config: OpenAIConfig) -> None:
        try:
            import openai as _openai
        except ImportError as exc:
            raise ImportError(
                "openai is required for OpenAIAIProvider. "
                "Install it with: pip install parley[openai]"
            ) from exc
        self._config = config
        self._api_status_error = _openai.APIStatusError
        self._client = _openai.AsyncOpenAI(
            api_key=config.api_key.get_secret_value(),
            base_url=config.base_url,
            timeout=config.timeout,
        )

    @property
    def _provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._config.model

    def _build_messages(
        self, messages: list[AIMessage], system_prompt: str | None = None
    ) -> list[dict[str, Any]]:
        result: list[dict[str, Any]] = []
        if system_prompt:
            result.append({"role": "system", "content": system_prompt})
        for m in messages:
            result.append({"role": m.role, "content": m.content})
        return result

    async def generate(self, context: AIContext) -> AIResponse:
        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "messages": self._build_messages(context.messages, context.system_prompt),
            "max_tokens": min(context.max_tokens, self._config.max_tokens),
            "temperature": context.temperature,
        }

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except self._api_status_error as exc:
            raise ProviderError(
                str(exc),
                retryable=exc.status_code in _RETRYABLE_STATUS,
                provider=self._provider_name,
                status_code=exc.status_code,
            ) from exc
        except Exception as exc:
            raise ProviderError(
                str(exc),
                retryable=False,
                provider=self._provider_name,
                status_code=None,
            ) from exc

        if not response.choices:
            return AIResponse(content="")

        choice = response.choices[0]
        usage: dict[str, int] = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
            }
        return AIResponse(
            content=(choice.message.content or "").strip(),
            finish_reason=choice.finish_reason,
            usage=usage,
            metadata={"model": response.model},
        )

    async def close(self) -> None:
        await self._client.close()
