"""OpenAI provider configuration."""

from __future__ import annotations

from pydantic import BaseModel, SecretStr


class OpenAIConfig(BaseModel):
    """OpenAI AI provider configuration.

    Attributes:
        api_key: API key for authentication.
        base_url: Custom base URL for OpenAI-compatible APIs (e.g. Ollama,
            vLLM). If None, uses the default OpenAI API.
        model: Model identifier to use.
        max_tokens: Upper bound on response tokens; the per-request value
            is capped to this.
        temperature: Default sampling temperature.
        timeout: HTTP request timeout in seconds.
    """

    api_key: SecretStr
    base_url: str | None = None
    model: str = "gpt-4o-mini"
    max_tokens: int = 1024
    temperature: float = 0.7
    timeout: float = 60.0
