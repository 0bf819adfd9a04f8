"""Abstract base class for AI providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Literal

from pydantic import BaseModel, Field

from parley.errors import ProviderError

__all__ = ["AIContext", "AIMessage", "AIProvider", "AIResponse", "ProviderError", "Role"]

Role = Literal["system", "user", "assistant"]


class AIMessage(BaseModel):
    """A message in the conversation history."""

    role: Role
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class AIContext(BaseModel):
    """Context passed to AI provider for generation."""

    messages: list[AIMessage] = Field(default_factory=list)
    system_prompt: str | None = None
    temperature: float = 0.7
    max_tokens: int = 1024
    metadata: dict[str, Any] = Field(default_factory=dict)


class AIResponse(BaseModel):
    """Response from an AI provider."""

    content: str
    finish_reason: str | None = None
    usage: dict[str, int] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)


class AIProvider(ABC):
    """AI model provider for generating responses."""

    @property
    def name(self) -> str:
        """Provider name (e.g. 'anthropic', 'openai')."""
        return self.__class__.__name__

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier used for generation."""
        ...

    @abstractmethod
    async def generate(self, context: AIContext) -> AIResponse:
        """Generate a response for the given context."""
        ...

    async def generate_reply(
        self,
        history: list[AIMessage],
        *,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> str:
        """Generate the assistant reply to *history*.

        The history is copied into the context so later mutation of the
        session's list does not leak into an in-flight request.
        """
        context = AIContext(
            messages=list(history),
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        response = await self.generate(context)
        return response.content

    async def close(self) -> None:  # noqa: B027
        """Release resources. Override in subclasses if needed."""
