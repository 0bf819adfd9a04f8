"""Mock AI provider for testing."""

from __future__ import annotations

import asyncio

from parley.providers.ai.base import AIContext, AIProvider, AIResponse


class MockAIProvider(AIProvider):
    """Round-robin response provider for tests."""

    def __init__(
        self,
        responses: list[str] | None = None,
        *,
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self.responses = responses or ["Hello from AI"]
        self.calls: list[AIContext] = []
        self.delay = delay
        self.error = error
        self.closed = False
        self._index = 0

    @property
    def model_name(self) -> str:
        return "mock"

    async def generate(self, context: AIContext) -> AIResponse:
        self.calls.append(context)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        content = self.responses[self._index % len(self.responses)]
        self._index += 1
        return AIResponse(
            content=content,
            finish_reason="stop",
            usage={"prompt_tokens": 10, "completion_tokens": 5},
        )

    async def close(self) -> None:
        self.closed = True
