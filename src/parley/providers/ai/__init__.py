"""AI provider interface and test double."""

from parley.providers.ai.base import AIContext, AIMessage, AIProvider, AIResponse, ProviderError
from parley.providers.ai.mock import MockAIProvider

__all__ = [
    "AIContext",
    "AIMessage",
    "AIProvider",
    "AIResponse",
    "MockAIProvider",
    "ProviderError",
]
