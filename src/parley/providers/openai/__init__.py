"""OpenAI provider."""

from parley.providers.openai.ai import OpenAIAIProvider
from parley.providers.openai.config import OpenAIConfig

__all__ = ["OpenAIAIProvider", "OpenAIConfig"]
