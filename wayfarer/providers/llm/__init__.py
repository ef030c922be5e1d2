"""LLM providers for text generation.

Only the provider interface and a mock implementation ship here; real
clients implement ``LLMProvider``.
"""

from wayfarer.providers.llm.base import (
    AuthenticationError,
    ContentFilterError,
    LLMMessage,
    LLMProvider,
    LLMResponse,
    ModelError,
    ProviderError,
    RateLimitError,
    TokenUsage,
)
from wayfarer.providers.llm.mock import MockLLMProvider

__all__ = [
    "AuthenticationError",
    "ContentFilterError",
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "MockLLMProvider",
    "ModelError",
    "ProviderError",
    "RateLimitError",
    "TokenUsage",
]
