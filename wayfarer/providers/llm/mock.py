"""Mock LLM provider for testing."""

import asyncio
from collections import deque
from collections.abc import Iterable
from typing import Any

from wayfarer.providers.llm.base import LLMMessage, LLMProvider, LLMResponse, TokenUsage


class MockLLMProvider(LLMProvider):
    """Mock LLM provider for testing.

    Returns configurable responses without making actual API calls.
    Structured outputs queued with ``queue_structured`` are returned one per
    call; when the queue is empty ``default_structured`` is used.
    """

    def __init__(
        self,
        default_response: str = "Mock response",
        default_model: str = "mock-model",
        default_structured: dict[str, Any] | None = None,
        structured_responses: Iterable[dict[str, Any]] = (),
        error: Exception | None = None,
        delay_seconds: float = 0.0,
    ):
        """Initialize mock provider.

        Args:
            default_response: Text returned when no structured message is set
            default_model: Model name to report
            default_structured: Structured output used when the queue is empty
            structured_responses: Structured outputs returned in order
            error: Exception raised from every call
            delay_seconds: Sleep before answering
        """
        self._default_response = default_response
        self._default_model = default_model
        self._default_structured = default_structured
        self._queue: deque[dict[str, Any]] = deque(structured_responses)
        self._error = error
        self._delay_seconds = delay_seconds
        self._call_history: list[dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return "mock"

    @property
    def call_history(self) -> list[dict[str, Any]]:
        """Return history of calls for testing assertions."""
        return self._call_history

    def clear_history(self) -> None:
        self._call_history.clear()

    def queue_structured(self, *outputs: dict[str, Any]) -> None:
        self._queue.extend(outputs)

    def set_error(self, error: Exception | None) -> None:
        self._error = error

    async def generate(
        self,
        messages: list[LLMMessage],
        *,
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        response_schema: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate mock response."""
        self._call_history.append({
            "messages": messages,
            "model": model or self._default_model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "response_schema": response_schema,
            "kwargs": kwargs,
        })

        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)
        if self._error is not None:
            raise self._error

        structured = self._queue.popleft() if self._queue else self._default_structured
        content = self._default_response
        if structured and isinstance(structured.get("message"), str):
            content = structured["message"]

        prompt_tokens = sum(len(m.content) // 4 for m in messages)
        completion_tokens = len(content) // 4
        return LLMResponse(
            content=content,
            structured=dict(structured) if structured is not None else None,
            model=model or self._default_model,
            finish_reason="stop",
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )
