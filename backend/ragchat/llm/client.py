import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Iterator

from openai import OpenAI

from ragchat.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: str  # raw JSON text as produced by the model


@dataclass
class Completion:
    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None

    def assistant_message(self) -> dict[str, Any]:
        """The assistant turn to replay to the model after tool execution."""
        message: dict[str, Any] = {"role": "assistant", "content": self.content or None}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": c.id,
                    "type": "function",
                    "function": {"name": c.name, "arguments": c.arguments},
                }
                for c in self.tool_calls
            ]
        return message


class LLMClient:
    """Thin wrapper over the OpenAI chat completions API."""

    def __init__(
        self,
        client: OpenAI,
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self._client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _request_kwargs(self, messages: list[dict], options: dict | None) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"model": self.model, "messages": messages}
        temperature = self.temperature
        max_tokens = self.max_tokens
        if options:
            if options.get("temperature") is not None:
                temperature = options["temperature"]
            if options.get("max_tokens") is not None:
                max_tokens = options["max_tokens"]
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        return kwargs

    def complete(
        self,
        messages: list[dict],
        *,
        tools: list[dict] | None = None,
        options: dict | None = None,
    ) -> Completion:
        kwargs = self._request_kwargs(messages, options)
        if tools:
            kwargs["tools"] = tools

        resp = self._client.chat.completions.create(**kwargs)

        usage = getattr(resp, "usage", None)
        message = resp.choices[0].message
        tool_calls = [
            ToolCall(id=c.id, name=c.function.name, arguments=c.function.arguments or "{}")
            for c in (message.tool_calls or [])
        ]
        return Completion(
            content=message.content or "",
            tool_calls=tool_calls,
            prompt_tokens=getattr(usage, "prompt_tokens", None) if usage else None,
            completion_tokens=getattr(usage, "completion_tokens", None) if usage else None,
            total_tokens=getattr(usage, "total_tokens", None) if usage else None,
        )

    def stream(self, messages: list[dict], *, options: dict | None = None) -> Iterator[str]:
        """
        Yields reply text increments in the order the provider emits them.
        Closing the generator early closes the underlying HTTP response.
        """
        kwargs = self._request_kwargs(messages, options)
        with self._client.chat.completions.create(**kwargs, stream=True) as stream:
            for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta and delta.content:
                    yield delta.content


@lru_cache(maxsize=1)
def get_openai_client() -> OpenAI:
    """One HTTP client for chat and embedding calls."""
    return OpenAI(
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_BASE_URL,
        timeout=settings.LLM_TIMEOUT_SECONDS,
        max_retries=settings.LLM_MAX_RETRIES,
    )


@lru_cache(maxsize=1)
def get_llm_client() -> LLMClient:
    logger.info(
        "Chat model: %s (timeout=%ss, retries=%s)",
        settings.CHAT_MODEL,
        settings.LLM_TIMEOUT_SECONDS,
        settings.LLM_MAX_RETRIES,
    )
    return LLMClient(
        get_openai_client(),
        model=settings.CHAT_MODEL,
        temperature=settings.CHAT_TEMPERATURE,
        max_tokens=settings.CHAT_MAX_TOKENS,
    )
