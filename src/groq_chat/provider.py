from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable


@runtime_checkable
class LLMProvider(Protocol):
    async def open_stream(
        self,
        model: str,
        max_tokens: int,
        temperature: float,
        messages: list[dict],
    ) -> AsyncIterator[str]:
        """Start a streamed completion and return an iterator of text deltas.

        ``messages`` is in chat format with the system instruction first. The
        upstream request is issued before this returns, so connection and
        authentication failures raise here rather than mid-iteration.
        """
        ...


def create_provider(provider_name: str, api_key: str, *, base_url: str | None = None) -> LLMProvider:
    """Factory: create an LLMProvider by name."""
    name = provider_name.strip().lower()
    if name in ("groq", "openai"):
        from groq_chat.providers.openai_provider import OpenAIProvider
        return OpenAIProvider(api_key, base_url=base_url)
    if name == "anthropic":
        from groq_chat.providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(api_key)
    raise ValueError(f"Unknown provider: {provider_name!r}. Supported: 'groq', 'openai', 'anthropic'")
