from collections.abc import AsyncIterator

import anthropic
from loguru import logger


def _split_system(messages: list[dict]) -> tuple[str, list[dict]]:
    """Anthropic takes the system instruction as a separate parameter."""
    system_parts: list[str] = []
    chat: list[dict] = []
    for msg in messages:
        if msg["role"] == "system":
            system_parts.append(msg["content"])
        else:
            chat.append({"role": msg["role"], "content": msg["content"]})
    return "\n\n".join(system_parts), chat


class AnthropicProvider:
    def __init__(self, api_key: str):
        self._client = anthropic.AsyncAnthropic(api_key=api_key)

    async def open_stream(
        self,
        model: str,
        max_tokens: int,
        temperature: float,
        messages: list[dict],
    ) -> AsyncIterator[str]:
        system_prompt, chat = _split_system(messages)
        logger.debug(f"API request: model={model}, max_tokens={max_tokens}, messages={len(chat)}")
        stream = await self._client.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=chat,
            stream=True,
        )
        return self._iter_text(stream)

    async def _iter_text(self, stream) -> AsyncIterator[str]:
        stop_reason: str | None = None
        async for event in stream:
            if event.type == "content_block_delta":
                if event.delta.type == "text_delta" and event.delta.text:
                    yield event.delta.text
            elif event.type == "message_delta":
                stop_reason = getattr(event.delta, "stop_reason", None)
        logger.debug(f"API response: stop_reason={stop_reason}")
