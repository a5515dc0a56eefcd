from collections.abc import AsyncIterator

import openai
from loguru import logger


class OpenAIProvider:
    """Chat completions over the OpenAI API or any compatible endpoint (Groq)."""

    def __init__(self, api_key: str, *, base_url: str | None = None):
        self._client = openai.AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def open_stream(
        self,
        model: str,
        max_tokens: int,
        temperature: float,
        messages: list[dict],
    ) -> AsyncIterator[str]:
        logger.debug(f"API request: model={model}, max_tokens={max_tokens}, messages={len(messages)}")
        stream = await self._client.chat.completions.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=messages,
            stream=True,
        )
        return self._iter_text(stream)

    async def _iter_text(self, stream) -> AsyncIterator[str]:
        finish_reason: str | None = None
        text_len = 0
        async for chunk in stream:
            choice = chunk.choices[0] if chunk.choices else None
            if choice is None:
                continue
            if choice.finish_reason:
                finish_reason = choice.finish_reason
            delta = choice.delta
            if delta is None or not delta.content:
                continue
            text_len += len(delta.content)
            yield delta.content
        logger.debug(f"API response: finish_reason={finish_reason}, text_len={text_len}")
