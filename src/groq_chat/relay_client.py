from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol

import httpx
from loguru import logger

from groq_chat.errors import InvalidMessagesError, RelayError
from groq_chat.modes import ChatMode
from groq_chat.relay import CompletionRelay


class StreamSource(Protocol):
    def open_stream(self, messages: list[dict], mode: ChatMode) -> AsyncIterator[AsyncIterator[bytes]]:
        """Async context manager yielding the response body as raw byte chunks."""
        ...


class RelayClient:
    """Talks to the relay's HTTP endpoint and exposes the streamed body."""

    def __init__(
        self,
        url: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ):
        self._url = url
        # No read timeout: a long completion may pause between fragments.
        self._client = httpx.AsyncClient(
            transport=transport,
            timeout=httpx.Timeout(timeout, read=None),
        )

    async def close(self) -> None:
        await self._client.aclose()

    @asynccontextmanager
    async def open_stream(self, messages: list[dict], mode: ChatMode) -> AsyncIterator[AsyncIterator[bytes]]:
        logger.debug(f"Relay request: url={self._url}, messages={len(messages)}, mode={mode.value}")
        try:
            async with self._client.stream(
                "POST",
                self._url,
                json={"messages": messages, "mode": mode.value},
            ) as resp:
                if resp.status_code >= 400:
                    body = (await resp.aread()).decode("utf-8", errors="replace")
                    raise RelayError(f"Relay returned HTTP {resp.status_code}: {body}", resp.status_code)
                yield resp.aiter_bytes()
        except httpx.HTTPError as ex:
            raise RelayError(f"Failed to fetch: {ex}") from ex


class LocalRelayClient:
    """Runs the relay in-process, for using the chat client without a server."""

    def __init__(self, relay: CompletionRelay):
        self._relay = relay

    async def close(self) -> None:
        return None

    @asynccontextmanager
    async def open_stream(self, messages: list[dict], mode: ChatMode) -> AsyncIterator[AsyncIterator[bytes]]:
        try:
            fragments = await self._relay.open(messages, mode)
        except InvalidMessagesError as ex:
            raise RelayError(str(ex), 400) from ex
        yield self._encode(fragments)

    async def _encode(self, fragments: AsyncIterator[str]) -> AsyncIterator[bytes]:
        async for text in fragments:
            yield text.encode("utf-8")
