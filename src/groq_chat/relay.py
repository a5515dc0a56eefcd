from __future__ import annotations

from collections.abc import AsyncIterator

from loguru import logger

from groq_chat.errors import InvalidMessagesError
from groq_chat.modes import ChatMode, get_system_prompt, parse_mode
from groq_chat.provider import LLMProvider

_CHAT_ROLES = {"user", "assistant"}


def validate_messages(messages: object) -> list[dict]:
    """Return a clean copy of a role-tagged message list or raise InvalidMessagesError."""
    if not isinstance(messages, list) or not messages:
        raise InvalidMessagesError()
    cleaned: list[dict] = []
    for msg in messages:
        if not isinstance(msg, dict):
            raise InvalidMessagesError()
        role = msg.get("role")
        content = msg.get("content")
        if role not in _CHAT_ROLES or not isinstance(content, str):
            raise InvalidMessagesError()
        cleaned.append({"role": role, "content": content})
    return cleaned


def apply_history_window(messages: list[dict], window: int) -> list[dict]:
    """Keep the trailing ``window`` messages; 0 keeps everything."""
    if window <= 0 or len(messages) <= window:
        return list(messages)
    return list(messages[-window:])


def build_upstream_messages(
    messages: object,
    mode: ChatMode | str | None,
    *,
    history_window: int = 0,
) -> list[dict]:
    chat = apply_history_window(validate_messages(messages), history_window)
    system_message = {"role": "system", "content": get_system_prompt(mode)}
    return [system_message, *chat]


class CompletionRelay:
    """Forwards a conversation to the LLM provider and relays its text stream."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        model: str,
        max_tokens: int,
        temperature: float,
        history_window: int = 0,
    ):
        self._provider = provider
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._history_window = history_window

    async def open(self, messages: object, mode: ChatMode | str | None = None) -> AsyncIterator[str]:
        """Validate, open the upstream stream and return the fragment iterator.

        Raises InvalidMessagesError before any network call when the history is
        unusable. Errors opening the upstream stream propagate to the caller.
        """
        resolved_mode = parse_mode(mode)
        upstream = build_upstream_messages(messages, resolved_mode, history_window=self._history_window)
        logger.info(f"Relaying {len(upstream) - 1} message(s) in mode {resolved_mode.value}")
        deltas = await self._provider.open_stream(
            self._model,
            self._max_tokens,
            self._temperature,
            upstream,
        )
        return self._relay(deltas)

    async def _relay(self, deltas: AsyncIterator[str]) -> AsyncIterator[str]:
        fragments = 0
        try:
            async for text in deltas:
                if not text:
                    continue
                fragments += 1
                yield text
        except Exception as ex:
            # The response status is already sent; the client only sees the stream end.
            logger.error(f"Streaming error after {fragments} fragment(s): {ex}")
        else:
            logger.debug(f"Stream finished after {fragments} fragment(s)")
