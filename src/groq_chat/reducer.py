"""Conversation view state and its single transition function.

Every change to the message list goes through ``reduce(state, event)``,
which returns a new ``ChatState``. Streamed text is appended to the trailing
assistant message in arrival order, so replaying the same stream always
produces the same content regardless of how it was chunked.
"""

from __future__ import annotations

import codecs
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace

from groq_chat.models import Message
from groq_chat.modes import DEFAULT_MODE, ChatMode

ERROR_MESSAGE = "An error occurred while processing your request."


@dataclass(frozen=True)
class ChatState:
    messages: tuple[Message, ...] = ()
    input: str = ""
    is_loading: bool = False
    mode: ChatMode = DEFAULT_MODE
    chat_id: str | None = None
    title: str | None = None

    def message_dicts(self) -> list[dict[str, str]]:
        return [m.to_dict() for m in self.messages]


@dataclass(frozen=True)
class InputChanged:
    text: str


@dataclass(frozen=True)
class Submitted:
    text: str


@dataclass(frozen=True)
class StreamStarted:
    pass


@dataclass(frozen=True)
class ChunkReceived:
    text: str


@dataclass(frozen=True)
class StreamEnded:
    pass


@dataclass(frozen=True)
class StreamFailed:
    message: str = ERROR_MESSAGE


@dataclass(frozen=True)
class ModeChanged:
    mode: ChatMode


@dataclass(frozen=True)
class ConversationLoaded:
    chat_id: str
    title: str
    messages: tuple[Message, ...]
    mode: ChatMode


@dataclass(frozen=True)
class ConversationSaved:
    chat_id: str
    title: str


@dataclass(frozen=True)
class ConversationCleared:
    pass


ChatEvent = (
    InputChanged
    | Submitted
    | StreamStarted
    | ChunkReceived
    | StreamEnded
    | StreamFailed
    | ModeChanged
    | ConversationLoaded
    | ConversationSaved
    | ConversationCleared
)


def _on_input_changed(state: ChatState, event: InputChanged) -> ChatState:
    return replace(state, input=event.text)


def _on_submitted(state: ChatState, event: Submitted) -> ChatState:
    if not event.text.strip():
        return state
    return replace(
        state,
        messages=(*state.messages, Message("user", event.text)),
        input="",
        is_loading=True,
    )


def _on_stream_started(state: ChatState, event: StreamStarted) -> ChatState:
    return replace(state, messages=(*state.messages, Message("assistant", "")))


def _on_chunk_received(state: ChatState, event: ChunkReceived) -> ChatState:
    if not event.text:
        return state
    if not state.messages or state.messages[-1].role != "assistant":
        # Chunk without a placeholder: open one rather than lose the text.
        return replace(state, messages=(*state.messages, Message("assistant", event.text)))
    last = state.messages[-1]
    return replace(state, messages=(*state.messages[:-1], Message("assistant", last.content + event.text)))


def _on_stream_ended(state: ChatState, event: StreamEnded) -> ChatState:
    return replace(state, is_loading=False)


def _on_stream_failed(state: ChatState, event: StreamFailed) -> ChatState:
    messages = state.messages
    if messages and messages[-1].role == "assistant" and not messages[-1].content:
        messages = messages[:-1]
    return replace(state, messages=(*messages, Message("assistant", event.message)), is_loading=False)


def _on_mode_changed(state: ChatState, event: ModeChanged) -> ChatState:
    return replace(state, mode=event.mode)


def _on_conversation_loaded(state: ChatState, event: ConversationLoaded) -> ChatState:
    return ChatState(
        messages=tuple(event.messages),
        mode=event.mode,
        chat_id=event.chat_id,
        title=event.title,
    )


def _on_conversation_saved(state: ChatState, event: ConversationSaved) -> ChatState:
    return replace(state, chat_id=event.chat_id, title=event.title)


def _on_conversation_cleared(state: ChatState, event: ConversationCleared) -> ChatState:
    return ChatState(mode=state.mode)


_HANDLERS: dict[type, Callable[[ChatState, object], ChatState]] = {
    InputChanged: _on_input_changed,
    Submitted: _on_submitted,
    StreamStarted: _on_stream_started,
    ChunkReceived: _on_chunk_received,
    StreamEnded: _on_stream_ended,
    StreamFailed: _on_stream_failed,
    ModeChanged: _on_mode_changed,
    ConversationLoaded: _on_conversation_loaded,
    ConversationSaved: _on_conversation_saved,
    ConversationCleared: _on_conversation_cleared,
}


def reduce(state: ChatState, event: ChatEvent) -> ChatState:
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unsupported chat event: {type(event).__name__}")
    return handler(state, event)


class StreamDecoder:
    """Incremental UTF-8 decoding of response bytes.

    A multi-byte character split across two chunks is held back until its
    remaining bytes arrive.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def decode(self, chunk: bytes) -> str:
        return self._decoder.decode(chunk)

    def flush(self) -> str:
        return self._decoder.decode(b"", final=True)


def assemble_stream(state: ChatState, chunks: Iterable[bytes]) -> ChatState:
    """Apply a complete byte stream to ``state`` as one assistant reply."""
    decoder = StreamDecoder()
    state = reduce(state, StreamStarted())
    for chunk in chunks:
        state = reduce(state, ChunkReceived(decoder.decode(chunk)))
    state = reduce(state, ChunkReceived(decoder.flush()))
    return reduce(state, StreamEnded())
