from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from uuid import uuid4

from loguru import logger

from groq_chat.errors import StoreError
from groq_chat.highlights import CommentDraft, Selection, new_comment, visible_comments
from groq_chat.models import ChatRecord, Comment, derive_title, utc_now
from groq_chat.modes import DEFAULT_MODE, ChatMode
from groq_chat.reducer import (
    ChatEvent,
    ChatState,
    ChunkReceived,
    ConversationCleared,
    ConversationLoaded,
    ConversationSaved,
    InputChanged,
    ModeChanged,
    StreamDecoder,
    StreamEnded,
    StreamFailed,
    StreamStarted,
    Submitted,
    reduce,
)
from groq_chat.relay_client import StreamSource
from groq_chat.services.notifier import Notifier
from groq_chat.store.base import ChatStore


async def apply_tentatively(
    apply: Callable[[], None],
    confirm: Callable[[], Awaitable[None]],
    revert: Callable[[], None],
) -> bool:
    """Apply a local change, then keep it only if the remote write succeeds."""
    apply()
    try:
        await confirm()
    except StoreError:
        revert()
        raise
    return True


class ChatSession:
    """State and side effects of one conversation view.

    All message-list changes go through the reducer. Once ``close()`` has been
    called the session ignores any further stream output, so a response that
    finishes after teardown cannot touch the state.
    """

    def __init__(
        self,
        relay: StreamSource,
        *,
        notifier: Notifier,
        store: ChatStore | None = None,
        mode: ChatMode = DEFAULT_MODE,
        on_chunk: Callable[[str], None] | None = None,
    ):
        self._relay = relay
        self._store = store
        self._notifier = notifier
        self._on_chunk = on_chunk
        self._state = ChatState(mode=mode)
        self._record: ChatRecord | None = None
        self._comments: tuple[Comment, ...] = ()
        self._collection_id: str | None = None
        self._draft = CommentDraft()
        self._alive = True
        self._submit_lock = asyncio.Lock()

    @property
    def state(self) -> ChatState:
        return self._state

    @property
    def comments(self) -> tuple[Comment, ...]:
        return self._comments

    @property
    def collection_id(self) -> str | None:
        return self._collection_id

    @property
    def draft(self) -> CommentDraft:
        return self._draft

    @property
    def is_alive(self) -> bool:
        return self._alive

    def close(self) -> None:
        self._alive = False

    def _dispatch(self, event: ChatEvent) -> None:
        if not self._alive:
            return
        self._state = reduce(self._state, event)

    def set_input(self, text: str) -> None:
        self._dispatch(InputChanged(text))

    def set_mode(self, mode: ChatMode) -> None:
        self._dispatch(ModeChanged(mode))

    # -- sending --

    async def submit(self, text: str | None = None) -> bool:
        """Send ``text`` (or the pending input). Blank text is ignored."""
        text = self._state.input if text is None else text
        if not text.strip() or not self._alive:
            return False

        async with self._submit_lock:
            history = [*self._state.message_dicts(), {"role": "user", "content": text}]
            self._dispatch(Submitted(text))
            completed = await self._stream_reply(history)
            if completed and self._alive:
                await self._persist()
        return completed

    async def quick_submit(self, text: str, mode: ChatMode | None = None) -> bool:
        if mode is not None:
            self.set_mode(mode)
        self.set_input("")
        return await self.submit(text)

    async def _stream_reply(self, history: list[dict]) -> bool:
        decoder = StreamDecoder()
        try:
            async with self._relay.open_stream(history, self._state.mode) as chunks:
                self._dispatch(StreamStarted())
                async for chunk in chunks:
                    if not self._alive:
                        logger.debug("Session closed mid-stream; dropping remaining output")
                        break
                    self._receive(decoder.decode(chunk))
            self._receive(decoder.flush())
            return True
        except Exception as ex:
            logger.error(f"Error: {ex}")
            self._dispatch(StreamFailed())
            if self._alive:
                self._notifier.error("Failed to get a response. Please try again.")
            return False
        finally:
            self._dispatch(StreamEnded())

    def _receive(self, text: str) -> None:
        if not text or not self._alive:
            return
        self._dispatch(ChunkReceived(text))
        if self._on_chunk is not None:
            self._on_chunk(text)

    # -- persistence --

    def _current_record(self) -> ChatRecord | None:
        if self._record is None:
            return None
        return self._record.with_updates(
            title=self._state.title or self._record.title,
            messages=self._state.messages,
            mode=self._state.mode,
            collection_id=self._collection_id,
            comments=self._comments,
        )

    async def _persist(self) -> None:
        if self._store is None:
            return
        try:
            record = self._current_record()
            if record is None:
                first_user = next((m.content for m in self._state.messages if m.role == "user"), "")
                now = utc_now()
                record = ChatRecord(
                    id=str(uuid4()),
                    title=self._state.title or derive_title(first_user),
                    messages=self._state.messages,
                    mode=self._state.mode,
                    created_at=now,
                    updated_at=now,
                    collection_id=self._collection_id,
                    comments=self._comments,
                )
                self._record = await self._store.create_chat(record)
            else:
                self._record = await self._store.update_chat(record)
        except StoreError as ex:
            logger.error(f"Failed to save chat: {ex}")
            self._notifier.error(f"Failed to save chat: {ex}")
            return
        self._dispatch(ConversationSaved(self._record.id, self._record.title))

    # -- conversations --

    def new_chat(self) -> None:
        self._dispatch(ConversationCleared())
        self._record = None
        self._comments = ()
        self._collection_id = None
        self._draft.cancel()

    async def load_chat(self, chat_id: str) -> bool:
        if self._store is None:
            return False
        try:
            record = await self._store.get_chat(chat_id)
        except StoreError as ex:
            self._notifier.error(f"Failed to load chat: {ex}")
            return False
        if record is None:
            self._notifier.error(f"Chat not found: {chat_id}")
            return False
        self._record = record
        self._comments = record.comments
        self._collection_id = record.collection_id
        self._draft.cancel()
        self._dispatch(ConversationLoaded(record.id, record.title, record.messages, record.mode))
        return True

    async def delete_chat(self, chat_id: str) -> bool:
        if self._store is None:
            return False
        try:
            await self._store.delete_chat(chat_id)
        except StoreError as ex:
            self._notifier.error(f"Failed to delete chat: {ex}")
            return False
        if self._state.chat_id == chat_id:
            self.new_chat()
        self._notifier.success("Chat deleted")
        return True

    async def rename(self, title: str) -> bool:
        title = title.strip()
        if not title or self._state.chat_id is None:
            return False
        self._dispatch(ConversationSaved(self._state.chat_id, title))
        await self._persist()
        return True

    async def move_to_collection(self, collection_id: str | None) -> bool:
        self._collection_id = collection_id
        if self._state.chat_id is None:
            return True
        await self._persist()
        return True

    # -- comments --

    def visible_comments(self) -> list[Comment]:
        return visible_comments(self._state.messages, self._comments)

    def select_text(self, message_index: int, selected_text: str, hint: int = 0) -> Selection:
        if not 0 <= message_index < len(self._state.messages):
            raise ValueError(f"No message #{message_index}")
        content = self._state.messages[message_index].content
        return self._draft.select_text(message_index, content, selected_text, hint)

    async def save_draft(self, text: str) -> Comment | None:
        comment = self._draft.save(text)
        if comment is None:
            return None
        return comment if await self.add_comment(comment) else None

    async def add_standalone_comment(self, text: str) -> Comment | None:
        comment = new_comment(text)
        if comment is None:
            return None
        return comment if await self.add_comment(comment) else None

    async def add_comment(self, comment: Comment) -> bool:
        chat_id = self._state.chat_id

        def apply() -> None:
            self._comments = (*self._comments, comment)

        def revert() -> None:
            self._comments = tuple(c for c in self._comments if c.id != comment.id)

        async def confirm() -> None:
            if self._store is not None and chat_id is not None:
                await self._store.set_comments(chat_id, self._comments)

        try:
            await apply_tentatively(apply, confirm, revert)
        except StoreError as ex:
            logger.error(f"Failed to save comment: {ex}")
            self._notifier.error(f"Failed to save comment: {ex}")
            return False
        if self._record is not None:
            self._record = self._record.with_updates(comments=self._comments)
        self._notifier.success("Comment added")
        return True

    async def delete_comment(self, comment_id: str) -> bool:
        remaining = tuple(c for c in self._comments if c.id != comment_id)
        if len(remaining) == len(self._comments):
            return False
        chat_id = self._state.chat_id
        if self._store is not None and chat_id is not None:
            try:
                await self._store.set_comments(chat_id, remaining)
            except StoreError as ex:
                self._notifier.error(f"Failed to delete comment: {ex}")
                return False
        self._comments = remaining
        if self._record is not None:
            self._record = self._record.with_updates(comments=remaining)
        self._notifier.success("Comment deleted")
        return True
