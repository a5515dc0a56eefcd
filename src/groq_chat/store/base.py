from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from groq_chat.models import ChatRecord, Collection, Comment


@runtime_checkable
class ChatStore(Protocol):
    """Persistence for chat records and collections.

    Writes are applied in call order with no version check, so two updates to
    the same record race and the last one wins.
    """

    async def list_chats(
        self,
        *,
        collection_id: str | None = None,
        ungrouped: bool = False,
        limit: int = 50,
    ) -> list[ChatRecord]:
        """Most recently updated first. ``ungrouped`` selects the default group."""
        ...

    async def get_chat(self, chat_id: str) -> ChatRecord | None: ...

    async def create_chat(self, record: ChatRecord) -> ChatRecord: ...

    async def update_chat(self, record: ChatRecord) -> ChatRecord: ...

    async def delete_chat(self, chat_id: str) -> None: ...

    async def set_comments(self, chat_id: str, comments: Sequence[Comment]) -> None: ...

    async def list_collections(self) -> list[Collection]: ...

    async def create_collection(self, name: str) -> Collection: ...

    async def rename_collection(self, collection_id: str, name: str) -> None: ...

    async def delete_collection(self, collection_id: str) -> None:
        """Remove a collection; its chats fall back to the default group."""
        ...

    async def close(self) -> None: ...
