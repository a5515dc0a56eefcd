from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from uuid import uuid4

import httpx
from loguru import logger
from supabase import AsyncClient, PostgrestAPIError, acreate_client

from groq_chat.errors import StoreError
from groq_chat.models import ChatRecord, Collection, Comment, utc_now

CHATS_TABLE = "chat_histories"
COLLECTIONS_TABLE = "collections"


async def create_supabase_client(supabase_url: str, anon_key: str) -> AsyncClient:
    return await acreate_client(supabase_url, anon_key)


class SupabaseChatStore:
    """ChatStore backed by Supabase tables, scoped to one signed-in user."""

    def __init__(self, client: AsyncClient, user_id: str, *, access_token: str | None = None):
        self._client = client
        self._user_id = user_id
        if access_token:
            # Row-level security sees the user's JWT instead of the anon key.
            client.postgrest.auth(access_token)

    async def close(self) -> None:
        await self._client.postgrest.aclose()

    async def _execute(self, query: Any, action: str) -> list[dict[str, Any]]:
        try:
            resp = await query.execute()
        except PostgrestAPIError as ex:
            message = ex.message or str(ex)
            logger.error(f"Supabase {action} failed: {message}")
            raise StoreError(message) from ex
        except httpx.HTTPError as ex:
            logger.error(f"Supabase {action} failed: {ex}")
            raise StoreError(f"Could not reach the storage service: {ex}") from ex
        return resp.data or []

    async def list_chats(
        self,
        *,
        collection_id: str | None = None,
        ungrouped: bool = False,
        limit: int = 50,
    ) -> list[ChatRecord]:
        query = self._client.table(CHATS_TABLE).select("*").eq("user_id", self._user_id)
        if ungrouped:
            query = query.is_("collection_id", "null")
        elif collection_id is not None:
            query = query.eq("collection_id", collection_id)
        query = query.order("updated_at", desc=True).limit(max(1, limit))
        rows = await self._execute(query, "list chats")
        return [ChatRecord.from_row(r) for r in rows]

    async def get_chat(self, chat_id: str) -> ChatRecord | None:
        query = self._client.table(CHATS_TABLE).select("*").eq("id", chat_id).limit(1)
        rows = await self._execute(query, "get chat")
        if not rows:
            return None
        return ChatRecord.from_row(rows[0])

    async def create_chat(self, record: ChatRecord) -> ChatRecord:
        now = utc_now()
        row = record.with_updates(user_id=self._user_id, created_at=now, updated_at=now).to_row()
        rows = await self._execute(self._client.table(CHATS_TABLE).insert(row), "create chat")
        if not rows:
            raise StoreError(f"Insert into {CHATS_TABLE} returned no rows")
        logger.info(f"Created chat {rows[0].get('id', record.id)}")
        return ChatRecord.from_row(rows[0])

    async def update_chat(self, record: ChatRecord) -> ChatRecord:
        row = record.with_updates(updated_at=utc_now()).to_row()
        values = {k: row[k] for k in ("title", "messages", "mode", "collection_id", "comments", "updated_at")}
        query = self._client.table(CHATS_TABLE).update(values).eq("id", record.id)
        rows = await self._execute(query, "update chat")
        if not rows:
            raise StoreError(f"Chat not found: {record.id}")
        return ChatRecord.from_row(rows[0])

    async def delete_chat(self, chat_id: str) -> None:
        await self._execute(self._client.table(CHATS_TABLE).delete().eq("id", chat_id), "delete chat")
        logger.info(f"Deleted chat {chat_id}")

    async def set_comments(self, chat_id: str, comments: Sequence[Comment]) -> None:
        query = (
            self._client.table(CHATS_TABLE)
            .update({"comments": [c.to_dict() for c in comments], "updated_at": utc_now()})
            .eq("id", chat_id)
        )
        if not await self._execute(query, "save comments"):
            raise StoreError(f"Chat not found: {chat_id}")

    async def list_collections(self) -> list[Collection]:
        query = (
            self._client.table(COLLECTIONS_TABLE)
            .select("*")
            .eq("user_id", self._user_id)
            .order("created_at")
        )
        return [Collection.from_row(r) for r in await self._execute(query, "list collections")]

    async def create_collection(self, name: str) -> Collection:
        name = name.strip()
        if not name:
            raise StoreError("Collection name is required")
        row = {"id": str(uuid4()), "name": name, "user_id": self._user_id, "created_at": utc_now()}
        rows = await self._execute(self._client.table(COLLECTIONS_TABLE).insert(row), "create collection")
        if not rows:
            raise StoreError(f"Insert into {COLLECTIONS_TABLE} returned no rows")
        return Collection.from_row(rows[0])

    async def rename_collection(self, collection_id: str, name: str) -> None:
        name = name.strip()
        if not name:
            raise StoreError("Collection name is required")
        query = self._client.table(COLLECTIONS_TABLE).update({"name": name}).eq("id", collection_id)
        if not await self._execute(query, "rename collection"):
            raise StoreError(f"Collection not found: {collection_id}")

    async def delete_collection(self, collection_id: str) -> None:
        ungroup = (
            self._client.table(CHATS_TABLE)
            .update({"collection_id": None})
            .eq("collection_id", collection_id)
        )
        await self._execute(ungroup, "ungroup chats")
        await self._execute(
            self._client.table(COLLECTIONS_TABLE).delete().eq("id", collection_id),
            "delete collection",
        )
