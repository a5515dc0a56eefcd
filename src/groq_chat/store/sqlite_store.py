from __future__ import annotations

import json
import sqlite3
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from uuid import uuid4

from groq_chat.errors import StoreError
from groq_chat.models import ChatRecord, Collection, Comment, utc_now


class SqliteChatStore:
    """Local ChatStore with the same table layout as the hosted backend."""

    def __init__(self, db_path: str, *, user_id: str = "local"):
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._user_id = user_id
        self._initialize_schema()

    async def close(self) -> None:
        self._conn.close()

    def _initialize_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS collections (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS chat_histories (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                messages_json TEXT NOT NULL DEFAULT '[]',
                mode TEXT NOT NULL,
                collection_id TEXT NULL REFERENCES collections(id) ON DELETE SET NULL,
                comments_json TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_chat_histories_user_updated
                ON chat_histories(user_id, updated_at);
            CREATE INDEX IF NOT EXISTS idx_chat_histories_collection
                ON chat_histories(collection_id);
            """
        )
        self._conn.commit()

    def _write(self, query: str, params: tuple[Any, ...]) -> sqlite3.Cursor:
        try:
            cursor = self._conn.execute(query, params)
            self._conn.commit()
            return cursor
        except sqlite3.Error as ex:
            self._conn.rollback()
            raise StoreError(str(ex)) from ex

    def _row_to_record(self, row: sqlite3.Row) -> ChatRecord:
        data = dict(row)
        data["messages"] = json.loads(data.pop("messages_json"))
        data["comments"] = json.loads(data.pop("comments_json"))
        return ChatRecord.from_row(data)

    async def list_chats(
        self,
        *,
        collection_id: str | None = None,
        ungrouped: bool = False,
        limit: int = 50,
    ) -> list[ChatRecord]:
        query = "SELECT * FROM chat_histories WHERE user_id = ?"
        params: list[Any] = [self._user_id]
        if ungrouped:
            query += " AND collection_id IS NULL"
        elif collection_id is not None:
            query += " AND collection_id = ?"
            params.append(collection_id)
        query += " ORDER BY updated_at DESC, created_at DESC LIMIT ?"
        params.append(max(1, limit))
        rows = self._conn.execute(query, tuple(params)).fetchall()
        return [self._row_to_record(r) for r in rows]

    async def get_chat(self, chat_id: str) -> ChatRecord | None:
        row = self._conn.execute(
            "SELECT * FROM chat_histories WHERE id = ? LIMIT 1",
            (chat_id,),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_record(row)

    async def create_chat(self, record: ChatRecord) -> ChatRecord:
        now = utc_now()
        record = record.with_updates(user_id=self._user_id, created_at=now, updated_at=now)
        self._write(
            """
            INSERT INTO chat_histories
                (id, user_id, title, messages_json, mode, collection_id, comments_json, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                self._user_id,
                record.title,
                json.dumps([m.to_dict() for m in record.messages], ensure_ascii=True),
                record.mode.value,
                record.collection_id,
                json.dumps([c.to_dict() for c in record.comments], ensure_ascii=True),
                record.created_at,
                record.updated_at,
            ),
        )
        return record

    async def update_chat(self, record: ChatRecord) -> ChatRecord:
        record = record.with_updates(updated_at=utc_now())
        cursor = self._write(
            """
            UPDATE chat_histories
            SET title = ?, messages_json = ?, mode = ?, collection_id = ?, comments_json = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                record.title,
                json.dumps([m.to_dict() for m in record.messages], ensure_ascii=True),
                record.mode.value,
                record.collection_id,
                json.dumps([c.to_dict() for c in record.comments], ensure_ascii=True),
                record.updated_at,
                record.id,
            ),
        )
        if cursor.rowcount == 0:
            raise StoreError(f"Chat not found: {record.id}")
        return record

    async def delete_chat(self, chat_id: str) -> None:
        self._write("DELETE FROM chat_histories WHERE id = ?", (chat_id,))

    async def set_comments(self, chat_id: str, comments: Sequence[Comment]) -> None:
        cursor = self._write(
            "UPDATE chat_histories SET comments_json = ?, updated_at = ? WHERE id = ?",
            (json.dumps([c.to_dict() for c in comments], ensure_ascii=True), utc_now(), chat_id),
        )
        if cursor.rowcount == 0:
            raise StoreError(f"Chat not found: {chat_id}")

    async def list_collections(self) -> list[Collection]:
        rows = self._conn.execute(
            "SELECT * FROM collections WHERE user_id = ? ORDER BY created_at ASC, name ASC",
            (self._user_id,),
        ).fetchall()
        return [Collection.from_row(dict(r)) for r in rows]

    async def create_collection(self, name: str) -> Collection:
        name = name.strip()
        if not name:
            raise StoreError("Collection name is required")
        collection = Collection(id=str(uuid4()), name=name, user_id=self._user_id, created_at=utc_now())
        self._write(
            "INSERT INTO collections (id, user_id, name, created_at) VALUES (?, ?, ?, ?)",
            (collection.id, self._user_id, collection.name, collection.created_at),
        )
        return collection

    async def rename_collection(self, collection_id: str, name: str) -> None:
        name = name.strip()
        if not name:
            raise StoreError("Collection name is required")
        cursor = self._write("UPDATE collections SET name = ? WHERE id = ?", (name, collection_id))
        if cursor.rowcount == 0:
            raise StoreError(f"Collection not found: {collection_id}")

    async def delete_collection(self, collection_id: str) -> None:
        self._write("DELETE FROM collections WHERE id = ?", (collection_id,))
