import asyncio
import unittest
from types import SimpleNamespace
from typing import Any

import httpx
from supabase import PostgrestAPIError

from groq_chat.errors import StoreError
from groq_chat.models import Comment
from groq_chat.store import SupabaseChatStore
from tests.store.base import make_record


class _FakeQuery:
    """Records the builder chain; ``execute`` answers from the client's queue."""

    def __init__(self, client: "_FakeSupabase", table: str):
        self._client = client
        self.table = table
        self.calls: list[tuple[str, tuple, dict]] = []

    def _add(self, name: str, *args: Any, **kwargs: Any) -> "_FakeQuery":
        self.calls.append((name, args, kwargs))
        return self

    def select(self, *columns: str) -> "_FakeQuery":
        return self._add("select", *columns)

    def insert(self, row: dict) -> "_FakeQuery":
        return self._add("insert", row)

    def update(self, values: dict) -> "_FakeQuery":
        return self._add("update", values)

    def delete(self) -> "_FakeQuery":
        return self._add("delete")

    def eq(self, column: str, value: Any) -> "_FakeQuery":
        return self._add("eq", column, value)

    def is_(self, column: str, value: Any) -> "_FakeQuery":
        return self._add("is_", column, value)

    def order(self, column: str, *, desc: bool = False) -> "_FakeQuery":
        return self._add("order", column, desc=desc)

    def limit(self, size: int) -> "_FakeQuery":
        return self._add("limit", size)

    def arg(self, name: str) -> tuple:
        return next(args for n, args, _ in self.calls if n == name)

    async def execute(self) -> SimpleNamespace:
        if self._client.error is not None:
            raise self._client.error
        data = self._client.responses.pop(0) if self._client.responses else []
        return SimpleNamespace(data=data)


class _FakePostgrest:
    def __init__(self):
        self.tokens: list[str] = []
        self.closed = False

    def auth(self, token: str) -> None:
        self.tokens.append(token)

    async def aclose(self) -> None:
        self.closed = True


class _FakeSupabase:
    def __init__(self):
        self.queries: list[_FakeQuery] = []
        self.responses: list[list[dict]] = []
        self.error: Exception | None = None
        self.postgrest = _FakePostgrest()

    def table(self, name: str) -> _FakeQuery:
        query = _FakeQuery(self, name)
        self.queries.append(query)
        return query


class SupabaseChatStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._client = _FakeSupabase()
        self._store = SupabaseChatStore(self._client, "user-1", access_token="user-jwt")

    def test_uses_user_token_and_closes_connection(self) -> None:
        asyncio.run(self._store.close())
        self.assertEqual(["user-jwt"], self._client.postgrest.tokens)
        self.assertTrue(self._client.postgrest.closed)

    def test_list_chats_filters_by_user_and_orders_by_recency(self) -> None:
        row = make_record("Saved").with_updates(user_id="user-1").to_row()
        self._client.responses.append([row])

        chats = asyncio.run(self._store.list_chats(limit=20))

        self.assertEqual(["Saved"], [c.title for c in chats])
        query = self._client.queries[0]
        self.assertEqual("chat_histories", query.table)
        self.assertEqual(("user_id", "user-1"), query.arg("eq"))
        self.assertIn(("order", ("updated_at",), {"desc": True}), query.calls)
        self.assertEqual((20,), query.arg("limit"))

    def test_list_ungrouped_and_by_collection(self) -> None:
        asyncio.run(self._store.list_chats(ungrouped=True))
        asyncio.run(self._store.list_chats(collection_id="col-1"))

        ungrouped, grouped = self._client.queries
        self.assertEqual(("collection_id", "null"), ungrouped.arg("is_"))
        self.assertIn(("eq", ("collection_id", "col-1"), {}), grouped.calls)

    def test_create_chat_inserts_user_scoped_row(self) -> None:
        record = make_record("New")
        self._client.responses.append([record.with_updates(user_id="user-1").to_row()])

        created = asyncio.run(self._store.create_chat(record))

        (row,) = self._client.queries[0].arg("insert")
        self.assertEqual("user-1", row["user_id"])
        self.assertEqual("general", row["mode"])
        self.assertEqual(
            [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "Hello!"}],
            row["messages"],
        )
        self.assertEqual(record.id, created.id)

    def test_create_without_returned_row_raises(self) -> None:
        with self.assertRaises(StoreError):
            asyncio.run(self._store.create_chat(make_record()))

    def test_update_missing_chat_raises(self) -> None:
        with self.assertRaises(StoreError):
            asyncio.run(self._store.update_chat(make_record()))
        self.assertEqual("update", self._client.queries[0].calls[0][0])

    def test_set_comments_sends_only_comment_columns(self) -> None:
        record = make_record()
        self._client.responses.append([record.to_row()])

        asyncio.run(self._store.set_comments(record.id, [Comment(id="c", text="t", created_at="x")]))

        query = self._client.queries[0]
        (values,) = query.arg("update")
        self.assertEqual({"comments", "updated_at"}, set(values))
        self.assertEqual(("id", record.id), query.arg("eq"))

    def test_api_error_surfaces_provider_message(self) -> None:
        self._client.error = PostgrestAPIError({"message": "JWT expired", "code": "PGRST301"})
        with self.assertRaises(StoreError) as ctx:
            asyncio.run(self._store.get_chat("x"))
        self.assertEqual("JWT expired", str(ctx.exception))

    def test_network_failure_is_a_store_error(self) -> None:
        self._client.error = httpx.ConnectError("unreachable")
        with self.assertRaises(StoreError):
            asyncio.run(self._store.delete_chat("x"))

    def test_delete_collection_ungroups_chats_first(self) -> None:
        asyncio.run(self._store.delete_collection("col-1"))

        ungroup, delete = self._client.queries
        self.assertEqual("chat_histories", ungroup.table)
        self.assertEqual(({"collection_id": None},), ungroup.arg("update"))
        self.assertEqual(("collection_id", "col-1"), ungroup.arg("eq"))
        self.assertEqual("collections", delete.table)
        self.assertEqual(("id", "col-1"), delete.arg("eq"))

    def test_blank_collection_name_makes_no_request(self) -> None:
        with self.assertRaises(StoreError):
            asyncio.run(self._store.create_collection(" "))
        self.assertEqual([], self._client.queries)


if __name__ == "__main__":
    unittest.main()
