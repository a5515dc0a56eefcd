import asyncio
import unittest

from groq_chat.errors import StoreError
from groq_chat.models import Comment, Message
from groq_chat.modes import ChatMode
from groq_chat.store import SqliteChatStore
from tests.store.base import SqliteStoreTestCase, make_record


class SqliteChatStoreTests(SqliteStoreTestCase):
    def test_create_and_get_round_trip(self) -> None:
        record = make_record("Big O")
        comment = Comment(
            id="c1",
            text="check",
            created_at="2026-01-01T00:00:00+00:00",
            highlighted_text="Hello",
            message_index=1,
            start_offset=0,
            end_offset=5,
        )

        async def run():
            created = await self._store.create_chat(record.with_updates(comments=(comment,)))
            return created, await self._store.get_chat(record.id)

        created, loaded = asyncio.run(run())
        self.assertEqual("local", created.user_id)
        self.assertTrue(created.created_at)
        self.assertEqual(created, loaded)
        self.assertEqual((comment,), loaded.comments)

    def test_get_missing_returns_none(self) -> None:
        self.assertIsNone(asyncio.run(self._store.get_chat("nope")))

    def test_update_replaces_messages_and_mode(self) -> None:
        record = make_record()

        async def run():
            created = await self._store.create_chat(record)
            await self._store.update_chat(
                created.with_updates(
                    messages=(*created.messages, Message("user", "more")),
                    mode=ChatMode.RESEARCH,
                    title="Renamed",
                )
            )
            return await self._store.get_chat(record.id)

        loaded = asyncio.run(run())
        self.assertEqual(3, len(loaded.messages))
        self.assertEqual(ChatMode.RESEARCH, loaded.mode)
        self.assertEqual("Renamed", loaded.title)

    def test_update_missing_chat_raises(self) -> None:
        with self.assertRaises(StoreError):
            asyncio.run(self._store.update_chat(make_record()))

    def test_set_comments_and_delete(self) -> None:
        record = make_record()

        async def run():
            await self._store.create_chat(record)
            await self._store.set_comments(record.id, [Comment(id="c", text="t", created_at="x")])
            with_comment = await self._store.get_chat(record.id)
            await self._store.delete_chat(record.id)
            return with_comment, await self._store.get_chat(record.id)

        with_comment, deleted = asyncio.run(run())
        self.assertEqual(["t"], [c.text for c in with_comment.comments])
        self.assertIsNone(deleted)

    def test_collections_group_and_ungroup_chats(self) -> None:
        async def run():
            work = await self._store.create_collection("  Work  ")
            grouped = await self._store.create_chat(make_record("grouped", collection_id=work.id))
            loose = await self._store.create_chat(make_record("loose"))
            in_work = await self._store.list_chats(collection_id=work.id)
            ungrouped = await self._store.list_chats(ungrouped=True)
            everything = await self._store.list_chats()

            await self._store.rename_collection(work.id, "Job")
            collections = await self._store.list_collections()

            await self._store.delete_collection(work.id)
            after_delete = await self._store.get_chat(grouped.id)
            return work, loose, in_work, ungrouped, everything, collections, after_delete

        work, loose, in_work, ungrouped, everything, collections, after_delete = asyncio.run(run())
        self.assertEqual("Work", work.name)
        self.assertEqual(["grouped"], [c.title for c in in_work])
        self.assertEqual([loose.id], [c.id for c in ungrouped])
        self.assertEqual({"grouped", "loose"}, {c.title for c in everything})
        self.assertEqual(["Job"], [c.name for c in collections])
        self.assertIsNotNone(after_delete)
        self.assertIsNone(after_delete.collection_id)

    def test_blank_collection_name_is_rejected(self) -> None:
        with self.assertRaises(StoreError):
            asyncio.run(self._store.create_collection("   "))

    def test_chats_are_scoped_to_user(self) -> None:
        other = SqliteChatStore(str(self._tmp_dir / "chats.db"), user_id="someone-else")
        try:
            asyncio.run(self._store.create_chat(make_record()))
            self.assertEqual([], asyncio.run(other.list_chats()))
        finally:
            asyncio.run(other.close())


class InMemorySqliteTests(unittest.TestCase):
    def test_memory_database(self) -> None:
        store = SqliteChatStore(":memory:")

        async def run():
            await store.create_chat(make_record("one"))
            chats = await store.list_chats(limit=10)
            await store.close()
            return chats

        self.assertEqual(["one"], [c.title for c in asyncio.run(run())])


if __name__ == "__main__":
    unittest.main()
