from __future__ import annotations

from collections.abc import Awaitable, Callable

from groq_chat.chat_session import ChatSession
from groq_chat.commands.router import CommandRouter
from groq_chat.errors import StoreError
from groq_chat.models import ChatRecord, Collection
from groq_chat.modes import MODE_LABELS, MODE_TAGLINES, SUGGESTED_PROMPTS, ChatMode
from groq_chat.services.chat_formatter import ChatFormatter
from groq_chat.services.notifier import Notifier
from groq_chat.store.base import ChatStore


class ChatConsole:
    """Terminal front-end: plain lines go to the model, ``/`` lines are commands."""

    LINE_PREFIX = "groq70> "
    USER_PROMPT = "you> "

    def __init__(
        self,
        session: ChatSession,
        *,
        notifier: Notifier,
        store: ChatStore | None = None,
        on_logout: Callable[[], Awaitable[None]] | None = None,
    ):
        self._session = session
        self._store = store
        self._notifier = notifier
        self._on_logout = on_logout
        self._formatter = ChatFormatter(line_prefix=self.LINE_PREFIX)
        self.exit_requested = False
        self._router = CommandRouter(
            {
                "help": self._on_help,
                "mode": self._on_mode,
                "prompts": self._on_prompts,
                "quick": self._on_quick,
                "new": self._on_new,
                "show": self._on_show,
                "list": self._on_list,
                "open": self._on_open,
                "delete": self._on_delete,
                "title": self._on_title,
                "collections": self._on_collections,
                "collection": self._on_collection,
                "comment": self._on_comment,
                "comments": self._on_comments,
                "logout": self._on_logout_command,
            },
            on_unknown=self._on_unknown_command,
        )

    def _say(self, text: str) -> None:
        print(f"{self.LINE_PREFIX}{text}")

    def greeting(self) -> str:
        mode = self._session.state.mode
        return f"Groq70: {MODE_TAGLINES[mode]} ({MODE_LABELS[mode]})"

    async def handle_line(self, line: str) -> None:
        if await self._router.try_handle(line):
            return
        print(self.LINE_PREFIX, end="", flush=True)
        await self._session.submit(line)
        print()

    # -- general --

    async def _on_help(self, args: str) -> None:
        self._say("Available commands:")
        self._say("- /help")
        self._say("- /mode [general|software|notetaking|research]")
        self._say("- /prompts")
        self._say("- /quick <number>")
        self._say("- /new")
        self._say("- /show")
        if self._store is None:
            self._say("History commands are available when StoreBackend is set (see config.json).")
            return
        self._say("- /list [all|default|<collection>]")
        self._say("- /open <id-or-title>")
        self._say("- /delete <id-or-title>")
        self._say("- /title <text>")
        self._say("- /collections")
        self._say("- /collection new <name> | rename <collection> <name> | delete <collection> | move <collection|none>")
        self._say("- /comment select <message#> <text> | save <text> | cancel | add <text> | delete <id>")
        self._say("- /comments")
        self._say("- /logout")

    def _on_unknown_command(self, trimmed: str) -> None:
        self._say(f"Unknown command: {trimmed}")

    async def _on_mode(self, args: str) -> None:
        if not args:
            self._say(f"Mode: {MODE_LABELS[self._session.state.mode]} ({self._session.state.mode.value})")
            return
        try:
            mode = ChatMode(args.lower())
        except ValueError:
            self._say("Usage: /mode [general|software|notetaking|research]")
            return
        self._session.set_mode(mode)
        self._say(f"Mode set to {MODE_LABELS[mode]}")

    async def _on_prompts(self, args: str) -> None:
        self._say("Suggested prompts:")
        for line in self._formatter.format_prompt_lines():
            print(line)

    async def _on_quick(self, args: str) -> None:
        try:
            prompt = SUGGESTED_PROMPTS[int(args) - 1]
        except (ValueError, IndexError):
            self._say(f"Usage: /quick <1-{len(SUGGESTED_PROMPTS)}>")
            return
        print(f"{self.USER_PROMPT}{prompt.text}")
        print(self.LINE_PREFIX, end="", flush=True)
        await self._session.quick_submit(prompt.text, prompt.mode)
        print()

    async def _on_new(self, args: str) -> None:
        self._session.new_chat()
        self._say(f"New chat. {self.greeting()}")

    async def _on_show(self, args: str) -> None:
        state = self._session.state
        if not state.messages:
            self._say(self.greeting())
            return
        if state.title:
            self._say(f"{state.title} [{self._formatter.short_id(state.chat_id or '')}]")
        for line in self._formatter.format_transcript_lines(state.messages, self._session.visible_comments()):
            print(line)

    # -- history --

    def _require_store(self) -> ChatStore | None:
        if self._store is None:
            self._say("History requires a configured StoreBackend")
        return self._store

    async def _resolve_chat(self, identifier: str) -> ChatRecord | None:
        store = self._require_store()
        if store is None:
            return None
        try:
            chats = await store.list_chats(limit=200)
        except StoreError as ex:
            self._notifier.error(f"Failed to load chats: {ex}")
            return None
        lowered = identifier.strip().lower()
        matches = [c for c in chats if c.id == identifier or c.id.startswith(identifier)]
        if not matches:
            matches = [c for c in chats if c.title.strip().lower() == lowered]
        if not matches:
            self._say(f"Chat not found: {identifier}")
            return None
        if len(matches) > 1:
            self._say(f"'{identifier}' matches {len(matches)} chats; use a longer id")
            return None
        return matches[0]

    async def _resolve_collection(self, identifier: str) -> Collection | None:
        store = self._require_store()
        if store is None:
            return None
        try:
            collections = await store.list_collections()
        except StoreError as ex:
            self._notifier.error(f"Failed to load collections: {ex}")
            return None
        lowered = identifier.strip().lower()
        matches = [c for c in collections if c.id.startswith(identifier) or c.name.lower() == lowered]
        if len(matches) != 1:
            self._say(f"Collection not found: {identifier}" if not matches else f"'{identifier}' is ambiguous")
            return None
        return matches[0]

    async def _on_list(self, args: str) -> None:
        store = self._require_store()
        if store is None:
            return
        target = args.strip()
        collection: Collection | None = None
        if target and target.lower() not in ("all", "default"):
            collection = await self._resolve_collection(target)
            if collection is None:
                return
        try:
            chats = await store.list_chats(
                collection_id=collection.id if collection else None,
                ungrouped=target.lower() == "default",
            )
        except StoreError as ex:
            self._notifier.error(f"Failed to load chats: {ex}")
            return
        if not chats:
            self._say("No chats found.")
            return
        self._say("Chats:" if collection is None else f"Chats in {collection.name}:")
        for record in chats:
            print(self._formatter.format_chat_list_entry(record, active_chat_id=self._session.state.chat_id))

    async def _on_open(self, args: str) -> None:
        if not args:
            self._say("Usage: /open <id-or-title>")
            return
        record = await self._resolve_chat(args)
        if record is None:
            return
        if await self._session.load_chat(record.id):
            self._say(f"Opened {record.title} [{self._formatter.short_id(record.id)}]")
            await self._on_show("")

    async def _on_delete(self, args: str) -> None:
        if not args:
            self._say("Usage: /delete <id-or-title>")
            return
        record = await self._resolve_chat(args)
        if record is not None:
            await self._session.delete_chat(record.id)

    async def _on_title(self, args: str) -> None:
        if self._require_store() is None:
            return
        if not args:
            self._say("Usage: /title <text>")
            return
        if not await self._session.rename(args):
            self._say("Nothing to rename yet; send a message first")

    async def _on_collections(self, args: str) -> None:
        store = self._require_store()
        if store is None:
            return
        try:
            collections = await store.list_collections()
        except StoreError as ex:
            self._notifier.error(f"Failed to load collections: {ex}")
            return
        if not collections:
            self._say("No collections yet. Create one with /collection new <name>")
            return
        self._say("Collections:")
        for collection in collections:
            print(
                self._formatter.format_collection_entry(
                    collection,
                    active_collection_id=self._session.collection_id,
                )
            )

    async def _on_collection(self, args: str) -> None:
        store = self._require_store()
        if store is None:
            return
        action, _, rest = args.partition(" ")
        rest = rest.strip()
        try:
            if action == "new" and rest:
                collection = await store.create_collection(rest)
                self._notifier.success(f"Collection created: {collection.name}")
                return
            if action == "rename" and rest:
                target, _, name = rest.partition(" ")
                collection = await self._resolve_collection(target)
                if collection is not None and name.strip():
                    await store.rename_collection(collection.id, name)
                    self._notifier.success(f"Collection renamed: {name.strip()}")
                    return
            if action == "delete" and rest:
                collection = await self._resolve_collection(rest)
                if collection is not None:
                    await store.delete_collection(collection.id)
                    if self._session.collection_id == collection.id:
                        await self._session.move_to_collection(None)
                    self._notifier.success(f"Collection deleted: {collection.name}")
                return
            if action == "move" and rest:
                if rest.lower() == "none":
                    await self._session.move_to_collection(None)
                    self._say("Chat moved to the default group")
                    return
                collection = await self._resolve_collection(rest)
                if collection is not None:
                    await self._session.move_to_collection(collection.id)
                    self._say(f"Chat moved to {collection.name}")
                return
        except StoreError as ex:
            self._notifier.error(str(ex))
            return
        self._say(
            "Usage: /collection new <name> | rename <collection> <name> | "
            "delete <collection> | move <collection|none>"
        )

    # -- comments --

    async def _on_comment(self, args: str) -> None:
        action, _, rest = args.partition(" ")
        rest = rest.strip()

        if action == "select":
            index_text, _, selected = rest.partition(" ")
            try:
                selection = self._session.select_text(int(index_text), selected)
            except ValueError as ex:
                self._say(f"Cannot select: {ex}")
                return
            self._say(
                f"Selected \"{self._formatter.preview(selection.text)}\" in #{selection.message_index} "
                f"[{selection.start}, {selection.end}). Use /comment save <text> or /comment cancel"
            )
            return
        if action == "save":
            if self._session.draft.selection is None:
                self._say("Nothing selected. Use /comment select <message#> <text> first")
                return
            comment = await self._session.save_draft(rest)
            if comment is None and not rest:
                self._say("Empty comment discarded")
            return
        if action == "cancel":
            self._session.draft.cancel()
            self._say("Selection cleared")
            return
        if action == "add" and rest:
            await self._session.add_standalone_comment(rest)
            return
        if action == "delete" and rest:
            matches = [c for c in self._session.comments if c.id.startswith(rest)]
            if len(matches) != 1:
                self._say(f"Comment not found: {rest}")
                return
            await self._session.delete_comment(matches[0].id)
            return

        self._say("Usage: /comment select <message#> <text> | save <text> | cancel | add <text> | delete <id>")

    async def _on_comments(self, args: str) -> None:
        visible = self._session.visible_comments()
        hidden = len(self._session.comments) - len(visible)
        if not visible:
            self._say("No comments.")
        else:
            self._say("Comments:")
            for comment in visible:
                print(self._formatter.format_comment_entry(comment))
        if hidden:
            self._say(f"{hidden} comment(s) hidden because the highlighted text changed")

    async def _on_logout_command(self, args: str) -> None:
        if self._on_logout is None:
            self._say("Not signed in")
            return
        await self._on_logout()
        self.exit_requested = True
