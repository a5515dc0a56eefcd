from groq_chat.store.base import ChatStore
from groq_chat.store.sqlite_store import SqliteChatStore
from groq_chat.store.supabase_store import SupabaseChatStore, create_supabase_client

__all__ = [
    "ChatStore",
    "SqliteChatStore",
    "SupabaseChatStore",
    "create_supabase_client",
]
