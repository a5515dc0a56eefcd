from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from loguru import logger
from supabase import AsyncClient

from groq_chat.app_config import AppConfig, RuntimeEnv
from groq_chat.auth import AuthSession
from groq_chat.chat_session import ChatSession
from groq_chat.console import ChatConsole
from groq_chat.errors import ConfigError
from groq_chat.logging_config import setup_logging
from groq_chat.provider import create_provider
from groq_chat.relay import CompletionRelay
from groq_chat.relay_client import LocalRelayClient, RelayClient
from groq_chat.services.notifier import ConsoleNotifier
from groq_chat.store import ChatStore, SqliteChatStore, SupabaseChatStore


@dataclass
class ChatRuntime:
    console: ChatConsole
    session: ChatSession
    store: ChatStore | None
    relay: RelayClient | LocalRelayClient
    log_descriptions: list[str]

    async def close(self) -> None:
        self.session.close()
        await self.relay.close()
        if self.store is not None:
            await self.store.close()


def _resolve_path(path: str) -> str:
    db_path = Path(path)
    if not db_path.is_absolute():
        db_path = Path.cwd() / db_path
    return str(db_path)


def build_store(
    app: AppConfig,
    auth_session: AuthSession | None,
    supabase: AsyncClient | None = None,
) -> ChatStore | None:
    backend = app.store_backend
    if backend == "none":
        return None
    if backend == "sqlite":
        return SqliteChatStore(_resolve_path(app.store_db_path))
    if backend == "supabase":
        if supabase is None:
            raise ConfigError("SUPABASE_URL and SUPABASE_ANON_KEY are required for StoreBackend=supabase")
        if auth_session is None:
            raise ConfigError("Sign in is required for StoreBackend=supabase")
        return SupabaseChatStore(supabase, auth_session.user_id, access_token=auth_session.access_token)
    raise ConfigError(f"Unknown StoreBackend: {backend!r}. Supported: 'none', 'sqlite', 'supabase'")


def build_relay_client(app: AppConfig, env: RuntimeEnv, *, local: bool) -> RelayClient | LocalRelayClient:
    if not local:
        return RelayClient(app.relay_url)
    if not env.provider_api_key:
        raise ConfigError(f"{env.provider_env_var} environment variable is required for --local.")
    provider = create_provider(app.provider_name, env.provider_api_key, base_url=app.base_url)
    return LocalRelayClient(
        CompletionRelay(
            provider,
            model=app.model,
            max_tokens=app.max_tokens,
            temperature=app.temperature,
            history_window=app.history_window,
        )
    )


def bootstrap_chat(
    app: AppConfig,
    env: RuntimeEnv,
    *,
    local: bool = False,
    auth_session: AuthSession | None = None,
    supabase: AsyncClient | None = None,
    on_logout: Callable[[], Awaitable[None]] | None = None,
    on_chunk: Callable[[str], None] | None = None,
) -> ChatRuntime:
    log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers, command="chat")

    store = build_store(app, auth_session, supabase)
    relay = build_relay_client(app, env, local=local)
    notifier = ConsoleNotifier(line_prefix=ChatConsole.LINE_PREFIX)
    session = ChatSession(
        relay,
        notifier=notifier,
        store=store,
        mode=app.default_mode,
        on_chunk=on_chunk,
    )
    console = ChatConsole(session, notifier=notifier, store=store, on_logout=on_logout)
    logger.info(
        f"Chat runtime ready: relay={'local' if local else app.relay_url}, "
        f"store={app.store_backend}, mode={app.default_mode.value}"
    )
    return ChatRuntime(
        console=console,
        session=session,
        store=store,
        relay=relay,
        log_descriptions=log_descriptions,
    )
