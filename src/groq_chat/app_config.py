from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from groq_chat.modes import ChatMode, parse_mode

_GROQ_BASE_URL = "https://api.groq.com/openai/v1"


@dataclass
class RuntimeEnv:
    provider_api_key: str
    provider_env_var: str
    supabase_url: str | None
    supabase_anon_key: str | None


@dataclass
class AppConfig:
    provider_name: str
    model: str
    base_url: str | None
    max_tokens: int
    temperature: float
    history_window: int
    default_mode: ChatMode
    relay_url: str
    host: str
    port: int
    store_backend: str
    store_db_path: str
    log_level: str
    log_consumers: list | None


def load_json_config() -> dict:
    config_path = Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _default_base_url(provider_name: str) -> str | None:
    if provider_name == "groq":
        return _GROQ_BASE_URL
    return None


def parse_app_config(config: dict) -> AppConfig:
    provider_name = str(config.get("Provider", "groq")).strip().lower()
    return AppConfig(
        provider_name=provider_name,
        model=config.get("Model", "llama-3.1-70b-versatile"),
        base_url=config.get("BaseUrl") or _default_base_url(provider_name),
        max_tokens=int(config.get("MaxTokens", 1024)),
        temperature=float(config.get("Temperature", 0.7)),
        history_window=max(0, int(config.get("HistoryWindow", 0))),
        default_mode=parse_mode(config.get("DefaultMode")),
        relay_url=str(config.get("RelayUrl", "http://127.0.0.1:8000/api/chat")),
        host=str(config.get("Host", "127.0.0.1")),
        port=int(config.get("Port", 8000)),
        store_backend=str(config.get("StoreBackend", "none")).strip().lower(),
        store_db_path=str(config.get("StoreDbPath", ".groq_chat/chats.db")),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env(provider_name: str) -> RuntimeEnv:
    if provider_name == "openai":
        provider_env_var = "OPENAI_API_KEY"
    elif provider_name == "anthropic":
        provider_env_var = "ANTHROPIC_API_KEY"
    else:
        provider_env_var = "GROQ_API_KEY"

    return RuntimeEnv(
        provider_api_key=os.environ.get(provider_env_var, ""),
        provider_env_var=provider_env_var,
        supabase_url=os.environ.get("SUPABASE_URL"),
        supabase_anon_key=os.environ.get("SUPABASE_ANON_KEY"),
    )
