"""HTTP front door for the completion relay.

POST /api/chat with ``{"messages": [...], "mode": "..."}`` streams the
completion back as plain text. /api/groq is kept as an alias of the same
route for older web clients.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from loguru import logger

from groq_chat.app_config import AppConfig, RuntimeEnv
from groq_chat.errors import ConfigError, InvalidMessagesError
from groq_chat.provider import create_provider
from groq_chat.relay import CompletionRelay

FAILURE_TEXT = "Failed to process the request. Please try again later."


def _invalid_history(message: str | None = None) -> JSONResponse:
    return JSONResponse({"error": message or str(InvalidMessagesError())}, status_code=400)


async def _encode(fragments: AsyncIterator[str]) -> AsyncIterator[bytes]:
    async for text in fragments:
        yield text.encode("utf-8")


def create_app(relay: CompletionRelay) -> FastAPI:
    app = FastAPI(title="groq-chat relay")

    async def chat(request: Request) -> Response:
        try:
            payload = await request.json()
        except ValueError as ex:
            logger.error(f"Error: {ex}")
            return PlainTextResponse(FAILURE_TEXT, status_code=500)
        if not isinstance(payload, dict):
            return _invalid_history()

        try:
            fragments = await relay.open(payload.get("messages"), payload.get("mode"))
        except InvalidMessagesError as ex:
            return _invalid_history(str(ex))
        except Exception as ex:
            logger.error(f"Error: {ex}")
            return PlainTextResponse(FAILURE_TEXT, status_code=500)

        return StreamingResponse(
            _encode(fragments),
            media_type="text/plain",
            headers={"Cache-Control": "no-cache"},
        )

    app.add_api_route("/api/chat", chat, methods=["POST"])
    app.add_api_route("/api/groq", chat, methods=["POST"], include_in_schema=False)

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    return app


def create_app_from_config(app_config: AppConfig, env: RuntimeEnv) -> FastAPI:
    if not env.provider_api_key:
        raise ConfigError(f"{env.provider_env_var} environment variable is required.")
    provider = create_provider(app_config.provider_name, env.provider_api_key, base_url=app_config.base_url)
    relay = CompletionRelay(
        provider,
        model=app_config.model,
        max_tokens=app_config.max_tokens,
        temperature=app_config.temperature,
        history_window=app_config.history_window,
    )
    logger.info(
        f"Relay ready: provider={app_config.provider_name}, model={app_config.model}, "
        f"history_window={app_config.history_window or 'unbounded'}"
    )
    return create_app(relay)
