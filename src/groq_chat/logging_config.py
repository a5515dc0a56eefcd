import logging
import sys
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger


@runtime_checkable
class LogConsumer(Protocol):
    def register(self, level: str) -> None: ...
    def describe(self, level: str) -> str: ...


class StderrLogConsumer:
    def register(self, level: str) -> None:
        logger.add(
            sys.stderr,
            level=level,
            format="<green>{time:HH:mm:ss}</green> <level>{level:<8}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        )

    def describe(self, level: str) -> str:
        return f"stderr ({level})"


class RotatingFileLogConsumer:
    def __init__(self, path: str = "groq_chat.log", rotation: str = "10 MB", retention: int = 3):
        self._path = path
        self._rotation = rotation
        self._retention = retention

    def register(self, level: str) -> None:
        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            self._path,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}",
            rotation=self._rotation,
            retention=self._retention,
            enqueue=True,
        )

    def describe(self, level: str) -> str:
        return f"file ({self._path}, {level}, rotate {self._rotation})"


class InterceptHandler(logging.Handler):
    """Forward records from stdlib loggers (uvicorn, httpx) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(exception=record.exc_info).log(level, record.getMessage())


_SINKS: dict[str, type] = {
    "console": StderrLogConsumer,
    "file": RotatingFileLogConsumer,
}

# The chat REPL owns stdout and the prompt line, so it logs to a file only.
# The relay server has no interactive output and logs to stderr.
DEFAULT_CONSUMERS: dict[str, list[dict[str, Any]]] = {
    "chat": [{"type": "file", "path": "groq_chat.log"}],
    "serve": [{"type": "console"}, {"type": "file", "path": "groq_chat_server.log"}],
}

_STDLIB_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx")


def setup_logging(
    level: str = "INFO",
    consumers: list[dict[str, Any]] | None = None,
    *,
    command: str = "chat",
) -> list[str]:
    """Replace loguru's sinks and return a one-line description per sink."""
    logger.remove()

    if consumers is None:
        consumers = DEFAULT_CONSUMERS.get(command, DEFAULT_CONSUMERS["chat"])

    descriptions: list[str] = []
    for entry in consumers:
        kind = entry.get("type", "")
        sink_cls = _SINKS.get(kind)
        if sink_cls is None:
            logger.warning(f"Ignoring log consumer with unknown type {kind!r}")
            continue
        sink_level = entry.get("level", level)
        sink = sink_cls(**{k: v for k, v in entry.items() if k not in ("type", "level")})
        sink.register(sink_level)
        descriptions.append(sink.describe(sink_level))

    handler = InterceptHandler()
    for name in _STDLIB_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [handler]
        std_logger.propagate = False

    return descriptions
