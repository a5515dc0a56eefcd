from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Notifier(Protocol):
    """Short user-facing status messages (toasts)."""

    def success(self, message: str) -> None: ...
    def error(self, message: str) -> None: ...


class ConsoleNotifier:
    def __init__(self, *, line_prefix: str = ""):
        self._line_prefix = line_prefix

    def success(self, message: str) -> None:
        print(f"{self._line_prefix}[ok] {message}")

    def error(self, message: str) -> None:
        print(f"{self._line_prefix}[error] {message}")
