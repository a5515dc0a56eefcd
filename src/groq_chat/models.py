from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from groq_chat.modes import ChatMode, parse_mode

_TITLE_MAX_CHARS = 50


def utc_now() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds")


def derive_title(first_user_text: str) -> str:
    text = " ".join(first_user_text.split())
    if not text:
        return "New chat"
    if len(text) <= _TITLE_MAX_CHARS:
        return text
    return text[: _TITLE_MAX_CHARS - 3] + "..."


@dataclass(frozen=True)
class Message:
    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        return cls(role=str(data["role"]), content=str(data.get("content", "")))


@dataclass(frozen=True)
class Comment:
    """A note on a whole chat, or on a character range of one message.

    Range comments carry a snapshot of the highlighted text so that later
    edits to the message can be detected; see ``highlights.is_comment_valid``.
    """

    id: str
    text: str
    created_at: str
    highlighted_text: str | None = None
    message_index: int | None = None
    start_offset: int | None = None
    end_offset: int | None = None

    @property
    def is_anchored(self) -> bool:
        return self.message_index is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "created_at": self.created_at,
            "highlighted_text": self.highlighted_text,
            "message_index": self.message_index,
            "start_offset": self.start_offset,
            "end_offset": self.end_offset,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Comment:
        return cls(
            id=str(data["id"]),
            text=str(data.get("text", "")),
            created_at=str(data.get("created_at", "")),
            highlighted_text=data.get("highlighted_text"),
            message_index=_opt_int(data.get("message_index")),
            start_offset=_opt_int(data.get("start_offset")),
            end_offset=_opt_int(data.get("end_offset")),
        )


@dataclass(frozen=True)
class Collection:
    id: str
    name: str
    user_id: str | None
    created_at: str

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Collection:
        return cls(
            id=str(row["id"]),
            name=str(row["name"]),
            user_id=row.get("user_id"),
            created_at=str(row.get("created_at", "")),
        )


@dataclass(frozen=True)
class ChatRecord:
    id: str
    title: str
    messages: tuple[Message, ...]
    mode: ChatMode
    created_at: str
    updated_at: str
    collection_id: str | None = None
    comments: tuple[Comment, ...] = field(default_factory=tuple)
    user_id: str | None = None

    def with_updates(self, **changes: Any) -> ChatRecord:
        return replace(self, **changes)

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "mode": self.mode.value,
            "collection_id": self.collection_id,
            "comments": [c.to_dict() for c in self.comments],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ChatRecord:
        return cls(
            id=str(row["id"]),
            title=str(row.get("title") or ""),
            messages=tuple(Message.from_dict(m) for m in row.get("messages") or []),
            mode=parse_mode(row.get("mode")),
            created_at=str(row.get("created_at", "")),
            updated_at=str(row.get("updated_at", "")),
            collection_id=row.get("collection_id"),
            comments=tuple(Comment.from_dict(c) for c in row.get("comments") or []),
            user_id=row.get("user_id"),
        )


def _opt_int(value: object) -> int | None:
    if value is None:
        return None
    return int(value)
