from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from uuid import uuid4

from groq_chat.models import Comment, Message, utc_now


def is_comment_valid(content: str, comment: Comment) -> bool:
    """True when the comment's recorded range still holds its highlighted text.

    Computed fresh on every call; offsets are never repaired.
    """
    start, end, snapshot = comment.start_offset, comment.end_offset, comment.highlighted_text
    if start is None or end is None or snapshot is None:
        return False
    return content[start:end] == snapshot


def visible_comments(messages: Sequence[Message], comments: Sequence[Comment]) -> list[Comment]:
    """Comments to render: whole-chat comments plus range comments that still match."""
    visible: list[Comment] = []
    for comment in comments:
        if not comment.is_anchored:
            visible.append(comment)
            continue
        index = comment.message_index
        if index is None or not 0 <= index < len(messages):
            continue
        if is_comment_valid(messages[index].content, comment):
            visible.append(comment)
    return visible


def comments_for_message(
    messages: Sequence[Message],
    comments: Sequence[Comment],
    message_index: int,
) -> list[Comment]:
    return [
        c for c in visible_comments(messages, comments)
        if c.message_index == message_index
    ]


def find_selection(content: str, selected_text: str, hint: int = 0) -> tuple[int, int] | None:
    """Offsets of ``selected_text`` in ``content``, searching from ``hint`` first."""
    if not selected_text:
        return None
    start = content.find(selected_text, max(0, hint))
    if start < 0 and hint > 0:
        start = content.find(selected_text)
    if start < 0:
        return None
    return start, start + len(selected_text)


def new_comment(text: str, selection: Selection | None = None) -> Comment | None:
    """Build a comment, or None when the text is blank."""
    body = text.strip()
    if not body:
        return None
    if selection is None:
        return Comment(id=str(uuid4()), text=body, created_at=utc_now())
    return Comment(
        id=str(uuid4()),
        text=body,
        created_at=utc_now(),
        highlighted_text=selection.text,
        message_index=selection.message_index,
        start_offset=selection.start,
        end_offset=selection.end,
    )


class DraftState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"


@dataclass(frozen=True)
class Selection:
    message_index: int
    start: int
    end: int
    text: str


class CommentDraft:
    """idle -> select() -> pending -> save(text) / cancel() -> idle."""

    def __init__(self) -> None:
        self._selection: Selection | None = None

    @property
    def state(self) -> DraftState:
        return DraftState.PENDING if self._selection is not None else DraftState.IDLE

    @property
    def selection(self) -> Selection | None:
        return self._selection

    def select(self, message_index: int, content: str, start: int, end: int) -> Selection:
        if start < 0 or end <= start or end > len(content):
            raise ValueError(f"Invalid selection range [{start}, {end}) for content of length {len(content)}")
        self._selection = Selection(message_index, start, end, content[start:end])
        return self._selection

    def select_text(self, message_index: int, content: str, selected_text: str, hint: int = 0) -> Selection:
        found = find_selection(content, selected_text, hint)
        if found is None:
            raise ValueError("Selected text does not occur in the message")
        return self.select(message_index, content, *found)

    def save(self, text: str) -> Comment | None:
        """Turn the pending selection into a comment; blank text discards it."""
        selection = self._selection
        self._selection = None
        if selection is None:
            return None
        return new_comment(text, selection)

    def cancel(self) -> None:
        self._selection = None
