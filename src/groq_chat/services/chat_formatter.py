from __future__ import annotations

from collections.abc import Sequence

from groq_chat.highlights import comments_for_message
from groq_chat.models import ChatRecord, Collection, Comment, Message
from groq_chat.modes import MODE_LABELS, SUGGESTED_PROMPTS


class ChatFormatter:
    def __init__(self, *, line_prefix: str, short_id_len: int = 8, preview_chars: int = 60):
        self._line_prefix = line_prefix
        self._short_id_len = short_id_len
        self._preview_chars = preview_chars

    def short_id(self, value: str) -> str:
        if len(value) <= self._short_id_len:
            return value
        return value[: self._short_id_len]

    def preview(self, text: str) -> str:
        text = " ".join(text.split())
        if len(text) <= self._preview_chars:
            return text
        return text[: self._preview_chars - 3] + "..."

    def format_chat_list_entry(self, record: ChatRecord, *, active_chat_id: str | None) -> str:
        marker = "*" if record.id == active_chat_id else " "
        return (
            f"{self._line_prefix}{marker} {record.title} [{self.short_id(record.id)}] "
            f"({MODE_LABELS[record.mode]}, {len(record.messages)} messages, updated={record.updated_at})"
        )

    def format_collection_entry(self, collection: Collection, *, active_collection_id: str | None) -> str:
        marker = "*" if collection.id == active_collection_id else " "
        return f"{self._line_prefix}{marker} {collection.name} [{self.short_id(collection.id)}]"

    def format_comment_entry(self, comment: Comment) -> str:
        if comment.highlighted_text is None:
            anchor = "whole chat"
        else:
            anchor = f"#{comment.message_index} \"{self.preview(comment.highlighted_text)}\""
        return f"{self._line_prefix}  ({self.short_id(comment.id)}) {anchor}: {comment.text}"

    def format_transcript_lines(
        self,
        messages: Sequence[Message],
        comments: Sequence[Comment],
    ) -> list[str]:
        lines: list[str] = []
        for index, message in enumerate(messages):
            speaker = "You" if message.role == "user" else "Groq70"
            lines.append(f"{self._line_prefix}#{index} {speaker}: {message.content}")
            for comment in comments_for_message(messages, comments, index):
                lines.append(self.format_comment_entry(comment))
        for comment in comments:
            if not comment.is_anchored:
                lines.append(self.format_comment_entry(comment))
        return lines

    def format_prompt_lines(self) -> list[str]:
        return [
            f"{self._line_prefix}{i}. [{MODE_LABELS[p.mode]}] {p.text}"
            for i, p in enumerate(SUGGESTED_PROMPTS, 1)
        ]
