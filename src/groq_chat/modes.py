from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ChatMode(str, Enum):
    SOFTWARE = "software"
    NOTETAKING = "notetaking"
    RESEARCH = "research"
    GENERAL = "general"


DEFAULT_MODE = ChatMode.GENERAL


_SYSTEM_PROMPTS: dict[ChatMode, str] = {
    ChatMode.SOFTWARE: """\
You are a senior software engineer acting as a technical interview coach. \
Answer programming, algorithms and system design questions precisely. \
Use code blocks for code, state time and space complexity where relevant, \
and call out trade-offs between alternative approaches.""",
    ChatMode.NOTETAKING: """\
You are a note-taking assistant. Turn the user's input into clear, well \
structured notes: short headings, bullet points and concise summaries. \
Preserve every concrete fact, name and number from the source text and do \
not add information that is not there.""",
    ChatMode.RESEARCH: """\
You are a research assistant. Give thorough, balanced answers that compare \
viewpoints, distinguish established findings from open questions, and say \
plainly when you are uncertain. Organise longer answers with headings.""",
    ChatMode.GENERAL: """\
You are a helpful AI assistant powered by Llama 3.1 70B. Provide clear, \
accurate, and engaging responses.""",
}

MODE_LABELS: dict[ChatMode, str] = {
    ChatMode.SOFTWARE: "Technical Interview",
    ChatMode.NOTETAKING: "Note Taking",
    ChatMode.RESEARCH: "Research",
    ChatMode.GENERAL: "General Chat",
}

MODE_TAGLINES: dict[ChatMode, str] = {
    ChatMode.SOFTWARE: "high-performance technical assistant",
    ChatMode.NOTETAKING: "high-performance note-taking assistant",
    ChatMode.RESEARCH: "high-performance research assistant",
    ChatMode.GENERAL: "high-performance general assistant",
}


@dataclass(frozen=True)
class SuggestedPrompt:
    mode: ChatMode
    text: str


SUGGESTED_PROMPTS: tuple[SuggestedPrompt, ...] = (
    SuggestedPrompt(ChatMode.SOFTWARE, "Explain time complexity in Big O notation"),
    SuggestedPrompt(ChatMode.SOFTWARE, "What are the SOLID principles?"),
    SuggestedPrompt(ChatMode.NOTETAKING, "Summarize the key points from this text: "),
    SuggestedPrompt(ChatMode.NOTETAKING, "Create a structured outline for: "),
    SuggestedPrompt(ChatMode.RESEARCH, "What are the latest developments in: "),
    SuggestedPrompt(ChatMode.RESEARCH, "Compare and contrast: "),
    SuggestedPrompt(ChatMode.GENERAL, "Help me understand: "),
    SuggestedPrompt(ChatMode.GENERAL, "Can you explain: "),
)


def parse_mode(value: object, default: ChatMode = DEFAULT_MODE) -> ChatMode:
    """Map a raw mode tag to a ChatMode, falling back to ``default`` for anything unknown."""
    if isinstance(value, ChatMode):
        return value
    if isinstance(value, str):
        try:
            return ChatMode(value.strip().lower())
        except ValueError:
            return default
    return default


def get_system_prompt(mode: ChatMode | str | None = None) -> str:
    return _SYSTEM_PROMPTS[parse_mode(mode)]
