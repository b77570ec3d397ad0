"""Chat message types shared by the paraphraser and its backends."""

from dataclasses import dataclass
from typing import Protocol

_QUOTES = "\"'“”‘’`"


@dataclass
class Message:
    """One chat turn."""

    role: str  # "system" or "user"
    content: str

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class CompletionResponse:
    """Model reply. ``content`` is never None."""

    content: str
    finish_reason: str = "stop"

    @property
    def truncated(self) -> bool:
        return self.finish_reason == "length"

    @property
    def text(self) -> str:
        """Reply with surrounding whitespace and wrapping quotes removed.

        Small local models like to quote their rephrasings.
        """
        text = self.content.strip()
        if len(text) >= 2 and text[0] in _QUOTES and text[-1] in _QUOTES:
            text = text[1:-1].strip()
        return text


class LLMClient(Protocol):
    async def complete(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> CompletionResponse: ...
