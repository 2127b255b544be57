"""Caller-owned chat history."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from .errors import InvalidArgumentError


ROLES = ("system", "user", "assistant")


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: str
    content: str


@dataclass(slots=True)
class ChatHistory:
    """Ordered role/content turns passed explicitly to each chat call."""

    messages: list[ChatMessage] = field(default_factory=list)

    def add(self, role: str, content: str) -> None:
        if role not in ROLES:
            raise InvalidArgumentError(f"Unknown chat role: {role!r}")
        self.messages.append(ChatMessage(role=role, content=content))

    def add_system(self, content: str) -> None:
        self.add("system", content)

    def add_user(self, content: str) -> None:
        self.add("user", content)

    def add_assistant(self, content: str) -> None:
        self.add("assistant", content)

    def pop(self) -> ChatMessage:
        return self.messages.pop()

    def clear(self) -> None:
        self.messages.clear()

    def as_messages(self) -> list[dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in self.messages]

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self.messages)
