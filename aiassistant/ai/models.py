"""Data transfer objects shared across the AI Assistant domain layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

from aiassistant.ai.errors import ValidationError

__all__ = [
    "MessageRole",
    "Message",
    "ContentKind",
    "ClassifiedContent",
    "CodeBlock",
    "DiffLineKind",
    "DiffLine",
    "DiffStats",
    "TextRange",
]


class MessageRole(str, Enum):
    """Roles accepted by every provider wire format."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"

    @classmethod
    def parse(cls, value: Any) -> "MessageRole":
        """Return the role for ``value`` or raise :class:`ValidationError`."""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValidationError(f"Invalid message role: {value!r}") from exc


@dataclass(frozen=True)
class Message:
    """Single entry of a conversation; immutable once appended."""

    role: MessageRole
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    code_context: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", MessageRole.parse(self.role))
        if not isinstance(self.content, str):
            raise ValidationError("Message content must be text.")

    def to_prompt(self) -> dict[str, str]:
        """Return the ``{role, content}`` mapping sent to providers."""

        return {"role": self.role.value, "content": self.content}

    def to_dict(self) -> dict[str, Any]:
        """Serialise the message for the persistence boundary."""

        payload: dict[str, Any] = {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.code_context is not None:
            payload["codeContext"] = self.code_context
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Message":
        """Deserialise a message; raises on any structural problem."""

        if not isinstance(data, Mapping):
            raise ValidationError("Stored message is not a mapping.")
        content = data["content"]
        raw_timestamp = data.get("timestamp")
        if isinstance(raw_timestamp, str):
            timestamp = datetime.fromisoformat(raw_timestamp)
        elif isinstance(raw_timestamp, (int, float)):
            # Epoch milliseconds, as written by older clients.
            timestamp = datetime.fromtimestamp(raw_timestamp / 1000, tz=timezone.utc)
        else:
            timestamp = datetime.now(timezone.utc)
        code_context = data.get("codeContext")
        return cls(
            role=MessageRole.parse(data["role"]),
            content=content,
            timestamp=timestamp,
            code_context=code_context if isinstance(code_context, str) else None,
        )


class ContentKind(str, Enum):
    """What a raw assistant response is."""

    PROSE = "prose"
    CODE = "code"
    DIAGRAM = "diagram"


@dataclass(frozen=True)
class ClassifiedContent:
    """Outcome of classifying a response string."""

    kind: ContentKind
    payload: str
    language: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "language": self.language, "payload": self.payload}


@dataclass(frozen=True)
class CodeBlock:
    """Fenced block found while scanning a response for rendering."""

    language: str
    code: str


class DiffLineKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class DiffLine:
    """One line of a review diff."""

    kind: DiffLineKind
    text: str

    def as_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "text": self.text}


@dataclass(frozen=True)
class DiffStats:
    """Line counters summarising a diff."""

    lines_added: int = 0
    lines_removed: int = 0
    lines_unchanged: int = 0

    @property
    def lines_changed(self) -> int:
        return min(self.lines_added, self.lines_removed)

    def as_dict(self) -> dict[str, int]:
        return {
            "lines_added": self.lines_added,
            "lines_removed": self.lines_removed,
            "lines_unchanged": self.lines_unchanged,
            "lines_changed": self.lines_changed,
        }


@dataclass(frozen=True)
class TextRange:
    """Character range in a document; ``start == end`` marks a cursor."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValidationError(f"Invalid text range [{self.start}:{self.end}]")

    @property
    def is_cursor(self) -> bool:
        return self.start == self.end
