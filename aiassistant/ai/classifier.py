"""Classification of raw assistant responses into prose, code or diagrams."""

from __future__ import annotations

import re
from typing import Iterator, Optional

from aiassistant.ai.models import ClassifiedContent, CodeBlock, ContentKind

__all__ = [
    "DIAGRAM_KEYWORDS",
    "is_diagram",
    "extract_fenced",
    "classify",
    "code_blocks",
    "segments",
]

DIAGRAM_KEYWORDS = ("sequencediagram", "graph", "classdiagram", "statediagram", "erdiagram")

_FENCE_RE = re.compile(r"```(.*?)```", re.DOTALL)
_LANGUAGE_TAG_RE = re.compile(r"[\w+#.-]+")


def is_diagram(text: str) -> bool:
    """Return ``True`` when ``text`` looks like a Mermaid diagram.

    The check is a plain case-insensitive keyword scan, so prose that merely
    mentions e.g. "graph" is classified as a diagram as well.
    """

    lowered = text.lower()
    if any(keyword in lowered for keyword in DIAGRAM_KEYWORDS):
        return True
    return any((language or "").lower() == "mermaid" for language, _ in _iter_fences(text))


def extract_fenced(text: str) -> str:
    """Return the body of the first fenced block, or ``text`` unchanged.

    Leading and trailing blank lines of the body are removed; indentation of
    the first code line is kept.
    """

    match = _FENCE_RE.search(text)
    if match is None:
        return text
    return _split_fence(match.group(1))[1]


def classify(text: str) -> ClassifiedContent:
    """Decide what ``text`` is: diagram first, then fenced code, else prose.

    A diagram's payload is the body of its mermaid fence, else of the first
    fence, else the whole text.
    """

    if is_diagram(text):
        return ClassifiedContent(kind=ContentKind.DIAGRAM, payload=_diagram_body(text))

    match = _FENCE_RE.search(text)
    if match is not None:
        language, body = _split_fence(match.group(1))
        return ClassifiedContent(kind=ContentKind.CODE, payload=body, language=language)

    return ClassifiedContent(kind=ContentKind.PROSE, payload=text)


def code_blocks(text: str) -> list[CodeBlock]:
    """Return every fenced block from left to right."""

    return [CodeBlock(language=language or "plaintext", code=body) for language, body in _iter_fences(text)]


def segments(text: str) -> list[ClassifiedContent]:
    """Split ``text`` into alternating prose and code segments for rendering.

    Prose between blocks is stripped and dropped when empty; code keeps its
    language tag (``plaintext`` when the fence is untagged).
    """

    result: list[ClassifiedContent] = []
    position = 0
    for match in _FENCE_RE.finditer(text):
        prose = text[position:match.start()].strip()
        if prose:
            result.append(ClassifiedContent(kind=ContentKind.PROSE, payload=prose))
        language, body = _split_fence(match.group(1))
        result.append(ClassifiedContent(kind=ContentKind.CODE, payload=body, language=language or "plaintext"))
        position = match.end()

    tail = text[position:].strip()
    if tail:
        result.append(ClassifiedContent(kind=ContentKind.PROSE, payload=tail))
    return result


def _diagram_body(text: str) -> str:
    fences = list(_iter_fences(text))
    for language, body in fences:
        if (language or "").lower() == "mermaid":
            return body
    if fences:
        return fences[0][1]
    return text


def _iter_fences(text: str) -> Iterator[tuple[Optional[str], str]]:
    for match in _FENCE_RE.finditer(text):
        yield _split_fence(match.group(1))


def _split_fence(inner: str) -> tuple[Optional[str], str]:
    """Split the text between two fences into ``(language, body)``."""

    newline = inner.find("\n")
    if newline < 0:
        return None, inner.strip()

    head = inner[:newline].strip()
    if not head:
        return None, _strip_blank_lines(inner[newline + 1:])
    if _LANGUAGE_TAG_RE.fullmatch(head):
        return head, _strip_blank_lines(inner[newline + 1:])
    # First line is code, not a tag.
    return None, _strip_blank_lines(inner)


def _strip_blank_lines(body: str) -> str:
    lines = body.split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)
