"""Tests for response classification and fence extraction."""
from __future__ import annotations

import pytest

from aiassistant.ai.classifier import classify, code_blocks, extract_fenced, is_diagram, segments
from aiassistant.ai.models import CodeBlock, ContentKind


@pytest.mark.parametrize(
    "text",
    [
        "sequenceDiagram\n  Alice->>Bob: Hi",
        "GRAPH TD; A-->B",
        "classDiagram\n  class Animal",
        "stateDiagram-v2\n  [*] --> Still",
        "erDiagram\n  CUSTOMER ||--o{ ORDER : places",
        "Here you go:\n```mermaid\nflowchart LR\n  a --> b\n```",
    ],
)
def test_diagrams_are_detected(text: str) -> None:
    result = classify(text)

    assert is_diagram(text) is True
    assert result.kind is ContentKind.DIAGRAM


def test_diagram_payload_is_mermaid_fence_body() -> None:
    result = classify("```mermaid\ngraph TD;A-->B\n```")

    assert result.kind is ContentKind.DIAGRAM
    assert result.payload == "graph TD;A-->B"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Here:\n```text\nnote\n```\n```mermaid\nflowchart LR\n  a --> b\n```", "flowchart LR\n  a --> b"),
        ("```\nsequenceDiagram\n  A->>B: hi\n```", "sequenceDiagram\n  A->>B: hi"),
        ("sequenceDiagram\n  A->>B: hi", "sequenceDiagram\n  A->>B: hi"),
    ],
)
def test_diagram_payload_prefers_mermaid_then_first_fence(text: str, expected: str) -> None:
    assert classify(text).payload == expected


def test_prose_mentioning_graph_is_a_diagram() -> None:
    assert classify("This graph shows the trend.").kind is ContentKind.DIAGRAM


def test_fenced_code_is_classified_with_language() -> None:
    text = "Use this:\n```python\n\ndef f():\n    return 1\n\n```\nDone."

    result = classify(text)

    assert result.kind is ContentKind.CODE
    assert result.language == "python"
    assert result.payload == "def f():\n    return 1"


def test_code_first_line_is_not_taken_as_language() -> None:
    result = classify("```foo()\nbar```")

    assert result.kind is ContentKind.CODE
    assert result.language is None
    assert result.payload == "foo()\nbar"


@pytest.mark.parametrize("tag", ["c++", "c#", "objective-c", "vue.js"])
def test_language_tags_with_symbols(tag: str) -> None:
    result = classify(f"```{tag}\nx\n```")

    assert result.language == tag
    assert result.payload == "x"


def test_untagged_fence_has_no_language() -> None:
    result = classify("```\nx = 1\n```")

    assert result.kind is ContentKind.CODE
    assert result.language is None
    assert result.payload == "x = 1"


def test_plain_text_is_prose() -> None:
    text = "Just an explanation without code."

    result = classify(text)

    assert result.kind is ContentKind.PROSE
    assert result.payload == text


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("```js\nconsole.log(1)\n```", "console.log(1)"),
        ("before ```\n  indented\n``` after", "  indented"),
        ("```python\nfirst\n```\n```python\nsecond\n```", "first"),
        ("```print('inline')```", "print('inline')"),
        ("no fences here", "no fences here"),
        ("```python\nnever closed", "```python\nnever closed"),
        ("", ""),
    ],
)
def test_extract_fenced(text: str, expected: str) -> None:
    assert extract_fenced(text) == expected


def test_extract_fenced_is_identity_without_fences() -> None:
    text = "a\n\nb\n"
    assert extract_fenced(text) is text


def test_code_blocks_in_order_with_plaintext_default() -> None:
    text = "One:\n```ts\nlet a = 1;\n```\nTwo:\n```\nraw\n```"

    assert code_blocks(text) == [
        CodeBlock(language="ts", code="let a = 1;"),
        CodeBlock(language="plaintext", code="raw"),
    ]


def test_segments_alternate_prose_and_code() -> None:
    text = "Intro text.\n\n```python\nprint(1)\n```\n\n  \n```\nraw\n```\nOutro."

    parts = segments(text)

    assert [(part.kind, part.language, part.payload) for part in parts] == [
        (ContentKind.PROSE, None, "Intro text."),
        (ContentKind.CODE, "python", "print(1)"),
        (ContentKind.CODE, "plaintext", "raw"),
        (ContentKind.PROSE, None, "Outro."),
    ]
