"""Boundaries between the engine and its host: persistence and documents."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Protocol

from aiassistant.ai.errors import DocumentError
from aiassistant.ai.models import TextRange

__all__ = [
    "StateStore",
    "InMemoryStateStore",
    "JsonFileStateStore",
    "DocumentPort",
    "InMemoryDocument",
    "context_window",
]

logger = logging.getLogger(__name__)


class StateStore(Protocol):
    """Key/value persistence offered by the host (workspace state)."""

    def get(self, key: str, default: Any = None) -> Any:  # pragma: no cover - typing aid
        ...

    def set(self, key: str, value: Any) -> None:  # pragma: no cover - typing aid
        ...


class InMemoryStateStore:
    """Dictionary-backed :class:`StateStore`; values are JSON round-tripped."""

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        # Mimic a real store: callers must not share mutable state with it.
        self._values[key] = json.loads(json.dumps(value))


class JsonFileStateStore:
    """:class:`StateStore` persisted as one JSON object in a file.

    Writes go to a temporary file that replaces the target, so a crash
    never leaves a half-written file behind. A missing or unreadable file
    reads as an empty store.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path).expanduser()
        self._values = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        self._write()

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read state file %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring state file %s: top level is not an object", self._path)
            return {}
        return data

    def _write(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=self._path.name, suffix=".tmp", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._values, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise


class DocumentPort(Protocol):
    """Host editor boundary used to read the active document and apply edits."""

    def language(self) -> str:  # pragma: no cover - typing aid
        ...

    def text(self) -> str:  # pragma: no cover - typing aid
        ...

    def selection(self) -> Optional[TextRange]:  # pragma: no cover - typing aid
        ...

    def apply_edit(self, target: Optional[TextRange], text: str) -> None:  # pragma: no cover - typing aid
        ...


class InMemoryDocument:
    """Plain-string :class:`DocumentPort`.

    ``apply_edit`` replaces ``target`` (inserts when it is a cursor) or the
    whole buffer when ``target`` is ``None``. Setting ``available`` to
    ``False`` simulates an editor without an active document.
    """

    def __init__(
        self,
        text: str = "",
        *,
        language: str = "plaintext",
        selection: Optional[TextRange] = None,
        available: bool = True,
    ) -> None:
        self._text = text
        self._language = language
        self._selection = selection
        self.available = available
        self.edits: list[tuple[Optional[TextRange], str]] = []

    def language(self) -> str:
        self._require_active()
        return self._language

    def text(self) -> str:
        self._require_active()
        return self._text

    def selection(self) -> Optional[TextRange]:
        self._require_active()
        return self._selection

    def select(self, selection: Optional[TextRange]) -> None:
        self._selection = selection

    def selected_text(self) -> str:
        selection = self.selection()
        if selection is None:
            return ""
        return self._text[selection.start:selection.end]

    def apply_edit(self, target: Optional[TextRange], text: str) -> None:
        self._require_active()
        if target is None:
            self._text = text
        else:
            if target.end > len(self._text):
                raise DocumentError(f"Edit range [{target.start}:{target.end}] is outside the document.")
            self._text = self._text[:target.start] + text + self._text[target.end:]
        self.edits.append((target, text))
        self._selection = None

    def _require_active(self) -> None:
        if not self.available:
            raise DocumentError("No active editor found.")


def context_window(text: str, selection: Optional[TextRange], lines: int) -> str:
    """Return the selected lines plus ``lines`` lines of context on each side."""

    if not text:
        return ""
    all_lines = text.splitlines()
    if selection is None:
        first = last = 0
    else:
        first = text.count("\n", 0, selection.start)
        last = text.count("\n", 0, selection.end)
    start = max(0, first - lines)
    end = min(len(all_lines), last + lines + 1)
    return "\n".join(all_lines[start:end])
