"""Command handling between the editor UI and the AI Assistant engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from aiassistant.ai.classifier import classify, segments
from aiassistant.ai.config import AIConfig
from aiassistant.ai.conversation import ConversationStore
from aiassistant.ai.errors import (
    AIError,
    ConfigurationError,
    DocumentError,
    ReviewStateError,
    StillProcessingError,
    ValidationError,
)
from aiassistant.ai.models import MessageRole, TextRange
from aiassistant.ai.ports import context_window
from aiassistant.ai.prompts import explain_prompt, inline_completion_prompt, review_prompt, unit_test_prompt
from aiassistant.ai.review import ReviewSession

from .diff_viewer import build_review_html

if TYPE_CHECKING:  # pragma: no cover - typing only
    import httpx
    from aiassistant.ai.ports import DocumentPort, StateStore
    from aiassistant.ai.providers.base import BaseProvider

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class ChatCommand:
    """Chat panel actions: ``send``, ``clear``, ``insertCode`` and ``plot``."""

    action: str
    text: str = ""


@dataclass(frozen=True)
class CodeGenCommand:
    prompt: str


@dataclass(frozen=True)
class ReviewCommand:
    """Decision on the active review candidate: ``accept`` or ``discard``."""

    decision: str


@dataclass(frozen=True)
class SelectionCommand:
    """Run ``explain``, ``test`` or ``review`` on the current selection."""

    action: str


@dataclass(frozen=True)
class InlineCompletionCommand:
    pass


Command = Union[ChatCommand, CodeGenCommand, ReviewCommand, SelectionCommand, InlineCompletionCommand]

CHAT_ACTIONS = ("send", "clear", "insertCode", "plot")
SELECTION_ACTIONS = ("explain", "test", "review")
REVIEW_DECISIONS = ("accept", "discard")

_SELECTION_TITLES = {
    "explain": "Code Explanation",
    "test": "Generated Tests",
    "review": "Code Review",
}

INLINE_MIN_CHARS = 3


def parse_command(payload: Mapping[str, Any]) -> Command:
    """Map a webview message such as ``{"command": "send", "text": ...}`` to a command."""

    if not isinstance(payload, Mapping):
        raise ValidationError("Command payload must be an object.")
    name = payload.get("command")

    def text_field(*keys: str) -> str:
        for key in keys:
            value = payload.get(key)
            if isinstance(value, str):
                return value
        return ""

    if name in CHAT_ACTIONS:
        return ChatCommand(action=name, text=text_field("text", "code", "content"))
    if name == "generate":
        return CodeGenCommand(prompt=text_field("prompt", "text"))
    if name in REVIEW_DECISIONS:
        return ReviewCommand(decision=name)
    if name in SELECTION_ACTIONS:
        return SelectionCommand(action=name)
    if name == "inlineComplete":
        return InlineCompletionCommand()
    raise ValidationError(f"Unknown command: {name!r}")


# ----------------------------------------------------------------------
# Results
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class Notification:
    """A single user-facing message; ``open_settings`` offers a settings shortcut."""

    level: str
    message: str
    open_settings: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {"level": self.level, "message": self.message, "openSettings": self.open_settings}


@dataclass
class CommandResult:
    ok: bool
    notification: Optional[Notification] = None
    payload: Dict[str, Any] = field(default_factory=dict)


# ----------------------------------------------------------------------
# Handler
# ----------------------------------------------------------------------
class CopilotHandler:
    """Route UI commands to the conversation store, providers and review session.

    The provider is created lazily from :class:`AIConfig`, so a missing
    credential only surfaces when a command actually needs the backend.
    Every failure is reported as exactly one :class:`Notification`.
    """

    def __init__(
        self,
        config: AIConfig,
        state: "StateStore",
        document: "DocumentPort",
        *,
        provider: Optional["BaseProvider"] = None,
        transport: Optional["httpx.AsyncBaseTransport"] = None,
    ) -> None:
        self._config = config
        self._document = document
        self._transport = transport
        self._provider = provider
        self._store = ConversationStore(state, max_messages=config.max_history)
        self._review: Optional[ReviewSession] = None
        self._panel: Optional[Dict[str, Any]] = None
        self._plot: Optional[str] = None
        self._inline: Optional[str] = None

        self._commands: Dict[type, Callable[[Any], Awaitable[CommandResult]]] = {
            ChatCommand: self._handle_chat,
            CodeGenCommand: self._handle_generate,
            ReviewCommand: self._handle_review,
            SelectionCommand: self._handle_selection,
            InlineCompletionCommand: self._handle_inline,
        }

    @property
    def store(self) -> ConversationStore:
        return self._store

    @property
    def config(self) -> AIConfig:
        return self._config

    @property
    def provider(self) -> "BaseProvider":
        """Return the active provider, creating it from configuration if needed."""

        if self._provider is None:
            self._provider = self._config.create_provider(transport=self._transport)
        return self._provider

    @property
    def review(self) -> ReviewSession:
        """Return the review session bound to the current provider."""

        provider = self.provider
        if self._review is None:
            self._review = ReviewSession(provider, self._document, store=self._store)
        else:
            self._review.provider = provider
        return self._review

    async def on_config_changed(self, config: AIConfig) -> None:
        """Drop the current provider so the next request uses ``config``."""

        self._config = config
        await self.close()

    async def close(self) -> None:
        if self._provider is not None:
            await self._provider.close()
            self._provider = None

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    async def dispatch(self, payload: Mapping[str, Any]) -> CommandResult:
        """Parse a webview payload and handle it."""

        try:
            command = parse_command(payload)
        except ValidationError as exc:
            return self._failure(exc)
        return await self.handle(command)

    async def handle(self, command: Command) -> CommandResult:
        handler = self._commands.get(type(command))
        if handler is None:
            return self._failure(ValidationError(f"Unsupported command: {type(command).__name__}"))

        try:
            return await handler(command)
        except StillProcessingError as exc:
            return CommandResult(ok=False, notification=Notification("warning", str(exc)))
        except AIError as exc:
            return self._failure(exc)
        except Exception as exc:  # noqa: BLE001 - the UI session must survive
            logger.exception("Unexpected failure while handling %s", type(command).__name__)
            return CommandResult(ok=False, notification=Notification("error", f"AI Error: {exc}"))

    def state(self) -> Dict[str, Any]:
        """Return a JSON-serialisable snapshot for the UI."""

        messages = []
        for message in self._store.snapshot():
            entry = message.to_dict()
            if message.role is MessageRole.ASSISTANT:
                entry["kind"] = classify(message.content).kind.value
                entry["segments"] = [segment.as_dict() for segment in segments(message.content)]
            messages.append(entry)

        candidate = self._review.active if self._review is not None else None
        review: Optional[Dict[str, Any]] = None
        if candidate is not None:
            review = candidate.as_dict()
            review["html"] = build_review_html(candidate)

        return {
            "messages": messages,
            "processing": self._store.is_processing,
            "review": review,
            "panel": self._panel,
            "plot": self._plot,
            "inline": self._inline,
        }

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------
    async def _handle_chat(self, command: ChatCommand) -> CommandResult:
        if command.action == "clear":
            self._store.clear()
            return CommandResult(ok=True)

        if command.action == "insertCode":
            return self._insert_code(command.text)

        if command.action == "plot":
            async with self._store.exclusive():
                data = await self.provider.generate_plot(command.text)
            self._plot = data
            self._store.add_reply(f"```json\n{data}\n```")
            return CommandResult(ok=True, payload={"plot": data})

        if command.action == "send":
            language, code_context = self._document_context()
            reply = await self._store.send(
                self.provider,
                command.text,
                language=language,
                code_context=code_context,
            )
            return CommandResult(ok=True, payload={"reply": reply.to_dict()})

        raise ValidationError(f"Unknown chat action: {command.action!r}")

    async def _handle_generate(self, command: CodeGenCommand) -> CommandResult:
        candidate = await self.review.generate(command.prompt)
        payload = candidate.as_dict()
        payload["html"] = build_review_html(candidate)
        return CommandResult(ok=True, payload={"review": payload})

    async def _handle_review(self, command: ReviewCommand) -> CommandResult:
        if self._review is None:
            raise ReviewStateError("There is no code suggestion to review.")
        if command.decision == "accept":
            candidate = self._review.accept()
            return CommandResult(
                ok=True,
                notification=Notification("info", "Code changes applied."),
                payload={"review": candidate.as_dict()},
            )
        if command.decision == "discard":
            candidate = self._review.discard()
            return CommandResult(ok=True, payload={"review": candidate.as_dict()})
        raise ValidationError(f"Unknown review decision: {command.decision!r}")

    async def _handle_selection(self, command: SelectionCommand) -> CommandResult:
        if command.action not in SELECTION_ACTIONS:
            raise ValidationError(f"Unknown selection action: {command.action!r}")

        language = self._document.language()
        text = self._document.text()
        selection = self._document.selection()
        selected = text[selection.start:selection.end] if selection is not None else ""
        if not selected.strip():
            return CommandResult(
                ok=False,
                notification=Notification("warning", f"Please select code to {command.action}."),
            )

        if command.action == "explain":
            prompt = explain_prompt(selected, language)
        elif command.action == "test":
            prompt = unit_test_prompt(
                selected,
                language,
                self._config.test_framework,
                with_comments=self._config.generate_comments,
            )
        else:
            prompt = review_prompt(selected, language, self._config.code_review_level)

        async with self._store.exclusive():
            result = await self.provider.generate(prompt, "text")

        self._panel = {
            "title": _SELECTION_TITLES[command.action],
            "selection": selected,
            "content": result,
            "segments": [segment.as_dict() for segment in segments(result)],
        }
        return CommandResult(ok=True, payload={"panel": self._panel})

    async def _handle_inline(self, command: InlineCompletionCommand) -> CommandResult:
        self._inline = None
        if not self._config.enable_inline or self._store.is_processing:
            return CommandResult(ok=True)

        text = self._document.text()
        line = _current_line(text, self._document.selection())
        if len(line.strip()) < INLINE_MIN_CHARS:
            return CommandResult(ok=True)

        prompt = inline_completion_prompt(line, self._document.language())
        async with self._store.exclusive():
            completion = await self.provider.generate(prompt, "code")
        self._inline = completion
        return CommandResult(ok=True, payload={"inline": completion})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _insert_code(self, code: str) -> CommandResult:
        if not code:
            raise ValidationError("There is no code to insert.")
        selection = self._document.selection()
        if selection is None:
            end = len(self._document.text())
            target = TextRange(end, end)
        else:
            target = TextRange(selection.end, selection.end)
        self._document.apply_edit(target, code)
        return CommandResult(ok=True)

    def _document_context(self) -> tuple[str, Optional[str]]:
        """Return the active language and the code around the selection.

        A missing document is not an error for chat; the language falls back
        to ``unknown`` and no context is attached.
        """

        try:
            language = self._document.language()
            text = self._document.text()
            selection = self._document.selection()
        except DocumentError:
            return "unknown", None
        return language or "unknown", context_window(text, selection, self._config.max_context_lines) or None

    @staticmethod
    def _failure(exc: AIError) -> CommandResult:
        if isinstance(exc, ConfigurationError):
            logger.warning("AI Assistant is not configured: %s", exc)
            return CommandResult(ok=False, notification=Notification("error", str(exc), open_settings=True))
        logger.warning("AI Assistant command failed: %s", exc)
        return CommandResult(ok=False, notification=Notification("error", f"AI Error: {exc}"))


def _current_line(text: str, selection: Optional[TextRange]) -> str:
    position = selection.end if selection is not None else len(text)
    start = text.rfind("\n", 0, position) + 1
    end = text.find("\n", position)
    return text[start:] if end < 0 else text[start:end]
