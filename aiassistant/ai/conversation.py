"""Bounded, persisted conversation history for one assistant session."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

from aiassistant.ai.errors import StillProcessingError, ValidationError
from aiassistant.ai.models import Message, MessageRole
from aiassistant.ai.prompts import language_system_prompt

if TYPE_CHECKING:  # pragma: no cover - typing only
    from aiassistant.ai.ports import StateStore
    from aiassistant.ai.providers.base import BaseProvider

logger = logging.getLogger(__name__)

HISTORY_KEY = "chatHistory"
DEFAULT_HISTORY_LIMIT = 10


class ConversationStore:
    """Owns the ordered message history of a chat session.

    The store is the only writer of its history. Every append trims the
    oldest messages down to ``max_messages`` and then writes the survivors
    to the injected :class:`StateStore` under ``chatHistory``. At most one
    provider request may be in flight per store at a time.
    """

    def __init__(self, state: "StateStore", *, max_messages: int = DEFAULT_HISTORY_LIMIT) -> None:
        """Initialise the store and restore any persisted history.

        Args:
            state: Persistence port used for reading and writing history
            max_messages: Maximum number of messages kept after trimming

        Raises:
            ValidationError: If ``max_messages`` is smaller than one
        """
        if max_messages < 1:
            raise ValidationError("The conversation history limit must be at least 1.")

        self._state = state
        self._max_messages = max_messages
        self._messages: list[Message] = []
        self._in_flight = False

        self.restore()
        logger.debug("ConversationStore initialised with max_messages=%d, restored=%d",
                     max_messages, len(self._messages))

    @property
    def max_messages(self) -> int:
        return self._max_messages

    @property
    def is_processing(self) -> bool:
        """Whether a provider request is currently pending."""
        return self._in_flight

    def __len__(self) -> int:
        return len(self._messages)

    # ------------------------------------------------------------------
    # History management
    # ------------------------------------------------------------------
    def append(self, message: Message) -> Message:
        """Add ``message`` to the end of the history, trim and persist.

        Role transitions are not validated; two user messages in a row are
        perfectly acceptable.

        Args:
            message: The message to append

        Returns:
            The appended message
        """
        if not isinstance(message, Message):
            raise ValidationError(f"Expected a Message, got {type(message).__name__}")

        self._messages.append(message)
        self.trim()
        self.persist()
        return message

    def trim(self) -> None:
        """Drop the oldest messages until the history fits the limit."""
        overflow = len(self._messages) - self._max_messages
        if overflow > 0:
            del self._messages[:overflow]
            logger.debug("Trimmed %d message(s) from conversation history", overflow)

    def snapshot(self) -> tuple[Message, ...]:
        """Return a read-only view of the history, oldest first."""
        return tuple(self._messages)

    def prompt(self, language: str) -> list[dict[str, str]]:
        """Build the provider request for the current history.

        A system message describing the active document's language leads the
        list. It is created fresh for every request and never stored.

        Args:
            language: Language identifier of the active document

        Returns:
            List of ``{role, content}`` mappings in prompt order
        """
        system = {"role": MessageRole.SYSTEM.value, "content": language_system_prompt(language)}
        return [system, *(message.to_prompt() for message in self._messages)]

    def clear(self) -> None:
        """Forget all messages and persist the empty history."""
        self._messages.clear()
        self.persist()
        logger.debug("Conversation history cleared")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def persist(self) -> None:
        """Write the history to the state store."""
        self._state.set(HISTORY_KEY, [message.to_dict() for message in self._messages])

    def restore(self) -> None:
        """Reload the history from the state store.

        A stored value that is not a well-formed list of messages restores as
        an empty history; the problem is logged and never raised.
        """
        raw: Any = self._state.get(HISTORY_KEY, None)
        self._messages = []
        if raw is None:
            return
        if not isinstance(raw, list):
            logger.warning("Ignoring stored chat history: expected a list, got %s", type(raw).__name__)
            return

        restored: list[Message] = []
        for entry in raw:
            try:
                restored.append(Message.from_dict(entry))
            except (KeyError, TypeError, ValueError, ValidationError) as exc:
                logger.warning("Ignoring malformed chat history: %s", exc)
                return

        self._messages = restored
        self.trim()

    # ------------------------------------------------------------------
    # Provider interaction
    # ------------------------------------------------------------------
    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator["ConversationStore"]:
        """Guard a provider call so only one runs per store.

        Raises:
            StillProcessingError: If another request is still pending
        """
        if self._in_flight:
            raise StillProcessingError("Please wait for the current response to complete.")
        self._in_flight = True
        try:
            yield self
        finally:
            self._in_flight = False

    async def send(
        self,
        provider: "BaseProvider",
        text: str,
        *,
        language: str,
        code_context: Optional[str] = None,
    ) -> Message:
        """Send a user utterance and record the assistant's reply.

        The user message is appended and persisted before the provider is
        called. If the provider fails, that message stays in the history,
        nothing else is written and the error propagates.

        Args:
            provider: Backend used to produce the reply
            text: The user's message
            language: Language identifier of the active document
            code_context: Editor text around the selection, stored with the
                user message

        Returns:
            The appended assistant message
        """
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Cannot send an empty message.")

        async with self.exclusive():
            self.append(Message(role=MessageRole.USER, content=text, code_context=code_context or None))
            reply = await provider.chat(self.prompt(language))
            return self.append(Message(role=MessageRole.ASSISTANT, content=reply))

    def add_reply(self, content: str) -> Message:
        """Append an assistant message produced outside :meth:`send`."""
        return self.append(Message(role=MessageRole.ASSISTANT, content=content))
