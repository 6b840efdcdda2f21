"""Review workflow gating AI-proposed edits before they reach a document."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional
from uuid import uuid4

from aiassistant.ai.classifier import extract_fenced
from aiassistant.ai.diff import Diff, compute_diff, diff_stats
from aiassistant.ai.errors import ContentError, ReviewStateError, ValidationError
from aiassistant.ai.models import DiffStats, TextRange
from aiassistant.ai.prompts import code_generation_prompt

if TYPE_CHECKING:  # pragma: no cover - typing only
    from aiassistant.ai.conversation import ConversationStore
    from aiassistant.ai.ports import DocumentPort
    from aiassistant.ai.providers.base import BaseProvider

logger = logging.getLogger(__name__)


class ReviewStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DISCARDED = "discarded"
    APPLIED = "applied"


_TRANSITIONS: dict[ReviewStatus, frozenset[ReviewStatus]] = {
    ReviewStatus.PENDING: frozenset({ReviewStatus.ACCEPTED, ReviewStatus.DISCARDED}),
    # A candidate whose edit failed to apply may still be thrown away.
    ReviewStatus.ACCEPTED: frozenset({ReviewStatus.APPLIED, ReviewStatus.DISCARDED}),
    ReviewStatus.DISCARDED: frozenset(),
    ReviewStatus.APPLIED: frozenset(),
}


@dataclass
class ReviewCandidate:
    """A proposed edit awaiting the user's decision."""

    original_text: str
    proposed_text: str
    diff: Diff
    target: Optional[TextRange]
    language: str
    status: ReviewStatus = ReviewStatus.PENDING
    candidate_id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.status]

    @property
    def stats(self) -> DiffStats:
        return diff_stats(self.diff)

    def transition(self, new_status: ReviewStatus) -> None:
        if new_status not in _TRANSITIONS[self.status]:
            raise ReviewStateError(
                f"Cannot move review candidate from '{self.status.value}' to '{new_status.value}'."
            )
        logger.debug("Review candidate %s: %s -> %s", self.candidate_id, self.status.value, new_status.value)
        self.status = new_status

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.candidate_id,
            "status": self.status.value,
            "language": self.language,
            "original_text": self.original_text,
            "proposed_text": self.proposed_text,
            "target": None if self.target is None else [self.target.start, self.target.end],
            "diff": [line.as_dict() for line in self.diff],
            "stats": self.stats.as_dict(),
            "created_at": self.created_at.isoformat(),
        }


class ReviewSession:
    """Generate a candidate, diff it against the document, then apply or discard.

    Only one candidate is active at a time. Resolved candidates (applied or
    discarded) are dropped; the document is touched only by :meth:`accept`.
    """

    def __init__(
        self,
        provider: "BaseProvider",
        document: "DocumentPort",
        *,
        store: Optional["ConversationStore"] = None,
        strategy: str = "positional",
    ) -> None:
        self._provider = provider
        self._document = document
        self._store = store
        self._strategy = strategy
        self._active: Optional[ReviewCandidate] = None

    @property
    def active(self) -> Optional[ReviewCandidate]:
        return self._active

    @property
    def provider(self) -> "BaseProvider":
        return self._provider

    @provider.setter
    def provider(self, provider: "BaseProvider") -> None:
        self._provider = provider

    async def generate(self, request: str) -> ReviewCandidate:
        """Ask the provider for code and stage it as a pending candidate.

        Nothing changes if any step fails: the previously active candidate,
        if any, stays as it was.
        """

        if not isinstance(request, str) or not request.strip():
            raise ValidationError("Please describe the code to generate.")

        language = self._document.language()
        original_text, target = self._current_target()
        prompt = code_generation_prompt(request, language)

        if self._store is not None:
            async with self._store.exclusive():
                reply = await self._provider.generate(prompt, "code")
        else:
            reply = await self._provider.generate(prompt, "code")

        code = extract_fenced(reply)
        if not code.strip():
            raise ContentError("The provider returned no code.")

        return self.propose(code, original_text=original_text, target=target, language=language)

    def propose(
        self,
        proposed_text: str,
        *,
        original_text: str,
        target: Optional[TextRange],
        language: str,
    ) -> ReviewCandidate:
        """Stage ``proposed_text`` directly, replacing any pending candidate."""

        diff = compute_diff(original_text, proposed_text, strategy=self._strategy)
        candidate = ReviewCandidate(
            original_text=original_text,
            proposed_text=proposed_text,
            diff=diff,
            target=target,
            language=language,
        )
        if self._active is not None:
            logger.debug("Replacing review candidate %s", self._active.candidate_id)
        self._active = candidate
        logger.info("Review candidate %s staged (%s)", candidate.candidate_id, candidate.stats.as_dict())
        return candidate

    def accept(self) -> ReviewCandidate:
        """Apply the active candidate to the document as one edit.

        A :class:`DocumentError` from the document boundary propagates and
        leaves the candidate in the ``accepted`` state.
        """

        candidate = self._require_active()
        if candidate.status is ReviewStatus.PENDING:
            candidate.transition(ReviewStatus.ACCEPTED)
        elif candidate.status is not ReviewStatus.ACCEPTED:
            raise ReviewStateError(f"Cannot accept a '{candidate.status.value}' candidate.")

        self._document.apply_edit(candidate.target, candidate.proposed_text)
        candidate.transition(ReviewStatus.APPLIED)
        self._active = None
        return candidate

    def discard(self) -> ReviewCandidate:
        candidate = self._require_active()
        candidate.transition(ReviewStatus.DISCARDED)
        self._active = None
        return candidate

    def _require_active(self) -> ReviewCandidate:
        if self._active is None:
            raise ReviewStateError("There is no code suggestion to review.")
        return self._active

    def _current_target(self) -> tuple[str, Optional[TextRange]]:
        """Return the text under review and where the result will go.

        A non-empty selection is replaced; with no selection, or only a
        cursor, the whole document is.
        """

        text = self._document.text()
        selection = self._document.selection()
        if selection is None or selection.is_cursor:
            return text, None
        return text[selection.start:selection.end], selection
