"""Data models for the FAQ answering service."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .prompts import INSUFFICIENT_INFO_MARKER


@dataclass(frozen=True)
class Document:
    """Raw source text loaded once at startup."""

    source: str
    text: str


@dataclass(frozen=True)
class DocumentChunk:
    """Represents a chunk of text from a document."""

    id: int
    text: str
    source_offset: int
    source: str = "document"

    @property
    def end_offset(self) -> int:
        return self.source_offset + len(self.text)


RetrievalResult = list[tuple[DocumentChunk, float]]


@dataclass(frozen=True)
class Answer:
    """A normalized completion for one query."""

    text: str

    @property
    def is_insufficient(self) -> bool:
        """Whether the model declined to answer from the given context."""
        return INSUFFICIENT_INFO_MARKER in self.text


class Intent(Enum):
    """Closed set of intents the conversation state machine understands."""

    WELCOME = "welcome"
    ANSWERING = "answering"
    COLLECT_INFO = "collect_info"

    @classmethod
    def from_name(cls, name: "str | Intent") -> "Intent":
        """Map an external intent name onto the closed intent set.

        Accepts the enum values themselves as well as the intent display
        names used by the NLU agent.

        Raises:
            ValueError: If the name does not belong to a known intent.
        """
        if isinstance(name, Intent):
            return name
        if not isinstance(name, str):
            msg = f"Intent name must be a string, got {type(name).__name__}"
            raise ValueError(msg)
        key = name.strip()
        intent = _INTENT_ALIASES.get(key) or _INTENT_ALIASES.get(key.lower())
        if intent is None:
            msg = f"Unknown intent: {name!r}"
            raise ValueError(msg)
        return intent


_INTENT_ALIASES: dict[str, Intent] = {
    "welcome": Intent.WELCOME,
    "answering": Intent.ANSWERING,
    "collect_info": Intent.COLLECT_INFO,
    "Default Welcome Intent": Intent.WELCOME,
    "Default Fallback Intent": Intent.ANSWERING,
    "PDF_Query_Intent": Intent.ANSWERING,
    "Collect_User_Info": Intent.COLLECT_INFO,
}


class ConversationState(Enum):
    ANSWERING = "answering"
    AWAITING_CONTACT_INFO = "awaiting_contact_info"


@dataclass(frozen=True)
class ConversationContext:
    """Per-session escalation context.

    A context in ``AWAITING_CONTACT_INFO`` always carries the query that could
    not be answered and at least one remaining turn.
    """

    session_id: str
    state: ConversationState = ConversationState.ANSWERING
    original_query: str | None = None
    remaining_turns: int = 0

    def __post_init__(self) -> None:
        if self.state is ConversationState.AWAITING_CONTACT_INFO:
            if not self.original_query:
                msg = "Awaiting context requires a non-empty original_query"
                raise ValueError(msg)
            if self.remaining_turns <= 0:
                msg = "Awaiting context requires remaining_turns > 0"
                raise ValueError(msg)

    @classmethod
    def answering(cls, session_id: str) -> "ConversationContext":
        return cls(session_id=session_id)

    @classmethod
    def awaiting(
        cls, session_id: str, original_query: str, remaining_turns: int
    ) -> "ConversationContext":
        return cls(
            session_id=session_id,
            state=ConversationState.AWAITING_CONTACT_INFO,
            original_query=original_query,
            remaining_turns=remaining_turns,
        )

    @property
    def is_awaiting(self) -> bool:
        return self.state is ConversationState.AWAITING_CONTACT_INFO

    def consume_turn(self) -> "ConversationContext":
        """Spend one turn of the awaiting window.

        Returns:
            The context with one fewer remaining turn, or a fresh answering
            context once the window is exhausted.
        """
        if not self.is_awaiting:
            return self
        if self.remaining_turns <= 1:
            return ConversationContext.answering(self.session_id)
        return ConversationContext.awaiting(
            self.session_id,
            original_query=self.original_query or "",
            remaining_turns=self.remaining_turns - 1,
        )


@dataclass(frozen=True)
class EscalationRecord:
    """An unresolved query handed to human follow-up."""

    name: str
    email: str
    query: str
    timestamp: str

    def as_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "email": self.email,
            "query": self.query,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class Turn:
    """One inbound message as seen by the conversation state machine."""

    intent: Intent
    session_id: str
    text: str
    parameters: dict[str, Any] = field(default_factory=dict)
    prior_context: ConversationContext | None = None


@dataclass(frozen=True)
class TurnResult:
    """Reply text plus the context to store for the session."""

    reply: str
    context: ConversationContext
