"""Per-session conversation flow: answer from the corpus or escalate."""

import datetime
import threading
import weakref
from collections.abc import Callable, Mapping
from typing import Any

from .config import config
from .escalation import EscalationRecorder
from .exceptions import IndexNotReadyError, RetrievalError, SynthesisError
from .models import (
    ConversationContext,
    EscalationRecord,
    Intent,
    Turn,
    TurnResult,
)
from .normalizer import normalize
from .pipeline import RAGPipeline

logger = config.get_logger(__name__)

AWAITING_INFO_TURNS = 2
MAX_PENDING_SESSIONS = 10_000
UNKNOWN_QUERY = "N/A"

WELCOME_MESSAGE = "Hi there! How can I assist you today?"
CONTACT_REQUEST_MESSAGE = (
    "I couldn't find an answer to your question. Could you please provide your "
    "name and email? We'll get back to you with more information."
)
ACKNOWLEDGEMENT_MESSAGE = (
    "Thank you, we've recorded your query and will follow up via email."
)
RECORD_FAILURE_MESSAGE = (
    "Sorry, there was an issue saving your information. Please try again later."
)
APOLOGY_MESSAGE = "Sorry, I couldn't process your request right now."
REPHRASE_MESSAGE = "Sorry, I didn't understand that. Can you rephrase?"


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(tz=datetime.UTC)


def _parameter_text(parameters: Mapping[str, Any], key: str) -> str:
    """Read a string parameter; NLU agents sometimes wrap values in a mapping."""
    value = parameters.get(key)
    if isinstance(value, Mapping):
        value = value.get(key) or " ".join(str(v) for v in value.values() if v)
    if value is None:
        return ""
    return str(value).strip()


class ConversationStateMachine:
    """Decides per turn whether to answer or to collect contact details.

    The machine itself holds no session state: it maps a turn and its prior
    context to a reply and the context to store next.
    """

    def __init__(
        self,
        pipeline: RAGPipeline,
        recorder: EscalationRecorder,
        clock: Callable[[], datetime.datetime] = _utc_now,
    ) -> None:
        self.pipeline = pipeline
        self.recorder = recorder
        self.clock = clock

    def handle(self, turn: Turn) -> TurnResult:
        """Apply one turn.

        Returns:
            TurnResult: The reply and the session's new context.

        Raises:
            IndexNotReadyError: If the corpus index is still being built.
        """
        context = turn.prior_context or ConversationContext.answering(turn.session_id)

        match turn.intent:
            case Intent.WELCOME:
                return TurnResult(reply=WELCOME_MESSAGE, context=context)
            case Intent.COLLECT_INFO:
                return self._collect_contact_info(turn, context)
            case Intent.ANSWERING:
                return self._answer(turn, context.consume_turn())
            case _:
                msg = f"Unhandled intent: {turn.intent!r}"
                raise ValueError(msg)

    def _answer(self, turn: Turn, context: ConversationContext) -> TurnResult:
        if not normalize(turn.text):
            return TurnResult(reply=REPHRASE_MESSAGE, context=context)

        try:
            answer = self.pipeline.answer(turn.text)
        except IndexNotReadyError:
            raise
        except (RetrievalError, SynthesisError):
            logger.exception(
                "Answering failed (session: %s, intent: %s, input: %.80s)",
                turn.session_id,
                turn.intent.value,
                turn.text,
            )
            return TurnResult(reply=APOLOGY_MESSAGE, context=context)

        if answer.is_insufficient:
            logger.info(
                "No grounded answer; requesting contact info (session: %s)",
                turn.session_id,
            )
            awaiting = ConversationContext.awaiting(
                turn.session_id,
                original_query=turn.text,
                remaining_turns=AWAITING_INFO_TURNS,
            )
            return TurnResult(reply=CONTACT_REQUEST_MESSAGE, context=awaiting)

        return TurnResult(reply=answer.text, context=context)

    def _collect_contact_info(
        self, turn: Turn, context: ConversationContext
    ) -> TurnResult:
        if context.is_awaiting and context.original_query:
            query = context.original_query
        else:
            logger.warning(
                "Contact info received without a pending query (session: %s)",
                turn.session_id,
            )
            query = UNKNOWN_QUERY

        record = EscalationRecord(
            name=_parameter_text(turn.parameters, "name"),
            email=_parameter_text(turn.parameters, "email"),
            query=query,
            timestamp=self.clock().isoformat(),
        )
        recorded = self.recorder.record(record)
        if not recorded:
            logger.error(
                "Escalation not recorded (session: %s, intent: %s, input: %.80s)",
                turn.session_id,
                turn.intent.value,
                query,
            )

        reply = ACKNOWLEDGEMENT_MESSAGE if recorded else RECORD_FAILURE_MESSAGE
        return TurnResult(
            reply=reply, context=ConversationContext.answering(turn.session_id)
        )


class SessionStore:
    """Conversation contexts keyed by session id, with one lock per session.

    Sessions in the answering state are not stored; a missing entry means a
    fresh answering context. Abandoned sessions never send the turn that
    would expire them, so at most ``max_pending`` awaiting contexts are kept
    and the least recently updated one is dropped first.
    """

    def __init__(self, max_pending: int = MAX_PENDING_SESSIONS) -> None:
        if max_pending <= 0:
            msg = f"max_pending must be positive, got {max_pending}"
            raise ValueError(msg)
        self.max_pending = max_pending
        self._contexts: dict[str, ConversationContext] = {}
        self._contexts_lock = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._registry_lock = threading.Lock()

    def lock_for(self, session_id: str) -> threading.Lock:
        """Return the lock guarding ``session_id``, creating it on first use."""
        with self._registry_lock:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[session_id] = lock
            return lock

    def get(self, session_id: str) -> ConversationContext:
        with self._contexts_lock:
            context = self._contexts.get(session_id)
        return context or ConversationContext.answering(session_id)

    def put(self, context: ConversationContext) -> None:
        with self._contexts_lock:
            self._contexts.pop(context.session_id, None)
            if not context.is_awaiting:
                return
            while len(self._contexts) >= self.max_pending:
                evicted = next(iter(self._contexts))
                del self._contexts[evicted]
                logger.warning("Dropped pending escalation for session %s", evicted)
            self._contexts[context.session_id] = context

    def discard(self, session_id: str) -> None:
        with self._contexts_lock:
            self._contexts.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._contexts)


class ConversationManager:
    """Serializes turns per session and runs them through the state machine."""

    def __init__(
        self,
        state_machine: ConversationStateMachine,
        sessions: SessionStore | None = None,
    ) -> None:
        self.state_machine = state_machine
        self.sessions = sessions if sessions is not None else SessionStore()

    def handle_turn(
        self,
        session_id: str,
        intent: Intent | str,
        text: str = "",
        parameters: Mapping[str, Any] | None = None,
    ) -> TurnResult:
        """Process one inbound message for ``session_id``.

        Only turns of the same session wait for each other.

        Returns:
            TurnResult: Reply text and the context now stored for the session.

        Raises:
            ValueError: If ``intent`` is not a known intent name.
            IndexNotReadyError: If the corpus index is still being built.
        """
        resolved_intent = Intent.from_name(intent)

        with self.sessions.lock_for(session_id):
            turn = Turn(
                intent=resolved_intent,
                session_id=session_id,
                text=text,
                parameters=dict(parameters or {}),
                prior_context=self.sessions.get(session_id),
            )
            result = self.state_machine.handle(turn)
            self.sessions.put(result.context)

        logger.info(
            "Handled %s turn (session: %s, state: %s)",
            resolved_intent.value,
            session_id,
            result.context.state.value,
        )
        return result

    def context_for(self, session_id: str) -> ConversationContext:
        with self.sessions.lock_for(session_id):
            return self.sessions.get(session_id)

    def clear_session(self, session_id: str) -> None:
        """Drop any pending escalation for ``session_id``."""
        with self.sessions.lock_for(session_id):
            self.sessions.discard(session_id)
        logger.info("Session %s cleared.", session_id)
