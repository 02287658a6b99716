"""FAQBot - grounded FAQ answering with human escalation."""

from .conversation import ConversationManager, ConversationStateMachine, SessionStore
from .document_processing import DocumentLoader, TextChunker
from .embeddings import EmbeddingService
from .escalation import (
    EscalationRecorder,
    SheetDBEscalationStore,
    SQLiteEscalationStore,
    get_escalation_store,
)
from .exceptions import (
    BuildError,
    ConfigError,
    FAQBotError,
    IndexNotReadyError,
    RecordError,
    RetrievalError,
    SynthesisError,
)
from .models import (
    Answer,
    ConversationContext,
    ConversationState,
    Document,
    DocumentChunk,
    EscalationRecord,
    Intent,
    Turn,
    TurnResult,
)
from .normalizer import normalize
from .pipeline import RAGPipeline
from .prompts import build_prompt
from .retriever import Retriever
from .synthesis import AnswerSynthesizer
from .vector_store import FaissVectorIndex

__all__ = [
    "Answer",
    "AnswerSynthesizer",
    "BuildError",
    "ConfigError",
    "ConversationContext",
    "ConversationManager",
    "ConversationState",
    "ConversationStateMachine",
    "Document",
    "DocumentChunk",
    "DocumentLoader",
    "EmbeddingService",
    "EscalationRecord",
    "EscalationRecorder",
    "FAQBotError",
    "FaissVectorIndex",
    "IndexNotReadyError",
    "Intent",
    "RAGPipeline",
    "RecordError",
    "RetrievalError",
    "Retriever",
    "SQLiteEscalationStore",
    "SessionStore",
    "SheetDBEscalationStore",
    "SynthesisError",
    "TextChunker",
    "Turn",
    "TurnResult",
    "build_prompt",
    "get_escalation_store",
    "normalize",
]
