"""Test configuration and fixtures for FAQBot tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Deterministic embedding collaborators
- Fake OpenAI chat responses
- Pipeline, escalation and conversation fixtures
"""

import hashlib
import re
from unittest.mock import Mock

import numpy as np
import pytest

from faqbot import (
    AnswerSynthesizer,
    ConversationManager,
    ConversationStateMachine,
    DocumentChunk,
    EscalationRecorder,
    RAGPipeline,
    SQLiteEscalationStore,
    TextChunker,
)
from faqbot.prompts import FOLLOW_UP_SUGGESTION, INSUFFICIENT_INFO_ANSWER

_WORD_RE = re.compile(r"\w+")
_PROMPT_RE = re.compile(
    r"Context Information:\n(?P<context>.*)\n\nQuery: (?P<query>.*?)\n\nInstructions:",
    re.DOTALL,
)


class TestConstants:
    """Centralized test constants shared across the test suite."""

    # API Configuration
    TEST_API_KEY = "test-key"
    TEST_OPENAI_MODEL = "text-embedding-3-small"
    DEFAULT_EMBEDDING_DIMENSION = 256

    # Text Chunking Configuration
    SMALL_CHUNK_SIZE = 100
    SMALL_CHUNK_OVERLAP = 20
    DEFAULT_CHUNK_SIZE = 1000
    DEFAULT_CHUNK_OVERLAP = 200

    # Corpus
    OFFICE_HOURS_DOCUMENT = "Office hours are 9-5 Monday to Friday."
    REFUSAL = f"{INSUFFICIENT_INFO_ANSWER} {FOLLOW_UP_SUGGESTION}"


class MockEmbeddingService:
    """Mock embedding service for testing without API calls.

    Generates deterministic embeddings based on text content hash,
    ensuring consistent test results across runs.
    """

    def __init__(
        self, dimension: int = TestConstants.DEFAULT_EMBEDDING_DIMENSION
    ) -> None:
        self.dimension = dimension
        self.calls: list[str] = []

    def get_embedding(self, text: str) -> np.ndarray:
        """Generate deterministic mock embedding based on text hash."""
        self.calls.append(text)
        seed = int.from_bytes(
            hashlib.sha256(text.lower().encode("utf-8")).digest()[:8],
            byteorder="big",
            signed=False,
        )
        rng = np.random.default_rng(seed)
        embedding = rng.normal(0, 1, self.dimension)
        return (embedding / np.linalg.norm(embedding)).astype(np.float32)

    def get_embeddings_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate batch of mock embeddings."""
        return [self.get_embedding(text) for text in texts]


class BagOfWordsEmbeddingService(MockEmbeddingService):
    """Hashes words into buckets so texts sharing words score as similar."""

    def get_embedding(self, text: str) -> np.ndarray:
        self.calls.append(text)
        embedding = np.zeros(self.dimension, dtype=np.float32)
        for word in _WORD_RE.findall(text.lower()):
            digest = hashlib.sha256(word.encode("utf-8")).digest()
            embedding[int.from_bytes(digest[:4], "big") % self.dimension] += 1.0
        return embedding


class FailingEmbeddingService(MockEmbeddingService):
    """Embedding collaborator that is always down."""

    def get_embedding(self, text: str) -> np.ndarray:
        msg = "embedding service unavailable"
        raise ConnectionError(msg)

    def get_embeddings_batch(self, texts: list[str]) -> list[np.ndarray]:
        msg = "embedding service unavailable"
        raise ConnectionError(msg)


def create_mock_chat_response(content: str | None) -> Mock:
    """Create a mock OpenAI chat completion response.

    Args:
        content: The content for the chat completion response.

    Returns:
        Mock object representing OpenAI chat completion response.
    """
    mock_response = Mock()
    mock_response.choices = [Mock(message=Mock(content=content))]
    return mock_response


def grounded_completion(**kwargs) -> Mock:
    """Answer like an obedient model: quote the context or refuse.

    The first retrieved section is returned when it shares a word of five or
    more letters with the query; otherwise the fixed refusal is returned.
    """
    prompt = kwargs["messages"][0]["content"]
    match = _PROMPT_RE.search(prompt)
    assert match is not None, "prompt does not follow the answering template"
    context = match.group("context").strip()
    query_words = {w for w in _WORD_RE.findall(match.group("query").lower()) if len(w) > 4}
    context_words = set(_WORD_RE.findall(context.lower()))

    if context and query_words & context_words:
        return create_mock_chat_response(context.split("\n\n")[0])
    return create_mock_chat_response(TestConstants.REFUSAL)


@pytest.fixture
def chat_client_factory():
    """Factory for fake OpenAI clients exposing ``chat.completions.create``."""

    def _create_client(content: str | None = None, side_effect=None) -> Mock:
        client = Mock()
        create = client.chat.completions.create
        if side_effect is not None:
            create.side_effect = side_effect
        elif content is not None:
            create.return_value = create_mock_chat_response(content)
        else:
            create.side_effect = grounded_completion
        return client

    return _create_client


@pytest.fixture
def grounded_chat_client(chat_client_factory):
    """Fake chat client that answers from the prompt context or refuses."""
    return chat_client_factory()


@pytest.fixture(scope="session")
def mock_embedding_service():
    """Pre-configured MockEmbeddingService for consistent test embeddings."""
    return MockEmbeddingService()


@pytest.fixture
def bag_of_words_embedding_service():
    return BagOfWordsEmbeddingService()


@pytest.fixture
def failing_embedding_service():
    return FailingEmbeddingService()


@pytest.fixture
def mock_embeddings(mock_embedding_service):
    """Factory function to create mock embeddings using the service."""

    def _create_mock_embedding(text: str) -> np.ndarray:
        return mock_embedding_service.get_embedding(text)

    return _create_mock_embedding


@pytest.fixture
def text_chunker_factory():
    """Factory fixture that creates ``TextChunker`` instances on demand."""
    presets: dict[str, tuple[int, int]] = {
        "small": (
            TestConstants.SMALL_CHUNK_SIZE,
            TestConstants.SMALL_CHUNK_OVERLAP,
        ),
        "default": (
            TestConstants.DEFAULT_CHUNK_SIZE,
            TestConstants.DEFAULT_CHUNK_OVERLAP,
        ),
    }

    def _create_chunker(name: str = "default") -> TextChunker:
        chunk_size, overlap = presets[name]
        return TextChunker(chunk_size=chunk_size, overlap=overlap)

    return _create_chunker


@pytest.fixture
def sample_chunks():
    """Five short FAQ chunks without embeddings."""
    texts = [
        "Office hours are 9-5 Monday to Friday.",
        "Refunds are issued within 14 days of purchase.",
        "Shipping is free for orders above 50 dollars.",
        "Support is available by email and phone.",
        "Gift cards never expire.",
    ]
    offset = 0
    chunks = []
    for i, text in enumerate(texts):
        chunks.append(DocumentChunk(id=i, text=text, source_offset=offset))
        offset += len(text) + 1
    return chunks


@pytest.fixture
def pipeline_factory(bag_of_words_embedding_service, grounded_chat_client):
    """Factory for RAGPipeline instances with offline collaborators."""

    def _create_pipeline(
        document: str | None = TestConstants.OFFICE_HOURS_DOCUMENT,
        *,
        embedding_service=None,
        chat_client=None,
        chunk_size: int = TestConstants.DEFAULT_CHUNK_SIZE,
        overlap: int = TestConstants.DEFAULT_CHUNK_OVERLAP,
    ) -> RAGPipeline:
        pipeline = RAGPipeline(
            chunk_size=chunk_size,
            overlap=overlap,
            embedding_service=embedding_service or bag_of_words_embedding_service,
            synthesizer=AnswerSynthesizer(
                client=chat_client or grounded_chat_client,
                model="test-chat-model",
            ),
        )
        if document is not None:
            pipeline.process_text(document, source="faqs.txt")
        return pipeline

    return _create_pipeline


@pytest.fixture
def sqlite_store(tmp_path) -> SQLiteEscalationStore:
    """Escalation store backed by a temporary SQLite database."""
    return SQLiteEscalationStore(tmp_path / "escalations.db")


@pytest.fixture
def conversation_manager_factory(pipeline_factory, sqlite_store):
    """Factory for ConversationManager instances wired to offline collaborators."""

    def _create_manager(pipeline=None, store=None) -> ConversationManager:
        recorder = EscalationRecorder(store if store is not None else sqlite_store)
        state_machine = ConversationStateMachine(
            pipeline if pipeline is not None else pipeline_factory(),
            recorder,
        )
        return ConversationManager(state_machine)

    return _create_manager


@pytest.fixture
def conversation_manager(conversation_manager_factory):
    """Default ConversationManager over the office-hours corpus."""
    return conversation_manager_factory()
