"""Main RAG pipeline: one-time Load -> Split -> Embed -> Index, then answer."""

import threading
from pathlib import Path

from pypdf.errors import PyPdfError

from .config import config
from .document_processing import DocumentLoader, TextChunker
from .embeddings import Embedder, EmbeddingService
from .exceptions import BuildError
from .models import Answer, Document, RetrievalResult
from .normalizer import normalize
from .prompts import build_prompt
from .retriever import Retriever
from .synthesis import AnswerSynthesizer
from .vector_store import FaissVectorIndex

logger = config.get_logger(__name__)


class RAGPipeline:
    """Builds the corpus index at startup and answers grounded questions.

    Until a document has been processed the pipeline is not ready and every
    retrieval raises ``IndexNotReadyError``.
    """

    def __init__(  # noqa: PLR0913
        self,
        openai_api_key: str | None = None,
        chunk_size: int | None = None,
        overlap: int | None = None,
        top_k: int | None = None,
        embedding_service: Embedder | None = None,
        synthesizer: AnswerSynthesizer | None = None,
    ) -> None:
        """Initialize the pipeline and its collaborators.

        Args:
            openai_api_key: OpenAI API key for the default collaborators.
            chunk_size: Size of text chunks. If None, uses config.CHUNK_SIZE.
            overlap: Overlap between chunks. If None, uses config.CHUNK_OVERLAP.
            top_k: Chunks retrieved per query. If None, uses
                config.RETRIEVAL_TOP_K.
            embedding_service: Embedding collaborator. Defaults to the OpenAI
                EmbeddingService.
            synthesizer: Completion collaborator. Defaults to an OpenAI
                AnswerSynthesizer.
        """
        if chunk_size is None:
            chunk_size = config.CHUNK_SIZE
        if overlap is None:
            overlap = config.CHUNK_OVERLAP

        self.top_k = top_k if top_k is not None else config.RETRIEVAL_TOP_K
        self.chunker = TextChunker(chunk_size=chunk_size, overlap=overlap)
        self.embedding_service = embedding_service or EmbeddingService(
            api_key=openai_api_key
        )
        self.synthesizer = synthesizer or AnswerSynthesizer(
            openai_api_key=openai_api_key
        )
        self.retriever = Retriever(self.embedding_service)
        self.index: FaissVectorIndex | None = None
        self.build_error: BuildError | None = None

    @property
    def is_ready(self) -> bool:
        return self.index is not None

    def process_document(self, file_path: Path) -> None:
        """Load a document from disk and build the index over it.

        Raises:
            BuildError: If the document cannot be read or indexed.
        """
        logger.info("Starting RAG pipeline for document: %s", file_path)
        try:
            document = DocumentLoader.load_document(file_path)
        except (OSError, ValueError, PyPdfError) as exc:
            msg = f"Could not load document {file_path}"
            raise BuildError(msg) from exc

        self.build(document)

    def start_build(self, file_path: Path) -> threading.Thread:
        """Build the index from ``file_path`` on a daemon thread.

        Turns that arrive before the build finishes get ``IndexNotReadyError``.
        A failed build is kept in ``build_error`` and reported by every later
        retrieval.

        Returns:
            threading.Thread: The started build thread.
        """
        thread = threading.Thread(
            target=self._build_in_background,
            args=(file_path,),
            name="faqbot-index-build",
            daemon=True,
        )
        thread.start()
        return thread

    def _build_in_background(self, file_path: Path) -> None:
        try:
            self.process_document(file_path)
        except BuildError as exc:
            logger.exception("Background index build failed for %s", file_path)
            self.build_error = exc

    def process_text(self, text: str, source: str = "document") -> None:
        """Build the index from an in-memory document."""
        self.build(Document(source=source, text=text))

    def build(self, document: Document) -> None:
        """Chunk, embed and index ``document``.

        Raises:
            BuildError: If the index is already built, the document is empty
                or the embedding service fails.
        """
        if self.index is not None:
            msg = "Vector index is already built; corpus updates are not supported"
            raise BuildError(msg)

        chunks = self.chunker.split(document)
        if not chunks:
            msg = f"Document {document.source} has no indexable text"
            raise BuildError(msg)

        self.index = FaissVectorIndex.build(chunks, self.embedding_service)
        logger.info("Document processing completed successfully")

    def retrieve(self, question: str, top_k: int | None = None) -> RetrievalResult:
        """Query the index.

        Returns:
            A list of (DocumentChunk, similarity score) tuples, best first.

        Raises:
            BuildError: If the background build failed.
        """
        if self.build_error is not None:
            msg = "Vector index build failed; restart the service"
            raise BuildError(msg) from self.build_error
        return self.retriever.retrieve(
            self.index, question, top_k=top_k if top_k is not None else self.top_k
        )

    def answer(self, question: str) -> Answer:
        """Retrieve context for ``question`` and synthesize a grounded answer.

        Returns:
            Answer: The normalized answer text.

        Raises:
            IndexNotReadyError: If no document has been processed yet.
            BuildError: If the background build failed.
            RetrievalError: If the question cannot be embedded.
            SynthesisError: If the completion service fails.
        """
        results = self.retrieve(question)
        prompt = build_prompt(results, normalize(question))
        return self.synthesizer.synthesize(prompt)
