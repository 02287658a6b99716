"""Query-time retrieval against the startup-built index."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .config import config
from .exceptions import IndexNotReadyError, RetrievalError
from .normalizer import normalize
from .vector_store import DEFAULT_TOP_K

if TYPE_CHECKING:
    from .embeddings import Embedder
    from .models import RetrievalResult
    from .vector_store import FaissVectorIndex

logger = config.get_logger(__name__)


class Retriever:
    """Normalizes and embeds a query, then asks the index for top-k chunks."""

    def __init__(self, embedding_service: Embedder) -> None:
        self.embedding_service = embedding_service

    def retrieve(
        self,
        index: FaissVectorIndex | None,
        raw_query: str,
        top_k: int = DEFAULT_TOP_K,
    ) -> RetrievalResult:
        """Find the chunks most similar to ``raw_query``.

        Args:
            index: The built index, or None while startup is still running.
            raw_query: Unnormalized user text.
            top_k: Maximum number of chunks to return.

        Returns:
            Ranked (chunk, score) pairs; empty for a query with no usable text.

        Raises:
            IndexNotReadyError: If the index has not been built yet.
            RetrievalError: If the query cannot be embedded.
        """
        if index is None:
            msg = "Vector index is not built yet"
            raise IndexNotReadyError(msg)

        query = normalize(raw_query)
        if not query:
            return []

        try:
            query_embedding = self.embedding_service.get_embedding(query)
        except Exception as exc:
            msg = "Embedding service failed for query"
            raise RetrievalError(msg) from exc

        results = index.query(query_embedding, top_k=top_k)
        logger.info("Retrieved %d chunks for query", len(results))
        for chunk, score in results:
            logger.debug("  chunk %d (score: %.4f)", chunk.id, score)
        return results
