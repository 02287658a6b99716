"""In-memory FAISS index over document chunks."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import faiss
import numpy as np

from .config import config
from .exceptions import BuildError

if TYPE_CHECKING:
    from .embeddings import Embedder
    from .models import DocumentChunk, RetrievalResult

DEFAULT_TOP_K = 4

logger = config.get_logger(__name__)


def _normalize_rows(vectors: np.ndarray) -> np.ndarray:
    """L2-normalize each row so inner product equals cosine similarity.

    Zero rows are left as they are and score 0 against everything.

    Returns:
        A contiguous float32 copy of ``vectors``.
    """
    matrix = np.ascontiguousarray(np.atleast_2d(vectors), dtype="float32").copy()
    norms = np.linalg.norm(matrix, axis=1)
    nonzero = norms > 0
    matrix[nonzero] /= norms[nonzero, None]
    return matrix


class FaissVectorIndex:
    """Cosine-similarity index built once and read-only afterwards.

    Chunk ids double as FAISS vector ids. Searches never mutate the index, so
    concurrent callers need no locking.
    """

    backend = "faiss"

    def __init__(
        self,
        chunks: Sequence[DocumentChunk],
        embeddings: Sequence[np.ndarray],
    ) -> None:
        """Index chunks with their precomputed embeddings.

        Raises:
            BuildError: If there is nothing to index or the embeddings do not
                line up with the chunks.
        """
        if not chunks:
            msg = "Cannot build a vector index without chunks"
            raise BuildError(msg)
        if len(chunks) != len(embeddings):
            msg = (
                f"Got {len(embeddings)} embeddings for {len(chunks)} chunks; "
                "expected one per chunk"
            )
            raise BuildError(msg)

        try:
            matrix = np.vstack([np.asarray(emb, dtype="float32") for emb in embeddings])
        except ValueError as exc:
            msg = "Embeddings do not share a single dimension"
            raise BuildError(msg) from exc

        self.chunks: dict[int, DocumentChunk] = {chunk.id: chunk for chunk in chunks}
        self.dimension = int(matrix.shape[1])

        self.index = faiss.IndexIDMap(faiss.IndexFlatIP(self.dimension))
        ids = np.asarray([chunk.id for chunk in chunks], dtype="int64")
        self.index.add_with_ids(_normalize_rows(matrix), ids)  # pyright: ignore[reportCallIssue]
        logger.info(
            "Built FAISS index with %d vectors of dimension %d",
            self.index.ntotal,
            self.dimension,
        )

    @classmethod
    def build(
        cls,
        chunks: Sequence[DocumentChunk],
        embedding_service: Embedder,
    ) -> FaissVectorIndex:
        """Embed every chunk and index the result.

        Returns:
            FaissVectorIndex: The ready-to-query index.

        Raises:
            BuildError: If embedding fails or the chunks cannot be indexed.
        """
        texts = [chunk.text for chunk in chunks]
        try:
            embeddings = embedding_service.get_embeddings_batch(texts)
        except Exception as exc:
            logger.exception("Embedding failed while building the index")
            msg = "Embedding service failed during index build"
            raise BuildError(msg) from exc
        return cls(chunks, embeddings)

    def __len__(self) -> int:
        return len(self.chunks)

    def query(
        self,
        query_embedding: np.ndarray,
        top_k: int = DEFAULT_TOP_K,
    ) -> RetrievalResult:
        """Return the ``top_k`` chunks most similar to the query embedding.

        Every stored vector is scored so that ties at the cut-off are resolved
        by ascending chunk id rather than by FAISS internals.

        Returns:
            Up to ``top_k`` (chunk, cosine similarity) pairs, best first.

        Raises:
            ValueError: If ``top_k`` is not positive or the embedding
                dimension does not match the index.
        """
        if top_k <= 0:
            msg = f"top_k must be positive, got {top_k}"
            raise ValueError(msg)

        query_vector = _normalize_rows(np.asarray(query_embedding))
        if query_vector.shape != (1, self.dimension):
            msg = (
                f"Query embedding dimension {query_vector.shape[-1]} does not "
                f"match index dimension {self.dimension}"
            )
            raise ValueError(msg)

        scores, vector_ids = self.index.search(query_vector, self.index.ntotal)  # pyright: ignore[reportCallIssue]

        ranked = sorted(
            (
                (float(score), int(vector_id))
                for score, vector_id in zip(scores[0], vector_ids[0], strict=True)
                if int(vector_id) != -1
            ),
            key=lambda pair: (-pair[0], pair[1]),
        )
        return [(self.chunks[vector_id], score) for score, vector_id in ranked[:top_k]]
