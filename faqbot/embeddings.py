"""OpenAI embeddings service."""

from typing import Protocol

import numpy as np
from openai import OpenAI

from .config import config

logger = config.get_logger(__name__)


class Embedder(Protocol):
    """Embedding collaborator used by the index build and the retriever."""

    def get_embedding(self, text: str) -> np.ndarray: ...

    def get_embeddings_batch(self, texts: list[str]) -> list[np.ndarray]: ...


def create_openai_client(api_key: str | None = None) -> OpenAI:
    """Build an OpenAI client with the configured retry and timeout policy.

    Returns:
        OpenAI: Client shared by the embedding and completion collaborators.
    """
    default_headers = config.get_api_headers()
    return OpenAI(
        api_key=api_key or config.get_openai_api_key(),
        base_url=config.OPENAI_BASE_URL,
        default_headers=default_headers or None,
        max_retries=config.OPENAI_MAX_RETRIES,
        timeout=config.OPENAI_TIMEOUT,
    )


class EmbeddingService:
    """Embeds chunk and query text with the OpenAI embeddings endpoint.

    Index build and query time must use the same instance (or at least the
    same model) so vectors stay comparable.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        """Create the client and pick the embedding model.

        Args:
            api_key: OpenAI API key. If None, OPENAI_API_KEY is used.
            model: Embedding model name. If None, uses config.EMBEDDING_MODEL.
        """
        self.client = create_openai_client(api_key)
        self.model = model or config.EMBEDDING_MODEL

    def _embed(self, payload: str | list[str]) -> list[np.ndarray]:
        response = self.client.embeddings.create(model=self.model, input=payload)
        return [np.array(item.embedding) for item in response.data]

    def get_embedding(self, text: str) -> np.ndarray:
        """Embed one query or chunk.

        Returns:
            np.ndarray: The embedding vector.
        """
        try:
            (embedding,) = self._embed(text)
        except Exception:
            logger.exception("Embedding request failed (input: %.80s)", text)
            raise
        return embedding

    def get_embeddings_batch(
        self,
        texts: list[str],
        batch_size: int = 100,
    ) -> list[np.ndarray]:
        """Embed many texts, ``batch_size`` per request, preserving order.

        Returns:
            list[np.ndarray]: One vector per input text.
        """
        embeddings: list[np.ndarray] = []
        batches = [texts[i : i + batch_size] for i in range(0, len(texts), batch_size)]

        for number, batch in enumerate(batches, start=1):
            try:
                embeddings.extend(self._embed(batch))
            except Exception:
                logger.exception("Embedding batch %d of %d failed", number, len(batches))
                raise
            logger.debug("Embedded batch %d of %d", number, len(batches))

        logger.info("Embedded %d texts in %d requests", len(embeddings), len(batches))
        return embeddings
