"""Document loading and text chunking functionality."""

import re
from bisect import bisect_right
from collections.abc import Sequence
from pathlib import Path

import pypdf

from .config import config
from .models import Document, DocumentChunk
from .normalizer import normalize

logger = config.get_logger(__name__)

# Coarsest to finest; an empty separator splits into single characters.
DEFAULT_SEPARATORS: tuple[str, ...] = (
    r"\n\s*\n",
    r"[.!?]+\s+",
    r"\s+",
    "",
)


class DocumentLoader:
    """Handles loading of PDF and TXT documents."""

    @staticmethod
    def load_pdf(file_path: Path) -> str:
        """Load text content from a PDF file.

        Returns:
            The extracted text of all pages, separated by blank lines.
        """
        try:
            with file_path.open("rb") as file:
                pdf_reader = pypdf.PdfReader(file)
                pages = [page.extract_text() or "" for page in pdf_reader.pages]
        except Exception:
            logger.exception("Error loading PDF %s", file_path)
            raise
        else:
            logger.info("Loaded %d pages from %s", len(pages), file_path.name)
            return "\n\n".join(pages)

    @staticmethod
    def load_txt(file_path: Path) -> str:
        """Load text content from a TXT file.

        Returns:
            The extracted text content from the TXT file as a string.
        """
        try:
            with file_path.open(encoding="utf-8") as file:
                text = file.read()
            logger.info("Successfully loaded TXT file")
        except Exception:
            logger.exception("Error loading TXT %s", file_path)
            raise
        else:
            return text

    @classmethod
    def load_document(cls, file_path: Path) -> Document:
        """Load document based on file extension.

        Args:
            file_path: Path to the document file.

        Returns:
            The loaded document, identified by its file name.

        Raises:
            ValueError: If the file type is not supported.
        """
        file_ext = file_path.suffix.lower()
        if file_ext == ".pdf":
            return Document(source=file_path.name, text=cls.load_pdf(file_path))
        if file_ext == ".txt":
            return Document(source=file_path.name, text=cls.load_txt(file_path))
        msg = f"Unsupported file type: {file_ext}"
        raise ValueError(msg)


class TextChunker:
    """Recursive separator-based chunking with fixed character overlap.

    The text is first cut into atomic units: spans are split on the coarsest
    separator and only spans that are still too long are split again with the
    next finer one. Units are then packed greedily into chunks of at most
    ``chunk_size`` characters, and every chunk after the first starts
    ``overlap`` characters before the end of its predecessor.

    Units are capped at ``chunk_size - overlap`` characters so that a chunk
    starting inside the overlap window can always take at least one more unit.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        overlap: int = 200,
        separators: Sequence[str] = DEFAULT_SEPARATORS,
    ) -> None:
        """Initialize the TextChunker with chunk size and overlap.

        Args:
            chunk_size: Maximum number of characters per chunk.
            overlap: Number of characters repeated at the start of each
                following chunk.
            separators: Regular expressions tried from coarsest to finest.

        Raises:
            ValueError: If the size/overlap combination is invalid.
        """
        if chunk_size <= 0:
            msg = f"chunk_size must be positive, got {chunk_size}"
            raise ValueError(msg)
        if overlap < 0 or overlap >= chunk_size:
            msg = (
                f"overlap must be between 0 and chunk_size - 1, "
                f"got overlap={overlap}, chunk_size={chunk_size}"
            )
            raise ValueError(msg)

        self.chunk_size = chunk_size
        self.overlap = overlap
        self.separators = tuple(separators)
        self._patterns = [re.compile(sep) if sep else None for sep in self.separators]

    @property
    def max_unit_size(self) -> int:
        return self.chunk_size - self.overlap

    def split(self, document: Document) -> list[DocumentChunk]:
        """Normalize a document and split it into overlapping chunks.

        Returns:
            Chunks with offsets relative to the normalized text.
        """
        return self.chunk_text(normalize(document.text), source=document.source)

    def chunk_text(self, text: str, source: str = "document") -> list[DocumentChunk]:
        """Split text into overlapping chunks.

        Returns:
            A list of DocumentChunk objects with contiguous 0-based ids.
        """
        if not text:
            return []

        boundaries = self._unit_boundaries(text)
        chunks: list[DocumentChunk] = []
        start = 0
        previous_end = 0

        while True:
            fit = bisect_right(boundaries, start + self.chunk_size) - 1
            end = boundaries[fit] if fit >= 0 else 0
            if end <= previous_end:
                # the next unit alone is oversized; pass it through whole
                end = boundaries[bisect_right(boundaries, previous_end)]

            chunks.append(
                DocumentChunk(
                    id=len(chunks),
                    text=text[start:end],
                    source_offset=start,
                    source=source,
                )
            )

            if end >= len(text):
                break
            previous_end = end
            start = max(0, end - self.overlap)

        logger.info("Text split into %d chunks", len(chunks))
        return chunks

    def _unit_boundaries(self, text: str) -> list[int]:
        """End offsets of the atomic units tiling ``text``, ascending."""
        boundaries: list[int] = []
        self._split_span(text, 0, len(text), 0, boundaries)
        return boundaries

    def _split_span(
        self,
        text: str,
        start: int,
        end: int,
        level: int,
        boundaries: list[int],
    ) -> None:
        if end - start <= self.max_unit_size or level >= len(self._patterns):
            boundaries.append(end)
            return

        pattern = self._patterns[level]
        if pattern is None:
            boundaries.extend(range(start + 1, end + 1))
            return

        piece_start = start
        for match in pattern.finditer(text, start, end):
            cut = match.end()
            if cut <= piece_start or cut >= end:
                continue
            self._split_span(text, piece_start, cut, level + 1, boundaries)
            piece_start = cut

        self._split_span(text, piece_start, end, level + 1, boundaries)
