"""Guarded instruction template for grounded answering."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .normalizer import normalize

if TYPE_CHECKING:
    from .models import RetrievalResult

INSUFFICIENT_INFO_MARKER = "I do not have enough information"
INSUFFICIENT_INFO_ANSWER = f"{INSUFFICIENT_INFO_MARKER} to answer this question."
FOLLOW_UP_SUGGESTION = (
    "Please ask a different question related to the available content."
)
LEGAL_REFERRAL = (
    "It seems like you need legal assistance regarding deportation. "
    "Please consult a lawyer specializing in deportation matters."
)


def build_context_block(retrieval_result: RetrievalResult) -> str:
    """Join retrieved chunk texts, best match first, separated by blank lines.

    Returns:
        The context block; empty when nothing was retrieved.
    """
    texts = (normalize(chunk.text) for chunk, _score in retrieval_result)
    return "\n\n".join(text for text in texts if text)


def build_prompt(retrieval_result: RetrievalResult, normalized_query: str) -> str:
    """Embed retrieved context and the query into the answering template.

    The refusal and legal-referral sentences are quoted verbatim so the
    conversation layer can recognise them in the model output.

    Returns:
        str: The complete prompt for the completion service.
    """
    context = build_context_block(retrieval_result)

    return (
        "Context Information:\n"
        f"{context}\n\n"
        f"Query: {normalized_query}\n\n"
        "Instructions:\n"
        "1. Analyze the provided context carefully.\n"
        "2. Generate a concise, precise, and informative answer directly based "
        "on the context.\n"
        "3. Keep the response:\n"
        "   - Strictly limited to information from the provided context.\n"
        "   - Clear, easily understandable, and directly related to the query.\n\n"
        "Response Guidelines:\n"
        "- If the context does not contain sufficient information to answer "
        "the query:\n"
        f'   * Respond with: "{INSUFFICIENT_INFO_ANSWER}"\n'
        f'   * Suggest: "{FOLLOW_UP_SUGGESTION}"\n\n'
        "- If the query involves legal issues or deportation-related questions:\n"
        "   * Acknowledge the issue and suggest seeking legal help if the context "
        "doesn't contain detailed information.\n"
        f'   * Use a response like: "{LEGAL_REFERRAL}"\n\n'
        "- If the query is asking about the assistant itself, such as "
        '"What is this chatbot about?" or "What can this chatbot do?", and the '
        "context contains information about the assistant's purpose or "
        "functionality, provide a clear description of its role or capabilities "
        "based on the context.\n\n"
        "Constraints:\n"
        "- Do not reference the source document.\n"
        "- Do not disclose any details about the document's origin.\n"
        "- Provide only the most relevant information.\n\n"
        "Response Format:\n"
        "[Concise Answer]"
    )
