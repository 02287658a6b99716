"""Answer generation through the OpenAI chat completions API."""

from openai import OpenAI

from .config import config
from .embeddings import create_openai_client
from .exceptions import SynthesisError
from .models import Answer
from .normalizer import normalize

logger = config.get_logger(__name__)


class AnswerSynthesizer:
    """Sends an assembled prompt to the chat model and normalizes the reply.

    Each call is independent: no caching, and retries are left to the
    OpenAI client configuration.
    """

    def __init__(
        self,
        openai_api_key: str | None = None,
        model: str | None = None,
        client: OpenAI | None = None,
    ) -> None:
        self.client = client or create_openai_client(openai_api_key)
        self.model = model or config.CHAT_MODEL

    def synthesize(self, prompt: str) -> Answer:
        """Generate an answer for ``prompt``.

        Returns:
            Answer: The normalized model output.

        Raises:
            SynthesisError: If the completion call fails or yields no text.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=config.CHAT_MAX_TOKENS,
                temperature=config.CHAT_TEMPERATURE,
            )
        except Exception as exc:
            msg = "Completion service failed"
            raise SynthesisError(msg) from exc

        content = response.choices[0].message.content if response.choices else None
        answer = normalize(content) if content else ""
        if not answer:
            msg = "Completion service returned an empty answer"
            raise SynthesisError(msg)

        logger.debug("Synthesized answer of %d characters", len(answer))
        return Answer(text=answer)
