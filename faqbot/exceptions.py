"""Error taxonomy for FAQBot.

Fatal errors (``ConfigError``, ``BuildError``) stop the process before it
serves traffic. The rest are recoverable and handled per turn.
"""


class FAQBotError(Exception):
    """Base class for all FAQBot errors."""


class ConfigError(FAQBotError, ValueError):
    """A required credential or collaborator setting is missing."""


class BuildError(FAQBotError):
    """The corpus could not be loaded or indexed at startup."""


class RetrievalError(FAQBotError):
    """Retrieval failed for a single query."""


class IndexNotReadyError(RetrievalError):
    """The vector index has not been built yet."""


class SynthesisError(FAQBotError):
    """The completion service failed to produce an answer."""


class RecordError(FAQBotError):
    """An escalation record could not be persisted."""
