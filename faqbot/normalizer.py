"""Free-text canonicalization shared by indexing, retrieval and synthesis."""

import re

from .config import config

logger = config.get_logger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_DISALLOWED_RE = re.compile(r"[^\w\s.,!?()-]", re.ASCII)


def normalize(text: object) -> str:
    """Trim, collapse whitespace and drop characters outside the allowed set.

    Allowed characters are ASCII word characters, whitespace and ``.,!?()-``.
    Invalid input never raises.

    Returns:
        The normalized text, or an empty string for non-string or empty input.
    """
    if not isinstance(text, str) or not text:
        logger.warning("Invalid content for normalization: %s", type(text).__name__)
        return ""

    collapsed = _WHITESPACE_RE.sub(" ", text.strip())
    cleaned = _DISALLOWED_RE.sub("", collapsed)
    # removing a character can leave two spaces side by side
    return _WHITESPACE_RE.sub(" ", cleaned).strip()
