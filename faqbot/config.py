"""Configuration management for FAQBot."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from .exceptions import ConfigError

env_path = Path(__file__).parent.parent / ".env"

if env_path.exists():
    load_dotenv(env_path)

ESCALATION_BACKENDS = frozenset({"sqlite", "sheetdb"})


class Config:
    """Application configuration loaded from environment variables."""

    # OpenAI Configuration
    @classmethod
    def get_openai_api_key(cls) -> str:
        """Read the key at call time so tests and late-loaded .env files apply.

        Returns:
            The OPENAI_API_KEY value, or an empty string when unset.
        """
        return os.getenv("OPENAI_API_KEY", "")

    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL")
    OPENAI_MAX_RETRIES: int = int(os.getenv("OPENAI_MAX_RETRIES", "2"))
    OPENAI_TIMEOUT: float = float(os.getenv("OPENAI_TIMEOUT", "30.0"))

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    OPENAI_LOG_LEVEL: str = os.getenv("OPENAI_LOG_LEVEL", "WARNING").upper()
    HTTPX_LOG_LEVEL: str = os.getenv("HTTPX_LOG_LEVEL", "WARNING").upper()

    # Application Settings
    DOCUMENT_PATH: Path = Path(os.getenv("DOCUMENT_PATH", "faqs.pdf"))

    # RAG Configuration
    CHUNK_SIZE: int = int(os.getenv("CHUNK_SIZE", "1000"))
    CHUNK_OVERLAP: int = int(os.getenv("CHUNK_OVERLAP", "200"))
    RETRIEVAL_TOP_K: int = int(os.getenv("RETRIEVAL_TOP_K", "4"))
    EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")

    # Chat Model Configuration
    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gpt-4.1-nano-2025-04-14")
    CHAT_MAX_TOKENS: int = int(os.getenv("CHAT_MAX_TOKENS", "500"))
    CHAT_TEMPERATURE: float = float(os.getenv("CHAT_TEMPERATURE", "0.7"))

    # Escalation Storage Configuration
    ESCALATION_BACKEND: str = os.getenv("ESCALATION_BACKEND", "sqlite").lower()
    ESCALATION_DB_PATH: Path = Path(
        os.getenv("ESCALATION_DB_PATH", "data/escalations.db")
    )
    SHEETDB_API_ADDRESS: str | None = os.getenv("SHEETDB_API_ADDRESS")
    SHEETDB_TIMEOUT: float = float(os.getenv("SHEETDB_TIMEOUT", "10.0"))

    # API Header Configuration
    API_USER_AGENT: str = os.getenv("API_USER_AGENT", "FAQBot/1.0")

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration values.

        Raises:
            ConfigError: If a required credential or collaborator setting
                is missing.
        """
        if not cls.get_openai_api_key():
            msg = (
                "OPENAI_API_KEY is required. Please set it in .env file or environment."
            )
            raise ConfigError(msg)

        if cls.ESCALATION_BACKEND not in ESCALATION_BACKENDS:
            msg = (
                f"Unsupported ESCALATION_BACKEND '{cls.ESCALATION_BACKEND}'. "
                f"Expected one of: {', '.join(sorted(ESCALATION_BACKENDS))}."
            )
            raise ConfigError(msg)

        if cls.ESCALATION_BACKEND == "sheetdb" and not cls.SHEETDB_API_ADDRESS:
            msg = "SHEETDB_API_ADDRESS is required when ESCALATION_BACKEND=sheetdb."
            raise ConfigError(msg)

        if cls.CHUNK_OVERLAP >= cls.CHUNK_SIZE:
            msg = (
                f"CHUNK_OVERLAP ({cls.CHUNK_OVERLAP}) must be smaller than "
                f"CHUNK_SIZE ({cls.CHUNK_SIZE})."
            )
            raise ConfigError(msg)

    @classmethod
    def setup_logging(cls) -> None:
        """Configure root logging once per process.

        LOG_LEVEL controls the application loggers; the OpenAI and httpx
        clients get their own levels. Unknown level names fall back to the
        defaults instead of failing startup.
        """
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )

        client_levels = {"openai": cls.OPENAI_LOG_LEVEL, "httpx": cls.HTTPX_LOG_LEVEL}
        for logger_name, level_name in client_levels.items():
            logging.getLogger(logger_name).setLevel(
                getattr(logging, level_name, logging.WARNING)
            )

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Return the module logger; handlers come from ``setup_logging``."""  # noqa: DOC201
        return logging.getLogger(name)

    @classmethod
    def get_api_headers(cls) -> dict[str, str]:
        """Default headers for outbound OpenAI and SheetDB requests.

        Returns:
            Header mapping; empty when API_USER_AGENT is blank.
        """
        if not cls.API_USER_AGENT:
            return {}
        return {"User-Agent": cls.API_USER_AGENT}


config = Config()
