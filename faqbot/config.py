"""Configuration management for the FAQ chat service."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigurationError

env_path = Path(__file__).parent.parent / ".env"

if env_path.exists():
    load_dotenv(env_path)

SUPPORTED_VECTOR_BACKENDS = frozenset({"faiss", "sqlite"})


class Config:
    """Application configuration loaded from environment variables."""

    # OpenAI Configuration
    @classmethod
    def get_openai_api_key(cls) -> str:
        """Get OpenAI API key from environment variables.

        Returns:
            OpenAI API key from environment or empty string if not set.
        """
        return os.getenv("OPENAI_API_KEY", "")

    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL")

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    OPENAI_LOG_LEVEL: str = os.getenv("OPENAI_LOG_LEVEL", "WARNING").upper()

    # Model Configuration
    EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gpt-3.5-turbo")
    CHAT_MAX_TOKENS: int = int(os.getenv("CHAT_MAX_TOKENS", "500"))

    # Retrieval and Ingestion Configuration
    RETRIEVAL_TOP_K: int = int(os.getenv("RETRIEVAL_TOP_K", "5"))
    INGEST_BATCH_SIZE: int = int(os.getenv("INGEST_BATCH_SIZE", "10"))
    VECTOR_DIMENSION: int = int(os.getenv("VECTOR_DIMENSION", "1536"))
    HISTORY_MAX_TURNS: int = int(os.getenv("HISTORY_MAX_TURNS", "0"))
    FAQ_CORPUS_PATH: Path = Path(os.getenv("FAQ_CORPUS_PATH", "data/faq.json"))

    # Vector Store Configuration
    INDEX_NAME: str = os.getenv("INDEX_NAME", "faq")
    INDEX_NAMESPACE: str = os.getenv("INDEX_NAMESPACE", "")
    VECTOR_BACKEND: str = os.getenv("VECTOR_BACKEND", "faiss").lower()
    VECTOR_STORE_DB_PATH: Path = Path(
        os.getenv("VECTOR_STORE_DB_PATH", "data/vector_store.db")
    )
    FAISS_INDEX_PATH: Path = Path(
        os.getenv("FAISS_INDEX_PATH", "data/faiss/index.faiss")
    )
    VECTOR_RAW_TOP_K_MULTIPLIER: int = int(
        os.getenv("VECTOR_RAW_TOP_K_MULTIPLIER", "2")
    )

    # API Header Configuration
    API_USER_AGENT: str = os.getenv("API_USER_AGENT", "faqbot/0.1")

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration values.

        Every problem is collected so the error names all of them at once.

        Raises:
            ConfigurationError: If a required setting is missing or invalid.
        """
        problems: list[str] = []
        if not cls.get_openai_api_key():
            problems.append(
                "OPENAI_API_KEY is required. "
                "Please set it in .env file or environment."
            )
        if not cls.INDEX_NAME.strip():
            problems.append("INDEX_NAME must not be empty.")
        if cls.VECTOR_BACKEND not in SUPPORTED_VECTOR_BACKENDS:
            problems.append(f"Unsupported VECTOR_BACKEND: {cls.VECTOR_BACKEND}")
        if cls.VECTOR_DIMENSION <= 0:
            problems.append("VECTOR_DIMENSION must be a positive integer.")
        if cls.RETRIEVAL_TOP_K <= 0:
            problems.append("RETRIEVAL_TOP_K must be a positive integer.")
        if cls.INGEST_BATCH_SIZE <= 0:
            problems.append("INGEST_BATCH_SIZE must be a positive integer.")
        if cls.HISTORY_MAX_TURNS < 0:
            problems.append("HISTORY_MAX_TURNS must not be negative.")

        if problems:
            raise ConfigurationError(" ".join(problems))

    @classmethod
    def setup_logging(cls) -> None:
        """Setup basic logging configuration.

        Configure logging once at application startup with:
        - Console output for all levels
        - Simple, readable format
        - Configurable level via environment variable
        """
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )

        # The OpenAI SDK logs every request through httpx
        openai_level = getattr(logging, cls.OPENAI_LOG_LEVEL, logging.WARNING)
        logging.getLogger("openai").setLevel(openai_level)
        logging.getLogger("httpx").setLevel(openai_level)

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger with the specified name.

        Args:
            name: Logger name (typically __name__)

        Returns:
            Logger instance
        """
        return logging.getLogger(name)

    @classmethod
    def get_api_headers(cls) -> dict[str, str]:
        """Build default headers for outbound API calls.

        Returns:
            Mapping of header names to values used on outbound HTTP requests.
        """
        headers: dict[str, str] = {}

        if cls.API_USER_AGENT:
            headers["User-Agent"] = cls.API_USER_AGENT

        return headers


config = Config()
