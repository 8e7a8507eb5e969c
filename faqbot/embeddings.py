"""OpenAI embeddings service."""

from typing import Protocol

from openai import AsyncOpenAI, OpenAIError

from .config import config
from .errors import EmbeddingFailure

logger = config.get_logger(__name__)


class EmbeddingProvider(Protocol):
    """Anything that can turn text into a fixed-length vector."""

    async def embed(self, text: str) -> list[float]: ...


class EmbeddingService:
    """Handles OpenAI embeddings generation."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        """Initialize the EmbeddingService with OpenAI API key and model.

        Args:
            api_key: OpenAI API key. If None,
                reads from OPENAI_API_KEY environment variable.
            model: Embedding model name. If None, uses config.EMBEDDING_MODEL.
        """
        api_key = api_key or config.get_openai_api_key()
        default_headers = config.get_api_headers()
        # Retries are left to callers
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=config.OPENAI_BASE_URL,
            default_headers=default_headers or None,
            max_retries=0,
        )
        self.model = model or config.EMBEDDING_MODEL

    async def embed(self, text: str) -> list[float]:
        """Get embedding for a single text.

        Args:
            text: The input text to generate an embedding for.

        Returns:
            The embedding vector for the input text.

        Raises:
            EmbeddingFailure: If the provider call fails or returns no data.
        """
        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=text,
            )
        except OpenAIError as exc:
            logger.exception("Error generating embedding")
            raise EmbeddingFailure(str(exc)) from exc

        if not response.data:
            msg = "Embedding provider returned no data"
            raise EmbeddingFailure(msg)
        return list(response.data[0].embedding)
