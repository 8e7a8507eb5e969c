"""Test configuration and fixtures for faqbot tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Mock providers (embedding, completion) and OpenAI API responses
- Vector store fixtures
- Engine, pipeline and conversation manager factories
"""

import asyncio
import hashlib
import json
from pathlib import Path
from unittest.mock import Mock

import numpy as np
import pytest

from faqbot import (
    CompletionService,
    ConversationManager,
    EmbeddingService,
    FAQEntry,
    FaissVectorStore,
    IngestionPipeline,
    QueryEngine,
    SQLiteVectorStore,
    VectorRecord,
)
from faqbot.errors import EmbeddingFailure

PROJECT_ROOT = Path(__file__).resolve().parent.parent
TEST_DATA_DIR = PROJECT_ROOT / "tests" / "data"


class TestConstants:
    """Centralized test constants to avoid repetition across test files."""

    # API Configuration
    TEST_API_KEY = "test-key"
    TEST_EMBEDDING_MODEL = "text-embedding-3-small"
    TEST_CHAT_MODEL = "gpt-3.5-turbo"
    DEFAULT_EMBEDDING_DIMENSION = 384

    # Retrieval and ingestion
    DEFAULT_TOP_K = 5
    SMALL_BATCH_SIZE = 2


class MockEmbeddingService:
    """Mock embedding provider for testing without API calls.

    Generates deterministic embeddings based on text content hash, so equal
    texts always map to the same vector. Texts listed in ``fail_on`` raise
    ``EmbeddingFailure``.
    """

    def __init__(
        self,
        dimension: int = TestConstants.DEFAULT_EMBEDDING_DIMENSION,
        fail_on: set[str] | None = None,
    ) -> None:
        self.dimension = dimension
        self.fail_on = fail_on or set()
        self.calls: list[str] = []

    def vector(self, text: str) -> np.ndarray:
        """Generate deterministic mock embedding based on text hash."""
        seed = int.from_bytes(
            hashlib.sha256(text.lower().encode("utf-8")).digest()[:8],
            byteorder="big",
            signed=False,
        )
        rng = np.random.default_rng(seed)
        embedding = rng.normal(0, 1, self.dimension)
        return (embedding / np.linalg.norm(embedding)).astype(np.float32)

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.fail_on:
            msg = f"Cannot embed {text!r}"
            raise EmbeddingFailure(msg)
        return self.vector(text).tolist()


class RecordingCompletionService:
    """Mock completion provider that records prompts and echoes the user turn."""

    def __init__(
        self,
        reply: str | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls: list[dict] = []

    async def complete(self, system_prompt, history, user_turn) -> str:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "history": list(history),
                "user_turn": user_turn,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.reply is not None:
            return self.reply
        return f"Echo: {user_turn}"


def create_mock_openai_response(embeddings: list[list[float]]) -> Mock:
    """Create a mock OpenAI embeddings API response.

    Args:
        embeddings: List of embedding vectors to return.

    Returns:
        Mock object representing OpenAI embeddings API response.
    """
    mock_response = Mock()
    mock_response.data = [Mock(embedding=emb) for emb in embeddings]
    return mock_response


def create_mock_chat_response(content: str | None) -> Mock:
    """Create a mock OpenAI chat completion response.

    Args:
        content: The content for the chat completion response.

    Returns:
        Mock object representing OpenAI chat completion response.
    """
    mock_response = Mock()
    mock_response.choices = [Mock(message=Mock(content=content))]
    return mock_response


@pytest.fixture
def embeddings_response_factory():
    """Factory for mock OpenAI embeddings responses."""
    return create_mock_openai_response


@pytest.fixture
def chat_response_factory():
    """Factory for mock OpenAI chat completion responses."""
    return create_mock_chat_response


@pytest.fixture
def embedding_service() -> EmbeddingService:
    """EmbeddingService with a test key; patch its client before calling it."""
    return EmbeddingService(
        api_key=TestConstants.TEST_API_KEY,
        model=TestConstants.TEST_EMBEDDING_MODEL,
    )


@pytest.fixture
def completion_service() -> CompletionService:
    """CompletionService with a test key; patch its client before calling it."""
    return CompletionService(
        api_key=TestConstants.TEST_API_KEY,
        model=TestConstants.TEST_CHAT_MODEL,
        max_tokens=200,
    )


@pytest.fixture
def mock_embedding_service():
    """Fresh MockEmbeddingService with an empty call log."""
    return MockEmbeddingService()


@pytest.fixture
def embedding_provider_factory():
    """Factory for MockEmbeddingService with a custom dimension or failures."""

    def _create(
        dimension: int = TestConstants.DEFAULT_EMBEDDING_DIMENSION,
        fail_on: set[str] | None = None,
    ) -> MockEmbeddingService:
        return MockEmbeddingService(dimension=dimension, fail_on=fail_on)

    return _create


@pytest.fixture
def record_factory(mock_embedding_service):
    """Factory for VectorRecords embedded with the mock provider."""

    def _create(
        record_id: str, kind: str, text: str, paired_text: str = ""
    ) -> VectorRecord:
        return VectorRecord(
            id=record_id,
            embedding=mock_embedding_service.vector(text),
            metadata={"kind": kind, "text": text, "paired_text": paired_text},
        )

    return _create


@pytest.fixture
def completion_factory():
    """Factory for RecordingCompletionService instances."""

    def _create(reply=None, error=None, delay=0.0) -> RecordingCompletionService:
        return RecordingCompletionService(reply=reply, error=error, delay=delay)

    return _create


@pytest.fixture
def recording_completion(completion_factory):
    """Completion provider echoing its user turn."""
    return completion_factory()


@pytest.fixture
def temp_faiss_store(tmp_path) -> FaissVectorStore:
    """Create temporary FAISS vector store for testing."""
    return FaissVectorStore(
        db_path=tmp_path / "faiss_meta.db",
        index_path=tmp_path / "faiss" / "index.faiss",
        dimension=TestConstants.DEFAULT_EMBEDDING_DIMENSION,
    )


@pytest.fixture
def temp_sqlite_store(tmp_path) -> SQLiteVectorStore:
    """Create temporary SQLite vector store for testing."""
    return SQLiteVectorStore(
        db_path=tmp_path / "test_store.db",
        dimension=TestConstants.DEFAULT_EMBEDDING_DIMENSION,
    )


@pytest.fixture(params=["faiss", "sqlite"])
def temp_vector_store(request, temp_faiss_store, temp_sqlite_store):
    """Each vector store backend in turn."""
    if request.param == "faiss":
        return temp_faiss_store
    return temp_sqlite_store


@pytest.fixture(scope="session")
def sample_faq_path():
    """Path to the sample FAQ corpus."""
    return TEST_DATA_DIR / "sample_faq.json"


@pytest.fixture
def sample_corpus(sample_faq_path) -> list[FAQEntry]:
    """The sample FAQ corpus as entries."""
    with sample_faq_path.open(encoding="utf-8") as f:
        data = json.load(f)
    return [FAQEntry(**item) for item in data["faqs"]]


@pytest.fixture
def corpus_factory():
    """Factory producing synthetic corpora of n entries."""

    def _create(count: int) -> list[FAQEntry]:
        return [
            FAQEntry(question=f"Question number {i}?", answer=f"Answer number {i}.")
            for i in range(count)
        ]

    return _create


@pytest.fixture
def ingestion_pipeline_factory(mock_embedding_service, temp_faiss_store):
    """Factory for IngestionPipeline instances over the mock provider."""

    def _create(
        vector_index=None,
        embedding_provider=None,
        batch_size: int = TestConstants.SMALL_BATCH_SIZE,
        **kwargs,
    ) -> IngestionPipeline:
        return IngestionPipeline(
            embedding_provider=embedding_provider or mock_embedding_service,
            vector_index=vector_index or temp_faiss_store,
            batch_size=batch_size,
            **kwargs,
        )

    return _create


@pytest.fixture
def query_engine_factory(
    mock_embedding_service, temp_faiss_store, recording_completion
):
    """Factory for QueryEngine instances over mock providers."""

    def _create(
        vector_index=None,
        embedding_provider=None,
        completion_provider=None,
        top_k: int = TestConstants.DEFAULT_TOP_K,
        history_policy=None,
    ) -> QueryEngine:
        return QueryEngine(
            embedding_provider=embedding_provider or mock_embedding_service,
            vector_index=vector_index or temp_faiss_store,
            completion_provider=completion_provider or recording_completion,
            top_k=top_k,
            history_policy=history_policy,
        )

    return _create


@pytest.fixture
def conversation_manager_factory(query_engine_factory):
    """Factory for ConversationManager instances."""

    def _create(completion_provider=None, **engine_kwargs) -> ConversationManager:
        engine = query_engine_factory(
            completion_provider=completion_provider, **engine_kwargs
        )
        return ConversationManager(engine)

    return _create


@pytest.fixture
def conversation_manager(conversation_manager_factory):
    """ConversationManager over an empty index and an echoing completion."""
    return conversation_manager_factory()
