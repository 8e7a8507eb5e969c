"""Wiring of providers, vector store and pipelines from configuration."""

from .completion import CompletionService
from .config import config
from .embeddings import EmbeddingService
from .history import history_policy_for
from .ingestion import IdScheme, IngestionPipeline
from .query_engine import QueryEngine
from .vector_store import FaissVectorStore, SQLiteVectorStore, get_vector_store

logger = config.get_logger(__name__)


def build_vector_store() -> FaissVectorStore | SQLiteVectorStore:
    """Open the configured vector store.

    Raises:
        ConfigurationError: If the configuration is invalid.
    """
    config.validate()
    vector_store = get_vector_store(config.VECTOR_BACKEND)
    logger.info(
        "Using %s vector storage for index %r", vector_store.backend, config.INDEX_NAME
    )
    return vector_store


def build_query_engine(
    vector_store: FaissVectorStore | SQLiteVectorStore | None = None,
) -> QueryEngine:
    """Create a QueryEngine backed by OpenAI and the configured vector store.

    Raises:
        ConfigurationError: If the configuration is invalid.
    """
    config.validate()
    return QueryEngine(
        embedding_provider=EmbeddingService(),
        vector_index=vector_store or build_vector_store(),
        completion_provider=CompletionService(),
        top_k=config.RETRIEVAL_TOP_K,
        history_policy=history_policy_for(config.HISTORY_MAX_TURNS),
    )


def build_ingestion_pipeline(
    vector_store: FaissVectorStore | SQLiteVectorStore | None = None,
    id_scheme: IdScheme = "position",
    *,
    stop_on_error: bool = True,
) -> IngestionPipeline:
    """Create an IngestionPipeline writing to the configured vector store.

    Raises:
        ConfigurationError: If the configuration is invalid.
    """
    config.validate()
    return IngestionPipeline(
        embedding_provider=EmbeddingService(),
        vector_index=vector_store or build_vector_store(),
        batch_size=config.INGEST_BATCH_SIZE,
        dimension=config.VECTOR_DIMENSION,
        id_scheme=id_scheme,
        stop_on_error=stop_on_error,
    )
