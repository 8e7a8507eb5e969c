"""faqbot - retrieval-augmented FAQ chat service."""

from .completion import CompletionService
from .conversation import ConversationManager
from .corpus import CorpusLoader
from .embeddings import EmbeddingService
from .ingestion import IngestionPipeline
from .models import (
    Answer,
    ConversationThread,
    ConversationTurn,
    FAQEntry,
    IngestReport,
    RetrievalResult,
    VectorRecord,
)
from .query_engine import QueryEngine
from .vector_store import FaissVectorStore, SQLiteVectorStore, get_vector_store

__all__ = [
    "Answer",
    "CompletionService",
    "ConversationManager",
    "ConversationThread",
    "ConversationTurn",
    "CorpusLoader",
    "EmbeddingService",
    "FAQEntry",
    "FaissVectorStore",
    "IngestReport",
    "IngestionPipeline",
    "QueryEngine",
    "RetrievalResult",
    "SQLiteVectorStore",
    "VectorRecord",
    "get_vector_store",
]
