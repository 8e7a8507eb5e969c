"""Vector store adapters and factory."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Literal, Protocol

from faqbot.config import config

from .base import MetadataFilter, matches_filter
from .faiss_store import FaissVectorStore
from .sqlite_store import SQLiteVectorStore

if TYPE_CHECKING:
    from pathlib import Path

    import numpy as np

    from faqbot.models import RetrievalResult, VectorRecord

VectorBackend = Literal["faiss", "sqlite"]


class VectorIndex(Protocol):
    """Contract shared by every vector index adapter."""

    dimension: int

    def upsert(self, records: Sequence[VectorRecord]) -> int: ...

    def query(
        self,
        vector: Sequence[float] | np.ndarray,
        k: int = 5,
        metadata_filter: MetadataFilter | None = None,
    ) -> list[RetrievalResult]: ...

    def stats(self) -> dict[str, Any]: ...

    def clear(self) -> None: ...


def get_vector_store(  # noqa: PLR0913
    store: VectorBackend | str = "faiss",
    *,
    db_path: Path | None = None,
    index_path: Path | None = None,
    dimension: int | None = None,
    namespace: str | None = None,
    raw_top_k_multiplier: int | None = None,
) -> FaissVectorStore | SQLiteVectorStore:
    """Return a configured and loaded vector store instance.

    Raises:
        ValueError: If an unsupported backend is requested.
    """
    if db_path is None:
        db_path = config.VECTOR_STORE_DB_PATH
    if dimension is None:
        dimension = config.VECTOR_DIMENSION
    if namespace is None:
        namespace = config.INDEX_NAMESPACE
    backend = store.lower()

    vector_store: FaissVectorStore | SQLiteVectorStore
    if backend == "faiss":
        vector_store = FaissVectorStore(
            db_path=db_path,
            index_path=(
                index_path if index_path is not None else config.FAISS_INDEX_PATH
            ),
            dimension=dimension,
            namespace=namespace,
            raw_top_k_multiplier=(
                raw_top_k_multiplier
                if raw_top_k_multiplier is not None
                else config.VECTOR_RAW_TOP_K_MULTIPLIER
            ),
        )
    elif backend == "sqlite":
        vector_store = SQLiteVectorStore(
            db_path=db_path,
            dimension=dimension,
            namespace=namespace,
        )
    else:
        msg = f"Unsupported vector store backend: {store}"
        raise ValueError(msg)

    vector_store.load()
    return vector_store


__all__ = [
    "FaissVectorStore",
    "MetadataFilter",
    "SQLiteVectorStore",
    "VectorBackend",
    "VectorIndex",
    "get_vector_store",
    "matches_filter",
]
