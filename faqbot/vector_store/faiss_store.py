"""FAISS-backed vector storage with SQLite metadata."""

from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from pathlib import Path

import faiss
import numpy as np

from faqbot.config import config
from faqbot.errors import DimensionMismatch, IndexFailure
from faqbot.models import RetrievalResult, VectorRecord
from faqbot.vector_store.base import BaseSQLiteStore, MetadataFilter, matches_filter

logger = config.get_logger(__name__)


class FaissVectorStore(BaseSQLiteStore):
    """Vector storage using FAISS for embeddings and SQLite for metadata."""

    backend = "faiss"

    def __init__(
        self,
        db_path: Path = Path("data/vector_store.db"),
        index_path: Path = Path("data/faiss/index.faiss"),
        dimension: int = 1536,
        namespace: str = "",
        raw_top_k_multiplier: int = 2,
    ) -> None:
        """Configure FAISS-backed vector store."""
        self.index_path = Path(index_path)
        self.index_path.parent.mkdir(exist_ok=True, parents=True)
        self.raw_top_k_multiplier = max(1, raw_top_k_multiplier)

        super().__init__(db_path, dimension, namespace)
        self.index: faiss.IndexIDMap = self._new_index()

    def _new_index(self) -> faiss.IndexIDMap:
        """Create an empty cosine-similarity index."""
        return faiss.IndexIDMap(faiss.IndexFlatIP(self.dimension))

    @staticmethod
    def _normalize_embedding(embedding: np.ndarray) -> np.ndarray:
        """Normalize embedding for cosine similarity using inner product search.

        Returns:
            Normalized embedding vector.
        """
        vector = np.array(embedding, dtype="float32").reshape(1, -1)
        if np.linalg.norm(vector) == 0:
            return vector
        faiss.normalize_L2(vector)
        return vector

    def upsert(self, records: Sequence[VectorRecord]) -> int:
        """Add or overwrite records in the FAISS index and metadata store.

        Returns:
            Number of distinct record ids written.

        Raises:
            DimensionMismatch: If an embedding length differs from the index.
            IndexFailure: If the metadata store or index rejects the write.
        """
        records = self._unique_records(records)
        if not records:
            return 0

        vectors: list[np.ndarray] = []
        for record in records:
            self._validate_record(record)
            vector = self._as_vector(record.embedding)
            self._check_dimension(vector)
            vectors.append(self._normalize_embedding(vector))

        with self._lock:
            vector_ids: list[int] = []
            replaced_ids: list[int] = []
            try:
                with self._connect() as conn:
                    cursor = conn.cursor()
                    for record in records:
                        vector_id, replaced = self._upsert_row(cursor, record)
                        vector_ids.append(vector_id)
                        if replaced:
                            replaced_ids.append(vector_id)
                    conn.commit()
            except sqlite3.Error as exc:
                logger.exception("Error writing vector metadata")
                raise IndexFailure(str(exc)) from exc

            try:
                if replaced_ids:
                    self.index.remove_ids(np.asarray(replaced_ids, dtype="int64"))
                self.index.add_with_ids(  # pyright: ignore[reportCallIssue]
                    np.vstack(vectors),
                    np.asarray(vector_ids, dtype="int64"),
                )
            except RuntimeError as exc:
                logger.exception("FAISS index rejected upsert")
                raise IndexFailure(str(exc)) from exc

            self.save()

        logger.info(
            "Upserted %d vectors to FAISS index (%d overwritten)",
            len(vector_ids),
            len(replaced_ids),
        )
        return len(vector_ids)

    def query(
        self,
        vector: Sequence[float] | np.ndarray,
        k: int = 5,
        metadata_filter: MetadataFilter | None = None,
    ) -> list[RetrievalResult]:
        """Search the k most similar records, optionally filtered by metadata.

        Over-fetches ``raw_top_k_multiplier * k`` candidates and widens the
        search until k matches are found or the index is exhausted.

        Returns:
            Results ranked by descending cosine similarity.

        Raises:
            DimensionMismatch: If the query vector has the wrong length.
            IndexFailure: If the index or metadata store cannot be read.
        """
        query_vector = self._as_vector(vector)
        self._check_dimension(query_vector)
        normalized_query = self._normalize_embedding(query_vector)

        with self._lock:
            total = self.index.ntotal
            if total == 0 or k <= 0:
                return []

            raw_top_k = min(max(k, self.raw_top_k_multiplier * k), total)
            try:
                with self._connect() as conn:
                    cursor = conn.cursor()
                    while True:
                        results = self._search(
                            cursor, normalized_query, raw_top_k, metadata_filter
                        )
                        if len(results) >= k or raw_top_k >= total:
                            break
                        raw_top_k = min(raw_top_k * 2, total)
            except sqlite3.Error as exc:
                logger.exception("Error reading vector metadata")
                raise IndexFailure(str(exc)) from exc
            except RuntimeError as exc:
                logger.exception("FAISS search failed")
                raise IndexFailure(str(exc)) from exc

        return results[:k]

    def _search(
        self,
        cursor: sqlite3.Cursor,
        normalized_query: np.ndarray,
        raw_top_k: int,
        metadata_filter: MetadataFilter | None,
    ) -> list[RetrievalResult]:
        scores, vector_ids = self.index.search(  # pyright: ignore[reportCallIssue]
            normalized_query, raw_top_k
        )
        hits = [
            (int(vector_id), float(score))
            for score, vector_id in zip(scores[0], vector_ids[0], strict=True)
            if int(vector_id) != -1  # faiss returns -1 for empty results
        ]
        rows = self._fetch_rows(cursor, (vector_id for vector_id, _ in hits))

        results: list[RetrievalResult] = []
        for vector_id, score in hits:
            if vector_id not in rows:
                continue
            record_id, metadata = rows[vector_id]
            if not matches_filter(metadata, metadata_filter):
                continue
            results.append(
                RetrievalResult(
                    id=record_id,
                    text=metadata["text"],
                    score=score,
                    metadata=metadata,
                )
            )
        return results

    def clear(self) -> None:
        """Delete every record in this store's namespace.

        Raises:
            IndexFailure: If the metadata store cannot be updated.
        """
        with self._lock:
            try:
                with self._connect() as conn:
                    cursor = conn.cursor()
                    cursor.execute(
                        "SELECT vector_id FROM records WHERE namespace = ?",
                        (self.namespace,),
                    )
                    vector_ids = [int(row[0]) for row in cursor.fetchall()]
                    cursor.execute(
                        "DELETE FROM records WHERE namespace = ?", (self.namespace,)
                    )
                    conn.commit()
            except sqlite3.Error as exc:
                logger.exception("Error clearing vector metadata")
                raise IndexFailure(str(exc)) from exc

            if vector_ids:
                self.index.remove_ids(np.asarray(vector_ids, dtype="int64"))
            self.save()
        logger.info(
            "Cleared %d vectors from namespace %r", len(vector_ids), self.namespace
        )

    def save(self) -> None:
        """Persist FAISS index to disk."""
        self.index_path.parent.mkdir(exist_ok=True, parents=True)
        faiss.write_index(self.index, str(self.index_path))
        logger.debug("Saved FAISS index to %s", self.index_path)

    def load(self) -> None:
        """Load the FAISS index from disk, or start with an empty one.

        Raises:
            DimensionMismatch: If the stored index has a different dimension.
        """
        if not self.index_path.exists():
            logger.warning(
                "FAISS index not found at %s. Start with an empty index.",
                self.index_path,
            )
            self.index = self._new_index()
            return

        loaded_index = faiss.read_index(str(self.index_path))
        if loaded_index.d != self.dimension:
            raise DimensionMismatch(self.dimension, int(loaded_index.d))
        if not isinstance(loaded_index, (faiss.IndexIDMap, faiss.IndexIDMap2)):
            logger.warning(
                "Loaded FAISS index is %s; wrapping with IndexIDMap to enable IDs",
                type(loaded_index).__name__,
            )
            loaded_index = faiss.IndexIDMap(loaded_index)
        self.index = loaded_index
        logger.info(
            "Loaded FAISS index from %s with %d vectors",
            self.index_path,
            loaded_index.ntotal,
        )
