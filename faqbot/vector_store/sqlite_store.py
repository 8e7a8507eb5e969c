"""SQLite-based vector storage with brute-force NumPy search."""

from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from pathlib import Path

import numpy as np

from faqbot.config import config
from faqbot.errors import IndexFailure
from faqbot.models import RetrievalResult, VectorRecord
from faqbot.vector_store.base import BaseSQLiteStore, MetadataFilter, matches_filter

logger = config.get_logger(__name__)


class SQLiteVectorStore(BaseSQLiteStore):
    """Vector storage keeping embeddings as float32 blobs next to their metadata."""

    backend = "sqlite"

    def __init__(
        self,
        db_path: Path = Path("data/vector_store.db"),
        dimension: int = 1536,
        namespace: str = "",
    ) -> None:
        """Initialize the SQLiteVectorStore.

        Args:
            db_path: Path to the SQLite database file.
            dimension: Length every stored embedding must have.
            namespace: Partition of the index this store reads and writes.
        """
        super().__init__(db_path, dimension, namespace)

    def upsert(self, records: Sequence[VectorRecord]) -> int:
        """Add or overwrite records.

        Returns:
            Number of distinct record ids written.

        Raises:
            IndexFailure: If the metadata store rejects the write.
        """
        records = self._unique_records(records)
        if not records:
            return 0

        blobs: list[bytes] = []
        for record in records:
            self._validate_record(record)
            vector = self._as_vector(record.embedding)
            self._check_dimension(vector)
            blobs.append(vector.tobytes())

        replaced = 0
        with self._lock:
            try:
                with self._connect() as conn:
                    cursor = conn.cursor()
                    for record, blob in zip(records, blobs, strict=True):
                        _vector_id, was_replaced = self._upsert_row(
                            cursor, record, embedding_blob=blob
                        )
                        replaced += int(was_replaced)
                    conn.commit()
            except sqlite3.Error as exc:
                logger.exception("Error writing vectors to SQLite store")
                raise IndexFailure(str(exc)) from exc

        logger.info(
            "Upserted %d vectors to SQLite store (%d overwritten)",
            len(records),
            replaced,
        )
        return len(records)

    def query(
        self,
        vector: Sequence[float] | np.ndarray,
        k: int = 5,
        metadata_filter: MetadataFilter | None = None,
    ) -> list[RetrievalResult]:
        """Rank all matching records in the namespace by cosine similarity.

        Returns:
            At most k results, best first.

        Raises:
            IndexFailure: If the metadata store cannot be read.
        """
        query_vector = self._as_vector(vector)
        self._check_dimension(query_vector)
        if k <= 0:
            return []

        with self._lock:
            try:
                with self._connect() as conn:
                    rows = conn.execute(
                        """
                        SELECT record_id, kind, text, paired_text, extra, embedding
                        FROM records
                        WHERE namespace = ? AND embedding IS NOT NULL
                        ORDER BY vector_id
                        """,
                        (self.namespace,),
                    ).fetchall()
            except sqlite3.Error as exc:
                logger.exception("Error reading vectors from SQLite store")
                raise IndexFailure(str(exc)) from exc

        candidates: list[tuple[str, dict]] = []
        embeddings: list[np.ndarray] = []
        for record_id, kind, text, paired_text, extra, blob in rows:
            metadata = self._metadata_from_row(kind, text, paired_text, extra)
            if not matches_filter(metadata, metadata_filter):
                continue
            candidates.append((record_id, metadata))
            embeddings.append(np.frombuffer(blob, dtype="float32"))

        if not candidates:
            return []

        matrix = np.vstack(embeddings)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query_vector)
        norms[norms == 0] = 1.0
        scores = matrix @ query_vector / norms

        top = np.argsort(-scores, kind="stable")[:k]
        return [
            RetrievalResult(
                id=candidates[i][0],
                text=candidates[i][1]["text"],
                score=float(scores[i]),
                metadata=candidates[i][1],
            )
            for i in top
        ]

    def clear(self) -> None:
        """Delete every record in this store's namespace."""
        with self._lock:
            try:
                with self._connect() as conn:
                    deleted = conn.execute(
                        "DELETE FROM records WHERE namespace = ?", (self.namespace,)
                    ).rowcount
                    conn.commit()
            except sqlite3.Error as exc:
                logger.exception("Error clearing SQLite store")
                raise IndexFailure(str(exc)) from exc
        logger.info("Cleared %d vectors from namespace %r", deleted, self.namespace)

    def save(self) -> None:
        """Writes are committed on upsert; nothing to flush."""

    def load(self) -> None:
        """Log the number of stored vectors."""
        logger.info("Loaded SQLite vector store with %d vectors", self.count())
