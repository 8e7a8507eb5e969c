"""Shared helpers for SQLite-backed vector stores."""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

import numpy as np

from faqbot.config import config
from faqbot.errors import DimensionMismatch, IndexFailure
from faqbot.models import VectorRecord

VALID_KINDS = {"question", "answer"}
CORE_METADATA_KEYS = {"kind", "text", "paired_text"}

logger = config.get_logger(__name__)

MetadataFilter = Mapping[str, Any]


def matches_filter(
    metadata: Mapping[str, Any],
    metadata_filter: MetadataFilter | None,
) -> bool:
    """Check a record's metadata against an equality/membership filter.

    A filter value that is a list, tuple or set matches any of its members;
    any other value must be equal.

    Returns:
        True if every filter key matches.
    """
    if not metadata_filter:
        return True
    for key, expected in metadata_filter.items():
        value = metadata.get(key)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


class BaseSQLiteStore:
    """Common schema management and helpers for vector stores using SQLite metadata."""

    backend = "base"

    def __init__(
        self,
        db_path: Path,
        dimension: int,
        namespace: str = "",
    ) -> None:
        """Initialize metadata store and ensure schema exists."""
        if dimension <= 0:
            msg = f"Vector dimension must be positive, got {dimension}"
            raise ValueError(msg)
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(exist_ok=True, parents=True)
        self.dimension = dimension
        self.namespace = namespace
        self._lock = threading.RLock()
        self._create_tables()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _create_tables(self) -> None:
        """Create the records table if it doesn't exist."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS records (
                        vector_id INTEGER PRIMARY KEY AUTOINCREMENT,
                        record_id TEXT NOT NULL,
                        namespace TEXT NOT NULL DEFAULT '',
                        kind TEXT NOT NULL CHECK(kind IN ('question','answer')),
                        text TEXT NOT NULL,
                        paired_text TEXT NOT NULL DEFAULT '',
                        extra TEXT,
                        embedding BLOB,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        UNIQUE (namespace, record_id)
                    )
                """)
                cursor.execute(
                    "CREATE INDEX IF NOT EXISTS idx_records_namespace_kind "
                    "ON records(namespace, kind)"
                )
                conn.commit()
        except sqlite3.Error as exc:
            logger.exception("Error creating vector store schema")
            raise IndexFailure(str(exc)) from exc

    def _check_dimension(self, embedding: np.ndarray) -> None:
        if embedding.ndim != 1 or embedding.shape[0] != self.dimension:
            actual = embedding.shape[0] if embedding.ndim == 1 else embedding.size
            raise DimensionMismatch(self.dimension, int(actual))

    @staticmethod
    def _unique_records(records: Sequence[VectorRecord]) -> list[VectorRecord]:
        """Collapse records sharing an id; the last one wins.

        Returns:
            One record per id, in order of first appearance.
        """
        by_id: dict[str, VectorRecord] = {}
        for record in records:
            by_id[record.id] = record
        return list(by_id.values())

    @staticmethod
    def _validate_record(record: VectorRecord) -> None:
        kind = record.metadata.get("kind")
        if kind not in VALID_KINDS:
            msg = f"Record {record.id} has unsupported kind {kind!r}"
            raise IndexFailure(msg)
        if not record.id:
            msg = "Record id must not be empty"
            raise IndexFailure(msg)

    @staticmethod
    def _split_metadata(
        metadata: Mapping[str, Any],
    ) -> tuple[str, str, str, str | None]:
        """Split metadata into the indexed columns and a JSON blob of extras.

        Returns:
            Tuple of (kind, text, paired_text, extra_json).
        """
        extra = {
            key: value
            for key, value in metadata.items()
            if key not in CORE_METADATA_KEYS
        }
        return (
            str(metadata["kind"]),
            str(metadata.get("text", "")),
            str(metadata.get("paired_text", "")),
            json.dumps(extra, sort_keys=True) if extra else None,
        )

    def _upsert_row(
        self,
        cursor: sqlite3.Cursor,
        record: VectorRecord,
        *,
        embedding_blob: bytes | None = None,
    ) -> tuple[int, bool]:
        """Insert or overwrite the row for ``record.id`` in this namespace.

        Returns:
            Tuple of (vector_id, replaced) where replaced is True for overwrites.
        """
        kind, text, paired_text, extra = self._split_metadata(record.metadata)
        cursor.execute(
            "SELECT vector_id FROM records WHERE namespace = ? AND record_id = ?",
            (self.namespace, record.id),
        )
        row = cursor.fetchone()
        if row is not None:
            vector_id = int(row[0])
            cursor.execute(
                """
                UPDATE records
                SET kind = ?, text = ?, paired_text = ?, extra = ?,
                    embedding = ?, updated_at = CURRENT_TIMESTAMP
                WHERE vector_id = ?
                """,
                (kind, text, paired_text, extra, embedding_blob, vector_id),
            )
            return vector_id, True

        cursor.execute(
            """
            INSERT INTO records (
                record_id, namespace, kind, text, paired_text, extra, embedding
            )
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (record.id, self.namespace, kind, text, paired_text, extra, embedding_blob),
        )
        if cursor.lastrowid is None:
            msg = f"Failed to insert record {record.id}"
            raise IndexFailure(msg)
        return int(cursor.lastrowid), False

    @staticmethod
    def _metadata_from_row(
        kind: str,
        text: str,
        paired_text: str,
        extra: str | None,
    ) -> dict[str, Any]:
        metadata: dict[str, Any] = json.loads(extra) if extra else {}
        metadata.update({"kind": kind, "text": text, "paired_text": paired_text})
        return metadata

    def _fetch_rows(
        self,
        cursor: sqlite3.Cursor,
        vector_ids: Iterable[int],
    ) -> dict[int, tuple[str, dict[str, Any]]]:
        """Fetch (record_id, metadata) for vector ids in this namespace.

        Returns:
            Mapping of vector id to (record_id, metadata).
        """
        ids = [int(vector_id) for vector_id in vector_ids]
        if not ids:
            return {}
        placeholders = ",".join("?" * len(ids))
        cursor.execute(
            f"""
            SELECT vector_id, record_id, kind, text, paired_text, extra
            FROM records
            WHERE namespace = ? AND vector_id IN ({placeholders})
            """,  # noqa: S608
            (self.namespace, *ids),
        )
        rows: dict[int, tuple[str, dict[str, Any]]] = {}
        for vector_id, record_id, kind, text, paired_text, extra in cursor.fetchall():
            metadata = self._metadata_from_row(kind, text, paired_text, extra)
            rows[int(vector_id)] = (record_id, metadata)
        return rows

    def count(self) -> int:
        """Number of records in this store's namespace."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM records WHERE namespace = ?",
                (self.namespace,),
            ).fetchone()
        return int(row[0])

    def stats(self) -> dict[str, Any]:
        """Describe the index: total count, dimension and per-namespace counts.

        Raises:
            IndexFailure: If the metadata store cannot be read.
        """
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT namespace, COUNT(*) FROM records GROUP BY namespace"
                ).fetchall()
        except sqlite3.Error as exc:
            logger.exception("Error reading vector store stats")
            raise IndexFailure(str(exc)) from exc

        namespaces = {namespace: {"count": int(total)} for namespace, total in rows}
        return {
            "count": sum(entry["count"] for entry in namespaces.values()),
            "dimension": self.dimension,
            "namespaces": namespaces,
        }

    @staticmethod
    def _as_vector(embedding: Sequence[float] | np.ndarray) -> np.ndarray:
        return np.asarray(embedding, dtype="float32")
