"""FAQ ingestion pipeline: validate -> batch -> embed -> upsert."""

import asyncio
import hashlib
from collections.abc import Sequence
from typing import Any, Literal

from .config import config
from .corpus import parse_entries
from .embeddings import EmbeddingProvider
from .errors import DimensionMismatch, EmbeddingFailure
from .models import BatchError, FAQEntry, IngestReport, VectorRecord
from .vector_store import VectorIndex

logger = config.get_logger(__name__)

IdScheme = Literal["position", "content"]


def record_ids(entry: FAQEntry, position: int, scheme: IdScheme) -> tuple[str, str]:
    """Derive the question and answer record ids for one entry.

    ``position`` ids (``q<i>``/``a<i>``) overwrite cleanly when the same corpus is
    re-ingested but collide when the corpus is reordered; ``content`` ids hash
    the pair and stay stable across reordering.

    Returns:
        Tuple of (question_id, answer_id).
    """
    if scheme == "position":
        return f"q{position}", f"a{position}"
    digest = hashlib.sha1(
        f"{entry.question}\x1f{entry.answer}".encode(),
        usedforsecurity=False,
    ).hexdigest()
    return f"q-{digest}", f"a-{digest}"


class IngestionPipeline:
    """Embeds FAQ entries and writes question and answer vectors in batches."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_index: VectorIndex,
        batch_size: int | None = None,
        dimension: int | None = None,
        id_scheme: IdScheme = "position",
        *,
        stop_on_error: bool = True,
    ) -> None:
        """Initialize the ingestion pipeline.

        Args:
            embedding_provider: Embeds questions and answers.
            vector_index: Receives one upsert per batch.
            batch_size: Entries per batch. If None, uses config.INGEST_BATCH_SIZE.
            dimension: Required embedding length. If None, uses the index
                dimension.
            id_scheme: ``"position"`` or ``"content"``.
            stop_on_error: Abort the run on the first failed batch. When False,
                failed batches are reported and skipped.
        """
        self.embedding_provider = embedding_provider
        self.vector_index = vector_index
        if batch_size is None:
            batch_size = config.INGEST_BATCH_SIZE
        self.batch_size = batch_size
        if self.batch_size <= 0:
            msg = f"batch_size must be positive, got {self.batch_size}"
            raise ValueError(msg)
        if dimension is None:
            dimension = vector_index.dimension
        self.dimension = dimension
        self.id_scheme = id_scheme
        self.stop_on_error = stop_on_error

    def _batches(self, entries: list[FAQEntry]) -> list[list[FAQEntry]]:
        return [
            entries[i : i + self.batch_size]
            for i in range(0, len(entries), self.batch_size)
        ]

    async def _embed(self, text: str) -> list[float]:
        embedding = await self.embedding_provider.embed(text)
        if len(embedding) != self.dimension:
            raise DimensionMismatch(self.dimension, len(embedding))
        return embedding

    async def _embed_entry(
        self, entry: FAQEntry, position: int
    ) -> tuple[VectorRecord, VectorRecord]:
        question_embedding = await self._embed(entry.question)
        answer_embedding = await self._embed(entry.answer)
        question_id, answer_id = record_ids(entry, position, self.id_scheme)
        return (
            VectorRecord(
                id=question_id,
                embedding=question_embedding,
                metadata={
                    "kind": "question",
                    "text": entry.question,
                    "paired_text": entry.answer,
                    "position": position,
                },
            ),
            VectorRecord(
                id=answer_id,
                embedding=answer_embedding,
                metadata={
                    "kind": "answer",
                    "text": entry.answer,
                    "paired_text": entry.question,
                    "position": position,
                },
            ),
        )

    async def _build_batch(
        self, batch: list[FAQEntry], offset: int
    ) -> list[VectorRecord]:
        """Embed every entry of a batch concurrently.

        Returns:
            Two records per entry, question first.

        Raises:
            DimensionMismatch: If any embedding has the wrong length.
            EmbeddingFailure: Naming every failed item, if any embedding failed.
        """
        outcomes: list[Any] = await asyncio.gather(
            *(
                self._embed_entry(entry, offset + i)
                for i, entry in enumerate(batch)
            ),
            return_exceptions=True,
        )

        records: list[VectorRecord] = []
        failed_items: list[int] = []
        messages: list[str] = []
        for i, outcome in enumerate(outcomes):
            if isinstance(outcome, DimensionMismatch):
                raise outcome
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                failed_items.append(offset + i)
                messages.append(f"item {offset + i}: {outcome}")
                continue
            records.extend(outcome)

        if failed_items:
            raise EmbeddingFailure(
                "Failed to embed " + "; ".join(messages), failed_items=failed_items
            )
        return records

    async def ingest(
        self, corpus: Sequence[FAQEntry] | Sequence[dict[str, Any]]
    ) -> IngestReport:
        """Embed and upsert a FAQ corpus.

        Returns:
            Totals for the run plus any batch-level errors.

        Raises:
            MalformedCorpus: Before any provider call, if the corpus is malformed.
            DimensionMismatch: If an embedding length differs from the index.
            EmbeddingFailure: If a batch fails and ``stop_on_error`` is set.
            IndexFailure: If an upsert fails.
        """
        entries = parse_entries(corpus)
        batches = self._batches(entries)
        report = IngestReport()
        logger.info(
            "Processing %d batches of up to %d items each",
            len(batches),
            self.batch_size,
        )

        offset = 0
        for batch_index, batch in enumerate(batches):
            logger.info("Processing batch %d/%d", batch_index + 1, len(batches))
            report.batches += 1
            try:
                records = await self._build_batch(batch, offset)
            except EmbeddingFailure as exc:
                logger.exception("Batch %d failed", batch_index + 1)
                report.errors.append(
                    BatchError(
                        batch_index=batch_index,
                        failed_items=exc.failed_items,
                        message=exc.message,
                    )
                )
                if self.stop_on_error:
                    raise
                offset += len(batch)
                continue

            written = await asyncio.to_thread(self.vector_index.upsert, records)
            report.vectors_written += written
            report.entries_processed += len(batch)
            offset += len(batch)
            logger.info("Progress: %d/%d items processed", offset, len(entries))

        logger.info(
            "Ingestion finished: %d items, %d vectors, %d failed batches",
            report.entries_processed,
            report.vectors_written,
            len(report.errors),
        )
        return report
