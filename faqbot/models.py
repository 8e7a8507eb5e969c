"""Data models for the FAQ chat service."""

import datetime
from dataclasses import dataclass, field
from typing import Any, Literal

import numpy as np

RecordKind = Literal["question", "answer"]
Role = Literal["user", "assistant"]

DEFAULT_THREAD_TITLE = "New Chat"


def _utc_now() -> str:
    return datetime.datetime.now(tz=datetime.UTC).isoformat()


@dataclass(frozen=True)
class FAQEntry:
    """A single question/answer pair from the FAQ corpus."""

    question: str
    answer: str


@dataclass
class VectorRecord:
    """An embedded FAQ question or answer ready to be upserted."""

    id: str
    embedding: np.ndarray | list[float]
    metadata: dict[str, Any]


@dataclass
class RetrievalResult:
    """A record returned by a similarity search, with its score."""

    id: str
    text: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "score": self.score,
            "metadata": dict(self.metadata),
        }


@dataclass
class ConversationTurn:
    """Represents a single turn in the conversation."""

    role: Role
    text: str
    timestamp: str = field(default_factory=_utc_now)


@dataclass
class ConversationThread:
    """An independent chat session: an ordered list of turns."""

    id: int
    title: str = DEFAULT_THREAD_TITLE
    turns: list[ConversationTurn] = field(default_factory=list)


@dataclass
class Answer:
    """Generated answer plus the retrieval results it was grounded on."""

    text: str
    sources: list[RetrievalResult] = field(default_factory=list)


@dataclass
class BatchError:
    """Failure of one ingestion batch."""

    batch_index: int
    failed_items: list[int]
    message: str


@dataclass
class IngestReport:
    """Summary of an ingestion run."""

    entries_processed: int = 0
    vectors_written: int = 0
    batches: int = 0
    errors: list[BatchError] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors
