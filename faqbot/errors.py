"""Exception taxonomy shared by the ingestion, retrieval and chat layers.

Every error carries a short ``kind`` tag so callers (the HTTP layer, the CLI,
log lines) can classify a failure without matching on class names.
"""

from __future__ import annotations


class FaqbotError(Exception):
    """Base class for all errors raised by this package."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(FaqbotError, ValueError):
    """Missing or invalid provider credentials, index name or tunables."""

    kind = "configuration"


class MalformedCorpus(FaqbotError, ValueError):
    """The FAQ corpus does not have the ``{faqs: [{question, answer}]}`` shape."""

    kind = "malformed_corpus"


class DimensionMismatch(FaqbotError):
    """An embedding length differs from the dimension of the index."""

    kind = "dimension_mismatch"

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Embedding dimension {actual} does not match index dimension {expected}"
        )
        self.expected = expected
        self.actual = actual


class EmbeddingFailure(FaqbotError):
    """The embedding provider failed to embed a text."""

    kind = "embedding_failure"

    def __init__(self, message: str, failed_items: list[int] | None = None) -> None:
        super().__init__(message)
        self.failed_items = list(failed_items or [])


class IndexFailure(FaqbotError):
    """The vector index rejected an upsert, query or stats call."""

    kind = "index_failure"


class RetrievalFailure(FaqbotError):
    """Embedding the query or searching the index failed."""

    kind = "retrieval_failure"


class CompletionFailure(FaqbotError):
    """The completion provider failed to produce an answer."""

    kind = "completion_failure"


class InvalidQuery(FaqbotError, ValueError):
    """The query is empty or whitespace only."""

    kind = "invalid_query"


class LastThreadError(FaqbotError):
    """Attempt to delete the only remaining conversation thread."""

    kind = "last_thread"


class ThreadNotFound(FaqbotError, KeyError):
    """No conversation thread exists with the given id."""

    kind = "thread_not_found"

    def __init__(self, thread_id: int) -> None:
        super().__init__(f"Conversation thread {thread_id} does not exist")
        self.thread_id = thread_id

    def __str__(self) -> str:
        return self.message
