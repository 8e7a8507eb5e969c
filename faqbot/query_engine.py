"""Retrieval-augmented answering: retrieve, compose a grounded prompt, complete."""

import asyncio
from collections.abc import Sequence

from .completion import CompletionProvider
from .config import config
from .embeddings import EmbeddingProvider
from .errors import (
    CompletionFailure,
    DimensionMismatch,
    EmbeddingFailure,
    IndexFailure,
    InvalidQuery,
    RetrievalFailure,
)
from .history import FullHistory, HistoryPolicy
from .models import Answer, ConversationTurn, RetrievalResult
from .vector_store import VectorIndex

logger = config.get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant answering questions about a product FAQ.\n"
    "Use the CONTEXT in the user's message to answer the QUESTION asked.\n"
    "Provide the specific details the context contains. If the context does not "
    "contain the answer, say truthfully that you do not know instead of making "
    "one up.\n"
    'Use the "history" of earlier messages in this conversation to understand '
    "what has already been discussed."
)

NO_CONTEXT_PLACEHOLDER = "(no matching FAQ entries)"
RETRIEVED_KINDS = ("question", "answer")


def serialize_context(results: Sequence[RetrievalResult]) -> str:
    """Render retrieval results as numbered question/answer blocks.

    Returns:
        The context block embedded in the synthetic user turn.
    """
    if not results:
        return NO_CONTEXT_PLACEHOLDER

    blocks = []
    for i, result in enumerate(results):
        if result.metadata.get("kind") == "answer":
            question = result.metadata.get("paired_text", "")
            answer = result.text
        else:
            question = result.text
            answer = result.metadata.get("paired_text", "")
        blocks.append(
            f"[Context {i + 1}] (Similarity: {result.score:.4f}, "
            f"matched {result.metadata.get('kind', 'unknown')})\n"
            f"Question: {question}\n"
            f"Answer: {answer}"
        )
    return "\n\n".join(blocks)


def build_user_turn(query: str, results: Sequence[RetrievalResult]) -> str:
    """Combine the retrieved context and the literal question, context first.

    Returns:
        The synthetic user turn sent to the completion provider.
    """
    return f"CONTEXT:\n{serialize_context(results)}\n\nQUESTION: {query}"


class QueryEngine:
    """Answers a query from retrieved FAQ context and explicit conversation history.

    The engine holds no conversation state; every call receives the history it
    should use, so one instance can serve many threads concurrently.
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_index: VectorIndex,
        completion_provider: CompletionProvider,
        top_k: int | None = None,
        history_policy: HistoryPolicy | None = None,
    ) -> None:
        """Initialize the QueryEngine.

        Args:
            embedding_provider: Embeds the query.
            vector_index: Searched for similar FAQ records.
            completion_provider: Generates the final answer.
            top_k: Number of records to retrieve. If None, uses
                config.RETRIEVAL_TOP_K.
            history_policy: Selects which prior turns are sent. Defaults to
                the whole history.
        """
        self.embedding_provider = embedding_provider
        self.vector_index = vector_index
        self.completion_provider = completion_provider
        self.top_k = top_k if top_k is not None else config.RETRIEVAL_TOP_K
        self.history_policy = history_policy or FullHistory()

    async def retrieve(self, query: str) -> list[RetrievalResult]:
        """Embed the query and fetch the top-k question and answer records.

        Returns:
            Retrieval results ranked by descending similarity.

        Raises:
            RetrievalFailure: If embedding or the index search fails.
        """
        try:
            query_embedding = await self.embedding_provider.embed(query)
            results = await asyncio.to_thread(
                self.vector_index.query,
                query_embedding,
                self.top_k,
                {"kind": list(RETRIEVED_KINDS)},
            )
        except (EmbeddingFailure, IndexFailure, DimensionMismatch) as exc:
            raise RetrievalFailure(exc.message) from exc
        except Exception as exc:
            logger.exception("Unexpected error during retrieval")
            raise RetrievalFailure(str(exc)) from exc

        logger.info("Retrieved %d contexts", len(results))
        for i, result in enumerate(results):
            logger.debug(
                "  Context %d: %s %s (score: %.4f)",
                i + 1,
                result.metadata.get("kind"),
                result.id,
                result.score,
            )
        return results

    async def answer(
        self,
        query: str,
        history: Sequence[ConversationTurn] = (),
        *,
        include_sources: bool = True,
    ) -> Answer:
        """Answer a query using retrieved context and prior turns.

        The synthetic context+question turn exists only for this call; callers
        record the original query and the returned text in their own history.

        Returns:
            The generated answer and, unless disabled, the retrieval results used.

        Raises:
            InvalidQuery: If the query is blank. No provider is called.
            RetrievalFailure: If embedding or searching fails.
            CompletionFailure: If the completion provider fails.
        """
        if not query or not query.strip():
            msg = "Query is required"
            raise InvalidQuery(msg)

        logger.info("Processing query: %s", query)
        results = await self.retrieve(query)

        user_turn = build_user_turn(query, results)
        selected_history = self.history_policy.select(history)
        try:
            text = await self.completion_provider.complete(
                SYSTEM_PROMPT, selected_history, user_turn
            )
        except CompletionFailure:
            raise
        except Exception as exc:
            logger.exception("Unexpected error during completion")
            raise CompletionFailure(str(exc)) from exc

        return Answer(text=text, sources=results if include_sources else [])
