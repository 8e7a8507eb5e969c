"""Conversation thread management for the chat client."""

import asyncio
import itertools

from .config import config
from .errors import LastThreadError, ThreadNotFound
from .models import (
    DEFAULT_THREAD_TITLE,
    Answer,
    ConversationThread,
    ConversationTurn,
)
from .query_engine import QueryEngine

logger = config.get_logger(__name__)

FALLBACK_RESPONSE = "There was an error, can you try asking again?"
TITLE_MAX_LENGTH = 30


def title_from(text: str) -> str:
    """Derive a thread title from the first user message.

    Returns:
        The first 30 characters, with an ellipsis when the text was cut.
    """
    text = text.strip()
    if len(text) <= TITLE_MAX_LENGTH:
        return text
    return text[:TITLE_MAX_LENGTH] + "..."


class ConversationManager:
    """Holds independent conversation threads and routes input to the QueryEngine.

    State is a mapping of thread id to ``ConversationThread`` plus the id of the
    active thread. At least one thread always exists. Submissions to the same
    thread are serialized so each question/answer exchange is recorded in
    submission order; different threads proceed concurrently.
    """

    def __init__(self, query_engine: QueryEngine) -> None:
        """Initialize ConversationManager with a single empty thread.

        Args:
            query_engine: Engine answering every submitted message.
        """
        self.query_engine = query_engine
        self._ids = itertools.count(1)
        self._threads: dict[int, ConversationThread] = {}
        self._thread_locks: dict[int, asyncio.Lock] = {}
        self._pending: dict[int, int] = {}
        self._generations: dict[int, int] = {}
        self.last_answers: dict[int, Answer] = {}
        self.active_thread_id: int = self.create_thread()

    @property
    def threads(self) -> list[ConversationThread]:
        """Threads ordered by creation."""
        return [self._threads[thread_id] for thread_id in sorted(self._threads)]

    @property
    def active_thread(self) -> ConversationThread:
        return self._threads[self.active_thread_id]

    def get_thread(self, thread_id: int) -> ConversationThread:
        """Return the thread with the given id.

        Raises:
            ThreadNotFound: If no such thread exists.
        """
        try:
            return self._threads[thread_id]
        except KeyError:
            raise ThreadNotFound(thread_id) from None

    def create_thread(self) -> int:
        """Create an empty thread and make it active.

        Returns:
            The new thread id.
        """
        thread_id = next(self._ids)
        self._threads[thread_id] = ConversationThread(id=thread_id)
        self._thread_locks[thread_id] = asyncio.Lock()
        self._pending[thread_id] = 0
        self._generations[thread_id] = 0
        self.active_thread_id = thread_id
        logger.info("Created conversation thread %d", thread_id)
        return thread_id

    def delete_thread(self, thread_id: int) -> None:
        """Delete a thread, activating the earliest remaining one if needed.

        An in-flight submission to the deleted thread still completes, but its
        answer is discarded.

        Raises:
            ThreadNotFound: If no such thread exists.
            LastThreadError: If it is the only remaining thread.
        """
        self.get_thread(thread_id)
        if len(self._threads) == 1:
            msg = "Cannot delete the last remaining conversation thread"
            raise LastThreadError(msg)

        del self._threads[thread_id]
        del self._thread_locks[thread_id]
        self._pending.pop(thread_id, None)
        self._generations.pop(thread_id, None)
        self.last_answers.pop(thread_id, None)
        if self.active_thread_id == thread_id:
            self.active_thread_id = min(self._threads)
        logger.info("Deleted conversation thread %d", thread_id)

    def select_thread(self, thread_id: int) -> None:
        """Make an existing thread the active one."""
        self.get_thread(thread_id)
        self.active_thread_id = thread_id

    def clear_thread(self, thread_id: int) -> None:
        """Forget every turn of a thread and reset its title.

        An in-flight submission to the thread still completes, but its answer
        is discarded.
        """
        thread = self.get_thread(thread_id)
        thread.turns = []
        thread.title = DEFAULT_THREAD_TITLE
        self._generations[thread_id] += 1
        self.last_answers.pop(thread_id, None)
        logger.info("Conversation thread %d cleared.", thread_id)

    def is_pending(self, thread_id: int) -> bool:
        """Whether a submission on the thread is waiting for its answer."""
        return self._pending.get(thread_id, 0) > 0

    async def submit(self, thread_id: int, text: str) -> None:
        """Send a user message on a thread and record the assistant's reply.

        The user turn is recorded immediately, so it is visible while earlier
        messages on the thread are still being answered. Each reply is placed
        right after its own user turn. Blank messages are ignored. Engine
        failures are turned into a fixed apology turn; they never propagate to
        the caller.

        Raises:
            ThreadNotFound: If no such thread exists.
        """
        if not text or not text.strip():
            return
        thread = self.get_thread(thread_id)
        lock = self._thread_locks[thread_id]
        generation = self._generations[thread_id]

        user_turn = ConversationTurn(role="user", text=text)
        if not thread.turns and thread.title == DEFAULT_THREAD_TITLE:
            thread.title = title_from(text)
        thread.turns.append(user_turn)

        self._pending[thread_id] += 1
        try:
            async with lock:
                if not self._is_current(thread_id, thread, generation):
                    logger.warning(
                        "Thread %d was cleared or deleted before its message "
                        "was sent",
                        thread_id,
                    )
                    return
                position = _position_of(thread.turns, user_turn)
                history = thread.turns[:position]

                answer = await self._ask(thread_id, text, history)
                if not self._is_current(thread_id, thread, generation):
                    logger.warning(
                        "Discarding answer for cleared or deleted thread %d",
                        thread_id,
                    )
                    return
                reply = FALLBACK_RESPONSE
                if answer is not None:
                    self.last_answers[thread_id] = answer
                    reply = answer.text
                position = _position_of(thread.turns, user_turn)
                thread.turns.insert(
                    position + 1, ConversationTurn(role="assistant", text=reply)
                )
        finally:
            if thread_id in self._pending:
                self._pending[thread_id] -= 1

    def _is_current(
        self, thread_id: int, thread: ConversationThread, generation: int
    ) -> bool:
        return (
            self._threads.get(thread_id) is thread
            and self._generations.get(thread_id) == generation
        )

    async def _ask(
        self,
        thread_id: int,
        text: str,
        history: list[ConversationTurn],
    ) -> Answer | None:
        try:
            return await self.query_engine.answer(text, history)
        except Exception:
            logger.exception("Error answering message on thread %d", thread_id)
            return None


def _position_of(turns: list[ConversationTurn], turn: ConversationTurn) -> int:
    """Index of ``turn`` in ``turns`` by identity; equal turns are distinct."""
    return next(index for index, candidate in enumerate(turns) if candidate is turn)
