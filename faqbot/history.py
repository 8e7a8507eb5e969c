"""Policies deciding which prior turns are sent with a new question."""

from collections.abc import Sequence
from typing import Protocol

from .models import ConversationTurn


class HistoryPolicy(Protocol):
    def select(self, history: Sequence[ConversationTurn]) -> list[ConversationTurn]: ...


class FullHistory:
    """Send the whole conversation verbatim."""

    def select(self, history: Sequence[ConversationTurn]) -> list[ConversationTurn]:
        return list(history)


class RecentTurnsHistory:
    """Send only the most recent ``max_turns`` turns."""

    def __init__(self, max_turns: int) -> None:
        if max_turns <= 0:
            msg = f"max_turns must be positive, got {max_turns}"
            raise ValueError(msg)
        self.max_turns = max_turns

    def select(self, history: Sequence[ConversationTurn]) -> list[ConversationTurn]:
        selected = list(history[-self.max_turns :])
        # Never open the dialogue with an orphaned assistant reply
        while selected and selected[0].role == "assistant":
            selected.pop(0)
        return selected


def history_policy_for(max_turns: int) -> HistoryPolicy:
    """Build the policy for a ``HISTORY_MAX_TURNS`` value (0 keeps everything).

    Returns:
        The matching history policy.
    """
    if max_turns == 0:
        return FullHistory()
    return RecentTurnsHistory(max_turns)
