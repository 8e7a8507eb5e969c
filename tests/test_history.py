"""Tests for history selection policies."""

import pytest

from faqbot import ConversationTurn
from faqbot.history import FullHistory, RecentTurnsHistory, history_policy_for


def _turns(*texts):
    roles = ("user", "assistant")
    return [
        ConversationTurn(role=roles[i % 2], text=text) for i, text in enumerate(texts)
    ]


def test_full_history_returns_copy():
    history = _turns("u1", "a1")

    selected = FullHistory().select(history)

    assert selected == history
    assert selected is not history


def test_recent_turns_keeps_tail():
    history = _turns("u1", "a1", "u2", "a2")
    selected = RecentTurnsHistory(2).select(history)
    assert [turn.text for turn in selected] == ["u2", "a2"]


def test_recent_turns_drops_leading_assistant_turn():
    history = _turns("u1", "a1", "u2", "a2")
    selected = RecentTurnsHistory(3).select(history)
    assert [turn.text for turn in selected] == ["u2", "a2"]


def test_recent_turns_rejects_non_positive_limit():
    with pytest.raises(ValueError, match="max_turns must be positive"):
        RecentTurnsHistory(0)


def test_history_policy_for():
    assert isinstance(history_policy_for(0), FullHistory)
    policy = history_policy_for(4)
    assert isinstance(policy, RecentTurnsHistory)
    assert policy.max_turns == 4
