"""
Tests for the importance heuristics.
"""

import pytest

from chat_memory.chat.messages import MessageRole
from chat_memory.memory.importance import calculate_importance, lifecycle_importance


class TestCalculateImportance:
    """Test the explicit-store importance heuristic."""

    def test_short_assistant_statement(self):
        """Baseline score."""
        assert calculate_importance("Sure thing.", MessageRole.ASSISTANT) == pytest.approx(0.5)

    def test_user_bonus(self):
        """User messages score higher."""
        assert calculate_importance("Sure thing.", MessageRole.USER) == pytest.approx(0.6)

    def test_question_bonus(self):
        """A question mark adds 0.1."""
        assert calculate_importance("Is it raining?", MessageRole.ASSISTANT) == pytest.approx(0.6)

    def test_length_bonuses(self):
        """Length above 100 and above 500 each add 0.1."""
        assert calculate_importance("x" * 101, MessageRole.ASSISTANT) == pytest.approx(0.6)
        assert calculate_importance("x" * 501, MessageRole.ASSISTANT) == pytest.approx(0.7)

    def test_boundaries_are_exclusive(self):
        """Exactly 100 characters gets no bonus."""
        assert calculate_importance("x" * 100, MessageRole.ASSISTANT) == pytest.approx(0.5)

    def test_all_bonuses(self):
        """All bonuses together give 0.9, within the 1.0 cap."""
        score = calculate_importance("?" + "x" * 600, MessageRole.USER)
        assert score == pytest.approx(0.9)
        assert score <= 1.0

    def test_accepts_role_string(self):
        """Roles may be given as plain strings."""
        assert calculate_importance("Sure thing.", "user") == pytest.approx(0.6)


class TestLifecycleImportance:
    """Test the flat heuristic used by the chat hooks."""

    def test_user(self):
        """User messages always score 0.6."""
        assert lifecycle_importance("hi there friend", MessageRole.USER) == 0.6
        assert lifecycle_importance("x" * 300, MessageRole.USER) == 0.6

    def test_assistant_short(self):
        """Short assistant replies score 0.5."""
        assert lifecycle_importance("x" * 100, MessageRole.ASSISTANT) == 0.5

    def test_assistant_long(self):
        """Long assistant replies score 0.7."""
        assert lifecycle_importance("x" * 101, MessageRole.ASSISTANT) == 0.7


class TestImportanceExamples:
    """Worked examples of the explicit heuristic."""

    def test_long_user_question(self):
        """A 150-character user question scores 0.8."""
        text = "x" * 149 + "?"
        assert calculate_importance(text, MessageRole.USER) == pytest.approx(0.8)

    def test_very_long_assistant_statement(self):
        """A 600-character assistant statement scores 0.7."""
        assert calculate_importance("x" * 600, MessageRole.ASSISTANT) == pytest.approx(0.7)

    def test_never_above_one(self):
        """No message scores above 1.0."""
        for role in MessageRole:
            for text in ["", "?", "x" * 1000 + "?"]:
                assert 0.0 <= calculate_importance(text, role) <= 1.0
