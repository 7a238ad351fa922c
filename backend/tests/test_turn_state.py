"""
Tests for turn status transitions.
"""

import pytest

from models.chat import ChatTurn, TurnStatus
from services.errors import InvalidTransition
from services.turn_state import append_answer, is_active, mark_complete, mark_failed, transition


class TestTransitions:
    """Allowed and rejected status changes."""

    def test_new_turn_is_pending(self):
        turn = ChatTurn(question="q")
        assert turn.status == TurnStatus.PENDING
        assert turn.answer_text == ""
        assert is_active(turn)

    def test_happy_path(self):
        turn = ChatTurn(question="q")
        append_answer(turn, "Hel")
        assert turn.status == TurnStatus.STREAMING
        append_answer(turn, "lo")
        mark_complete(turn)
        assert turn.status == TurnStatus.COMPLETE
        assert turn.answer_text == "Hello"
        assert not is_active(turn)

    def test_complete_without_increments_passes_through_streaming(self):
        turn = ChatTurn(question="q")
        mark_complete(turn)
        assert turn.status == TurnStatus.COMPLETE

    def test_fail_replaces_partial_answer(self):
        turn = ChatTurn(question="q")
        append_answer(turn, "partial")
        mark_failed(turn, "Error: boom")
        assert turn.status == TurnStatus.FAILED
        assert turn.answer_text == "Error: boom"

    def test_pending_can_fail(self):
        turn = ChatTurn(question="q")
        mark_failed(turn, "Error: boom")
        assert turn.status == TurnStatus.FAILED

    @pytest.mark.parametrize("terminal", [TurnStatus.COMPLETE, TurnStatus.FAILED])
    def test_terminal_states_are_final(self, terminal):
        turn = ChatTurn(question="q", status=terminal, answer_text="done")
        with pytest.raises(InvalidTransition):
            append_answer(turn, "more")
        with pytest.raises(InvalidTransition):
            mark_failed(turn, "Error: late")
        with pytest.raises(InvalidTransition):
            transition(turn, TurnStatus.STREAMING)
        assert turn.answer_text == "done"

    def test_pending_cannot_jump_to_complete_directly(self):
        turn = ChatTurn(question="q")
        with pytest.raises(InvalidTransition):
            transition(turn, TurnStatus.COMPLETE)
