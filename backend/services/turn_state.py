"""
Turn State Machine - Guarded status transitions for a single ChatTurn

pending -> streaming -> complete, plus pending/streaming -> failed.
complete and failed are terminal.
"""

from __future__ import annotations

from models.chat import ChatTurn, TurnStatus
from services.errors import InvalidTransition

ALLOWED_TRANSITIONS: dict[TurnStatus, frozenset[TurnStatus]] = {
    TurnStatus.PENDING: frozenset({TurnStatus.STREAMING, TurnStatus.FAILED}),
    TurnStatus.STREAMING: frozenset({TurnStatus.COMPLETE, TurnStatus.FAILED}),
    TurnStatus.COMPLETE: frozenset(),
    TurnStatus.FAILED: frozenset(),
}

ACTIVE_STATUSES = frozenset({TurnStatus.PENDING, TurnStatus.STREAMING})


def is_active(turn: ChatTurn) -> bool:
    return turn.status in ACTIVE_STATUSES


def transition(turn: ChatTurn, status: TurnStatus) -> None:
    """Move the turn to a new status or raise InvalidTransition"""
    if status not in ALLOWED_TRANSITIONS[turn.status]:
        raise InvalidTransition(f"Turn {turn.id}: cannot go from {turn.status.value} to {status.value}")
    turn.status = status


def append_answer(turn: ChatTurn, text: str) -> None:
    """Append an increment, starting the stream on the first one"""
    if turn.status == TurnStatus.PENDING:
        transition(turn, TurnStatus.STREAMING)
    elif turn.status != TurnStatus.STREAMING:
        raise InvalidTransition(f"Turn {turn.id}: cannot append while {turn.status.value}")
    turn.answer_text += text


def mark_complete(turn: ChatTurn) -> None:
    # A stream that delivered nothing still passes through streaming
    if turn.status == TurnStatus.PENDING:
        transition(turn, TurnStatus.STREAMING)
    transition(turn, TurnStatus.COMPLETE)


def mark_failed(turn: ChatTurn, message: str) -> None:
    """Fail the turn; the message replaces any partial answer"""
    transition(turn, TurnStatus.FAILED)
    turn.answer_text = message
