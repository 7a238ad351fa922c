"""
Chat Session - Ordered turns for one user session, at most one in flight

The session owns its turn list and hands each ingestion loop a turn handle;
the loop never looks turns up by id. All mutation happens on the event
loop, so no locking is needed.
"""

from __future__ import annotations

import asyncio
from typing import Iterable

from models.chat import ChatTurn, ResponseBlock, TurnStatus
from services.block_parser import parse_response_blocks
from services.stream_ingestion import CANCELLED_MESSAGE, StreamIngestionLoop
from services.turn_state import is_active, mark_failed

INTERRUPTED_MESSAGE = "Error: Response interrupted"


def normalize_restored_turns(turns: Iterable[ChatTurn]) -> list[ChatTurn]:
    """Settle turns that were still in flight when the session was saved.

    A stale turn with a partial answer keeps it as complete; one with no
    answer at all is marked failed.
    """
    normalized = []
    for turn in turns:
        turn = turn.model_copy()
        if is_active(turn):
            if turn.answer_text:
                turn.status = TurnStatus.COMPLETE
            else:
                turn.status = TurnStatus.FAILED
                turn.answer_text = INTERRUPTED_MESSAGE
        normalized.append(turn)
    return normalized


class ChatSession:
    """Question/answer history for one usersessionid"""

    def __init__(self, user_session_id: str, client, idle_timeout: float | None = None):
        self.user_session_id = user_session_id
        self.idle_timeout = idle_timeout
        self._client = client  # Anything exposing open_query(question, user_session_id)
        self._turns: list[ChatTurn] = []
        self._task: asyncio.Task | None = None
        self._listeners: set[asyncio.Queue] = set()

    @property
    def turns(self) -> tuple[ChatTurn, ...]:
        return tuple(self._turns)

    @property
    def active_turn(self) -> ChatTurn | None:
        return next((turn for turn in self._turns if is_active(turn)), None)

    def get_turn(self, turn_id: str) -> ChatTurn | None:
        return next((turn for turn in self._turns if turn.id == turn_id), None)

    def _require_turn(self, turn_id: str) -> ChatTurn:
        turn = self.get_turn(turn_id)
        if turn is None:
            raise KeyError(turn_id)
        return turn

    def blocks(self, turn_id: str) -> list[ResponseBlock]:
        """Blocks derived from the turn's current answer text"""
        return parse_response_blocks(self._require_turn(turn_id).answer_text)

    def copy_text(self, turn_id: str, part: str = "answer") -> str:
        """Text to hand to the platform clipboard"""
        turn = self._require_turn(turn_id)
        if part == "answer":
            return turn.answer_text
        if part == "question":
            return turn.question
        raise ValueError(f"Unknown part: {part}")

    # ========== Lifecycle ==========

    def submit(self, question: str) -> ChatTurn | None:
        """Start a new turn, or do nothing while another turn is in flight.

        Must be called from a running event loop; the ingestion loop runs as
        a task bound to the new turn.
        """
        if not question or not question.strip():
            return None
        active = self.active_turn
        if active is not None:
            print(f"[ChatSession] {self.user_session_id}: rejected submission, turn {active.id} still {active.status.value}")
            return None

        turn = ChatTurn(question=question)
        self._turns.append(turn)
        loop = StreamIngestionLoop(turn, on_increment=self._publish, idle_timeout=self.idle_timeout)
        self._task = asyncio.create_task(loop.run(self._client.open_query(question, self.user_session_id)))
        print(f"[ChatSession] {self.user_session_id}: turn {turn.id} submitted")
        self._publish(turn)
        return turn

    async def wait(self) -> None:
        """Wait for the in-flight turn, if any, to reach a terminal state"""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def cancel(self) -> ChatTurn | None:
        """Abort the in-flight stream and fail its turn"""
        turn = self.active_turn
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        # A task cancelled before its first step never reaches the loop's handler
        if turn is not None and is_active(turn):
            mark_failed(turn, f"Error: {CANCELLED_MESSAGE}")
            self._publish(turn)
        return turn

    def clear(self) -> None:
        """Discard every turn, abandoning any in-flight stream"""
        turn = self.active_turn
        if self._task is not None and not self._task.done():
            self._task.cancel()
        # Listeners of the discarded turn still need a terminal snapshot
        if turn is not None:
            mark_failed(turn, f"Error: {CANCELLED_MESSAGE}")
            self._publish(turn)
        self._task = None
        self._turns = []
        print(f"[ChatSession] {self.user_session_id}: cleared")

    def restore(self, turns: Iterable[ChatTurn]) -> None:
        """Replace the history with a previously serialized one"""
        turns = list(turns)
        if any(is_active(turn) for turn in turns):
            raise ValueError("Restored turns must not be pending or streaming")
        if self.active_turn is not None:
            raise ValueError("Cannot restore while a turn is in flight")
        self._turns = turns

    # ========== Live updates ==========

    def subscribe(self) -> asyncio.Queue:
        """Queue receiving a snapshot of every turn change"""
        queue: asyncio.Queue = asyncio.Queue()
        self._listeners.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._listeners.discard(queue)

    def _publish(self, turn: ChatTurn) -> None:
        snapshot = turn.model_copy()
        for queue in self._listeners:
            queue.put_nowait(snapshot)
