"""Chat API endpoints"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import PlainTextResponse
from sse_starlette.sse import EventSourceResponse

from models.chat import ChatTurn, RestoreRequest, StreamEvent, SubmitRequest, SubmitResponse, TurnStatus, TurnView
from services.block_parser import parse_response_blocks
from services.chat_session import ChatSession, normalize_restored_turns
from services.session_store import SessionStore
from services.turn_state import is_active

router = APIRouter()


def get_session(usersessionid: str = Header(...)) -> ChatSession:
    """Resolve the chat session named by the required usersessionid header"""
    return SessionStore.get_instance().chat(usersessionid)


def build_turn_view(turn: ChatTurn) -> TurnView:
    """Turn plus the blocks re-derived from its full answer text"""
    return TurnView(
        id=turn.id,
        question=turn.question,
        answer_text=turn.answer_text,
        status=turn.status,
        created_at=turn.created_at,
        blocks=parse_response_blocks(turn.answer_text),
    )


def build_stream_event(turn: ChatTurn) -> StreamEvent:
    if turn.status == TurnStatus.FAILED:
        return StreamEvent(type="error", turn=build_turn_view(turn), done=True, error=turn.answer_text)
    if turn.status == TurnStatus.COMPLETE:
        return StreamEvent(type="done", turn=build_turn_view(turn), done=True)
    return StreamEvent(type="update", turn=build_turn_view(turn))


def _find_turn(session: ChatSession, turn_id: str) -> ChatTurn:
    turn = session.get_turn(turn_id)
    if turn is None:
        raise HTTPException(status_code=404, detail=f"Turn '{turn_id}' not found")
    return turn


@router.post("/submit", response_model=SubmitResponse)
async def submit_question(request: SubmitRequest, session: ChatSession = Depends(get_session)) -> SubmitResponse:
    """Start a new turn; a no-op while another turn is pending or streaming"""
    turn = session.submit(request.input)
    if turn is None:
        return SubmitResponse(accepted=False)
    return SubmitResponse(accepted=True, turn=build_turn_view(turn))


@router.get("/turns", response_model=list[TurnView])
async def list_turns(session: ChatSession = Depends(get_session)) -> list[TurnView]:
    return [build_turn_view(turn) for turn in session.turns]


@router.get("/turns/{turn_id}", response_model=TurnView)
async def get_turn(turn_id: str, session: ChatSession = Depends(get_session)) -> TurnView:
    return build_turn_view(_find_turn(session, turn_id))


@router.get("/turns/{turn_id}/stream")
async def stream_turn(turn_id: str, session: ChatSession = Depends(get_session)):
    """Push block snapshots of a turn (SSE) until it completes or fails"""
    _find_turn(session, turn_id)

    async def event_generator():
        queue = session.subscribe()
        try:
            turn = session.get_turn(turn_id)
            while turn is not None:
                yield {"event": "message", "data": build_stream_event(turn).model_dump_json()}
                if not is_active(turn):
                    break
                snapshot = await queue.get()
                while snapshot.id != turn_id:
                    snapshot = await queue.get()
                # Render the live turn rather than a possibly stale queued copy
                turn = session.get_turn(turn_id) or snapshot
        finally:
            session.unsubscribe(queue)

    return EventSourceResponse(event_generator())


@router.get("/turns/{turn_id}/copy", response_class=PlainTextResponse)
async def copy_turn_text(
    turn_id: str,
    part: str = Query("answer", pattern="^(answer|question)$"),
    session: ChatSession = Depends(get_session),
) -> PlainTextResponse:
    """Text for the browser to place on the clipboard"""
    _find_turn(session, turn_id)
    return PlainTextResponse(session.copy_text(turn_id, part))


@router.post("/cancel")
async def cancel_turn(session: ChatSession = Depends(get_session)):
    """Abort the in-flight turn, if any"""
    turn = await session.cancel()
    if turn is None:
        return {"status": "idle"}
    return {"status": "cancelled", "turn": build_turn_view(turn)}


@router.post("/clear")
async def clear_chat(session: ChatSession = Depends(get_session)):
    """Start a new chat: discard every turn"""
    session.clear()
    return {"status": "success", "message": "Chat cleared"}


@router.put("/history", response_model=list[TurnView])
async def restore_history(request: RestoreRequest, session: ChatSession = Depends(get_session)) -> list[TurnView]:
    """Restore a history previously saved by the browser"""
    try:
        session.restore(normalize_restored_turns(request.turns))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return [build_turn_view(turn) for turn in session.turns]
