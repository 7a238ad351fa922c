"""Chat data models"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class TurnStatus(str, Enum):
    """Lifecycle states of a single question/answer turn"""

    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETE = "complete"
    FAILED = "failed"


class ChatTurn(BaseModel):
    """One question/answer exchange within a session"""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    question: str
    answer_text: str = ""  # Append-only while the turn is active
    status: TurnStatus = TurnStatus.PENDING
    created_at: datetime = Field(default_factory=datetime.now)


class MarkdownBlock(BaseModel):
    """Prose span, rendered as-is by a markdown renderer"""

    type: Literal["markdown"] = "markdown"
    text: str


class CodeBlock(BaseModel):
    """Embedded code span"""

    type: Literal["code"] = "code"
    language: str = "javascript"
    content: str


ResponseBlock = Annotated[Union[MarkdownBlock, CodeBlock], Field(discriminator="type")]


class SubmitRequest(BaseModel):
    """Question submitted by the browser"""

    input: str


class TurnView(BaseModel):
    """Read-only turn with its derived block list"""

    id: str
    question: str
    answer_text: str
    status: TurnStatus
    created_at: datetime
    blocks: list[ResponseBlock] = []


class SubmitResponse(BaseModel):
    """Result of a submission; accepted is False while another turn is active"""

    accepted: bool
    turn: TurnView | None = None


class RestoreRequest(BaseModel):
    """Previously serialized session handed back by the browser"""

    turns: list[ChatTurn]


class StreamEvent(BaseModel):
    """SSE stream event"""

    type: str  # "update", "done", "error"
    turn: TurnView
    done: bool = False
    error: str | None = None
