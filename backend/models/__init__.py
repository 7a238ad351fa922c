"""Models module - Pydantic data models"""

from .chat import (
    ChatTurn,
    CodeBlock,
    MarkdownBlock,
    ResponseBlock,
    RestoreRequest,
    StreamEvent,
    SubmitRequest,
    SubmitResponse,
    TurnStatus,
    TurnView,
)
from .source import (
    Source,
    SourceType,
    TextUploadRequest,
    UploadResponse,
    UrlUploadRequest,
)

__all__ = [
    # Chat models
    "ChatTurn",
    "CodeBlock",
    "MarkdownBlock",
    "ResponseBlock",
    "RestoreRequest",
    "StreamEvent",
    "SubmitRequest",
    "SubmitResponse",
    "TurnStatus",
    "TurnView",
    # Source models
    "Source",
    "SourceType",
    "TextUploadRequest",
    "UploadResponse",
    "UrlUploadRequest",
]
