"""Uploaded source data models"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SourceType(str, Enum):
    """Kinds of content that can be indexed"""

    FILE = "file"
    WEBSITE = "website"
    YOUTUBE = "youtube"
    TEXT = "text"


class Source(BaseModel):
    """Upload descriptor kept for the sources panel"""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: SourceType
    name: str
    timestamp: datetime = Field(default_factory=datetime.now)
    server_file_id: str | None = None


class UrlUploadRequest(BaseModel):
    """Website or YouTube URL to index"""

    url: str


class TextUploadRequest(BaseModel):
    """Plain text to index"""

    text: str


class UploadResponse(BaseModel):
    """Upstream indexing message plus the recorded source"""

    message: str
    source: Source
