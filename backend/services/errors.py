"""Error types raised by the chat and sources services"""

from __future__ import annotations


class IngestionError(Exception):
    """Fatal for the turn being ingested, never for the session"""


class TransportError(IngestionError):
    """Non-2xx status or network failure"""


class StreamUnsupported(IngestionError):
    """Response carries no readable body"""


class DecodeError(IngestionError):
    """Byte sequence that stays malformed after buffering"""


class StreamStalled(IngestionError):
    """No chunk arrived within the idle timeout"""


class InvalidTransition(Exception):
    """Turn status change not allowed by the state machine"""


class UploadError(Exception):
    """Upstream refused or failed to index a source"""
