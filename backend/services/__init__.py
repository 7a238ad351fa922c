"""Services module - Business logic layer"""

from .block_parser import decode_code_content, parse_response_blocks, segment_blocks
from .chat_session import ChatSession, normalize_restored_turns
from .config_manager import ConfigManager
from .query_client import QueryClient
from .session_store import SessionStore
from .sources_client import SourcesClient
from .stream_ingestion import StreamIngestionLoop, StreamResponse
from .tag_normalizer import normalize_tags

__all__ = [
    "decode_code_content",
    "parse_response_blocks",
    "segment_blocks",
    "ChatSession",
    "normalize_restored_turns",
    "ConfigManager",
    "QueryClient",
    "SessionStore",
    "SourcesClient",
    "StreamIngestionLoop",
    "StreamResponse",
    "normalize_tags",
]
