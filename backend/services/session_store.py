"""
Session Store - In-memory chat sessions and sources keyed by usersessionid
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Callable

from models.source import Source
from services.chat_session import ChatSession
from services.config_manager import ConfigManager
from services.query_client import QueryClient

DEFAULT_IDLE_TIMEOUT = 60.0
DEFAULT_MAX_SESSIONS = 500


def read_idle_timeout(config: dict[str, Any]) -> float | None:
    """stream.idleTimeout as seconds; None disables, bad values fall back to the default"""
    value = config.get("stream", {}).get("idleTimeout", DEFAULT_IDLE_TIMEOUT)
    if value is None:
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        timeout = -1.0
    if timeout < 0:
        print(f"[SessionStore] Warning: invalid stream.idleTimeout {value!r}, using {DEFAULT_IDLE_TIMEOUT:g}")
        return DEFAULT_IDLE_TIMEOUT
    return timeout


class SessionStore:
    """Owns one ChatSession and one source list per user session.

    At most max_sessions user sessions are kept; the least recently used idle
    one is dropped when a new one arrives. Sessions with a turn in flight are
    never dropped.
    """

    _instance = None

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        client_factory: Callable[[dict[str, Any]], Any] = QueryClient,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
    ):
        self._config = config
        self._client_factory = client_factory
        self.max_sessions = max_sessions
        self._sessions: dict[str, ChatSession] = {}
        self._sources: dict[str, list[Source]] = {}
        self._recent: OrderedDict[str, None] = OrderedDict()

    @classmethod
    def get_instance(cls) -> "SessionStore":
        """Get singleton instance"""
        if cls._instance is None:
            cls._instance = SessionStore()
        return cls._instance

    def _get_config(self) -> dict[str, Any]:
        if self._config is not None:
            return self._config
        return ConfigManager.get_instance().get_config()

    def chat(self, user_session_id: str) -> ChatSession:
        """Get or create the chat session; config is read when it is created"""
        session = self._sessions.get(user_session_id)
        if session is None:
            config = self._get_config()
            session = ChatSession(
                user_session_id,
                self._client_factory(config),
                idle_timeout=read_idle_timeout(config),
            )
            self._sessions[user_session_id] = session
        self._touch(user_session_id)
        return session

    def sources(self, user_session_id: str) -> list[Source]:
        sources = self._sources.setdefault(user_session_id, [])
        self._touch(user_session_id)
        return sources

    def __contains__(self, user_session_id: str) -> bool:
        return user_session_id in self._recent

    def _touch(self, user_session_id: str) -> None:
        self._recent[user_session_id] = None
        self._recent.move_to_end(user_session_id)
        self._evict()

    def _evict(self) -> None:
        # The most recent entry is the caller's own session
        for user_session_id in list(self._recent)[:-1]:
            if len(self._recent) <= self.max_sessions:
                break
            session = self._sessions.get(user_session_id)
            if session is not None and session.active_turn is not None:
                continue
            self._drop(user_session_id)

    def _drop(self, user_session_id: str) -> None:
        self._recent.pop(user_session_id, None)
        self._sources.pop(user_session_id, None)
        session = self._sessions.pop(user_session_id, None)
        if session is not None:
            session.clear()
        print(f"[SessionStore] Evicted idle session {user_session_id}")

    def close(self) -> None:
        """Abandon every in-flight stream"""
        for session in self._sessions.values():
            session.clear()
        self._sessions.clear()
        self._sources.clear()
        self._recent.clear()
