"""
Query Client - POST questions to the upstream RAG query endpoint
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import aiohttp

from services.config_manager import api_url
from services.stream_ingestion import StreamChunk, StreamResponse


class AiohttpChunkReader:
    """Pull-based reader over an aiohttp response body"""

    def __init__(self, content: aiohttp.StreamReader):
        self._content = content

    async def read(self) -> StreamChunk:
        data = await self._content.readany()
        return StreamChunk(value=data, done=not data)


class QueryClient:
    """Client for the upstream question/answer endpoint"""

    def __init__(self, config: dict[str, Any]):
        self.config = config

    def _get_backend_config(self) -> tuple[str, float]:
        """Get backend config: (query url, connect timeout)."""
        cfg = self.config.get("backend", {})
        url = api_url(cfg.get("baseUrl"), cfg.get("queryPath", "api/search/"))
        return url, float(cfg.get("connectTimeout", 30))

    def _build_headers(self, user_session_id: str) -> dict[str, str]:
        return {"Content-Type": "application/json", "usersessionid": user_session_id}

    @asynccontextmanager
    async def open_query(self, question: str, user_session_id: str) -> AsyncIterator[StreamResponse]:
        """Context manager yielding the streaming answer response.

        Non-2xx statuses are not raised here; the ingestion loop turns them
        into a failed turn so the status ends up in the message.
        """
        url, connect_timeout = self._get_backend_config()
        # No total timeout: answers stream for as long as the generator runs
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=connect_timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(
                url, json={"input": question}, headers=self._build_headers(user_session_id)
            ) as response:
                print(f"[QueryClient] POST {url} -> {response.status}")
                yield StreamResponse(
                    status=response.status,
                    headers=response.headers,
                    reader=AiohttpChunkReader(response.content),
                )
