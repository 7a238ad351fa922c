"""
Sources Client - Upload files, websites, videos and text to the indexing backend

The indexing endpoints are opaque; only their success/error contract matters.
Responses carry a message in "data", either as JSON or as raw text.
"""

from __future__ import annotations

import json
from typing import Any, NamedTuple

import aiohttp

from models.source import SourceType
from services.config_manager import api_url
from services.errors import UploadError

FILE_SUCCESS_MARKER = "Indexing Completed for the given file"

UPLOAD_PATHS = {
    SourceType.FILE: "api/upload/",
    SourceType.WEBSITE: "api/website/",
    SourceType.YOUTUBE: "api/youtube",
    SourceType.TEXT: "api/plaintext",
}

DEFAULT_MESSAGES = {
    SourceType.WEBSITE: "Indexing Completed for the given website",
    SourceType.YOUTUBE: "Indexing Completed for the given video",
    SourceType.TEXT: "Indexing Completed for the given text",
}


class UploadResult(NamedTuple):
    message: str
    file_id: str | None = None


def parse_payload(body: str) -> dict[str, Any]:
    """Parse a JSON payload, falling back to {"data": <raw text>}"""
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return {"data": body}
    return payload if isinstance(payload, dict) else {"data": payload}


class SourcesClient:
    """Client for the upstream indexing endpoints"""

    def __init__(self, config: dict[str, Any]):
        self.config = config

    def _url(self, path: str) -> str:
        return api_url(self.config.get("backend", {}).get("baseUrl"), path)

    def _timeout(self) -> aiohttp.ClientTimeout:
        connect_timeout = float(self.config.get("backend", {}).get("connectTimeout", 30))
        return aiohttp.ClientTimeout(total=None, sock_connect=connect_timeout)

    async def _upload(self, kind: SourceType, user_session_id: str, **request_kwargs) -> UploadResult:
        url = self._url(UPLOAD_PATHS[kind])
        headers = {"usersessionid": user_session_id}
        try:
            async with aiohttp.ClientSession(timeout=self._timeout()) as session:
                async with session.post(url, headers=headers, **request_kwargs) as response:
                    payload = parse_payload(await response.text())
                    status = response.status
        except aiohttp.ClientError as e:
            print(f"[SourcesClient] {kind.value} upload network error: {e}")
            raise UploadError(f"Network error: {e}") from e

        if not 200 <= status < 300:
            message = str(payload.get("data") or f"Upload failed with status {status}")
            print(f"[SourcesClient] {kind.value} upload failed: {message}")
            raise UploadError(message)

        message = str(payload.get("data") or DEFAULT_MESSAGES.get(kind, ""))
        file_id = payload.get("fileId")
        return UploadResult(message=message, file_id=str(file_id) if file_id is not None else None)

    async def upload_file(
        self, filename: str, data: bytes, user_session_id: str, content_type: str | None = None
    ) -> UploadResult:
        form = aiohttp.FormData()
        form.add_field("file", data, filename=filename, content_type=content_type or "application/octet-stream")
        result = await self._upload(SourceType.FILE, user_session_id, data=form)
        # The file endpoint answers 200 even when indexing did not happen
        if FILE_SUCCESS_MARKER not in result.message:
            raise UploadError(result.message or "Unexpected response from server")
        return result

    async def upload_website(self, url: str, user_session_id: str) -> UploadResult:
        return await self._upload(SourceType.WEBSITE, user_session_id, json={"url": url})

    async def upload_youtube(self, url: str, user_session_id: str) -> UploadResult:
        return await self._upload(SourceType.YOUTUBE, user_session_id, json={"url": url})

    async def upload_text(self, text: str, user_session_id: str) -> UploadResult:
        return await self._upload(SourceType.TEXT, user_session_id, json={"text": text})

    async def delete(self, file_id: str, user_session_id: str) -> bool:
        """Ask the backend to drop an indexed file; failures are logged, never raised"""
        headers = {"usersessionid": user_session_id, "fileid": str(file_id)}
        try:
            async with aiohttp.ClientSession(timeout=self._timeout()) as session:
                async with session.post(self._url("api/delete"), headers=headers) as response:
                    return 200 <= response.status < 300
        except aiohttp.ClientError as e:
            print(f"[SourcesClient] Delete of file {file_id} failed: {e}")
            return False
