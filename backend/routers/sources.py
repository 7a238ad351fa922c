"""Sources API endpoints - index content and track what the session uploaded"""

from __future__ import annotations

from fastapi import APIRouter, File, Header, HTTPException, UploadFile

from models.source import Source, SourceType, TextUploadRequest, UploadResponse, UrlUploadRequest
from services.config_manager import ConfigManager
from services.errors import UploadError
from services.session_store import SessionStore
from services.sources_client import SourcesClient, UploadResult

router = APIRouter()


def _client() -> SourcesClient:
    return SourcesClient(ConfigManager.get_instance().get_config())


def _record(user_session_id: str, kind: SourceType, name: str, result: UploadResult) -> UploadResponse:
    source = Source(type=kind, name=name, server_file_id=result.file_id)
    SessionStore.get_instance().sources(user_session_id).append(source)
    return UploadResponse(message=result.message, source=source)


@router.get("", response_model=list[Source])
async def list_sources(usersessionid: str = Header(...)) -> list[Source]:
    return SessionStore.get_instance().sources(usersessionid)


@router.post("/file", response_model=UploadResponse)
async def upload_file(file: UploadFile = File(...), usersessionid: str = Header(...)) -> UploadResponse:
    """Index an uploaded document"""
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided.")

    data = await file.read()
    try:
        result = await _client().upload_file(file.filename, data, usersessionid, file.content_type)
    except UploadError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return _record(usersessionid, SourceType.FILE, file.filename, result)


@router.post("/website", response_model=UploadResponse)
async def upload_website(request: UrlUploadRequest, usersessionid: str = Header(...)) -> UploadResponse:
    url = request.url.strip()
    try:
        result = await _client().upload_website(url, usersessionid)
    except UploadError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return _record(usersessionid, SourceType.WEBSITE, url, result)


@router.post("/youtube", response_model=UploadResponse)
async def upload_youtube(request: UrlUploadRequest, usersessionid: str = Header(...)) -> UploadResponse:
    url = request.url.strip()
    try:
        result = await _client().upload_youtube(url, usersessionid)
    except UploadError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return _record(usersessionid, SourceType.YOUTUBE, url, result)


@router.post("/text", response_model=UploadResponse)
async def upload_text(request: TextUploadRequest, usersessionid: str = Header(...)) -> UploadResponse:
    text = request.text.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Please enter some text")
    try:
        result = await _client().upload_text(text, usersessionid)
    except UploadError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return _record(usersessionid, SourceType.TEXT, f"Text Input ({len(text)} characters)", result)


@router.delete("/{source_id}")
async def remove_source(source_id: str, usersessionid: str = Header(...)):
    """Forget a source; indexed files are also deleted upstream (best effort)"""
    sources = SessionStore.get_instance().sources(usersessionid)
    source = next((s for s in sources if s.id == source_id), None)
    if source is None:
        raise HTTPException(status_code=404, detail=f"Source '{source_id}' not found")

    if source.server_file_id:
        await _client().delete(source.server_file_id, usersessionid)
    sources.remove(source)
    return {"status": "success", "message": "Source removed"}
