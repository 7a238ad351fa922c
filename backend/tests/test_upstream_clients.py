"""
Tests for the aiohttp clients against a local upstream server.

These tests verify:
1. Questions are posted as {"input": ...} with the usersessionid header
2. Streamed answers flow through the ingestion loop into a turn
3. The upload success/error contract and best-effort delete
"""

import pytest
from aiohttp import test_utils, web

from models.chat import ChatTurn, TurnStatus
from services.errors import UploadError
from services.query_client import QueryClient
from services.sources_client import SourcesClient, parse_payload
from services.stream_ingestion import StreamIngestionLoop


def build_upstream(received):
    async def search(request):
        received.append(("search", await request.json(), request.headers.get("usersessionid")))
        if request.headers.get("usersessionid") == "broken":
            return web.Response(status=500, text="boom")
        response = web.StreamResponse(headers={"Content-Type": "text/event-stream"})
        await response.prepare(request)
        for chunk in (b"data: Hel", b"lo\n", "data: wörld\n".encode("utf-8")):
            await response.write(chunk)
        await response.write_eof()
        return response

    async def plain(request):
        response = web.StreamResponse(headers={"Content-Type": "text/plain"})
        await response.prepare(request)
        for chunk in (b"data: kept", b" verbatim"):
            await response.write(chunk)
        await response.write_eof()
        return response

    async def upload(request):
        form = await request.post()
        upload = form["file"]
        received.append(("upload", upload.filename, upload.file.read()))
        if upload.filename == "empty.pdf":
            return web.json_response({"data": "Nothing to index"})
        return web.json_response({"data": "Indexing Completed for the given file", "fileId": "f-1"})

    async def website(request):
        body = await request.json()
        received.append(("website", body, request.headers.get("usersessionid")))
        if "bad" in body["url"]:
            return web.json_response({"data": "Could not crawl site"}, status=400)
        return web.json_response({})

    async def youtube(request):
        return web.Response(status=503, text="")

    async def plaintext(request):
        return web.Response(text="Indexed your text")

    async def delete(request):
        received.append(("delete", request.headers.get("fileid"), request.headers.get("usersessionid")))
        return web.json_response({"data": "deleted"})

    app = web.Application()
    app.router.add_post("/api/search/", search)
    app.router.add_post("/api/plain/", plain)
    app.router.add_post("/api/upload/", upload)
    app.router.add_post("/api/website/", website)
    app.router.add_post("/api/youtube", youtube)
    app.router.add_post("/api/plaintext", plaintext)
    app.router.add_post("/api/delete", delete)
    return app


class Upstream:
    """Async context manager running the fake upstream on a free port"""

    def __init__(self):
        self.received = []
        self.server = test_utils.TestServer(build_upstream(self.received))

    async def __aenter__(self):
        await self.server.start_server()
        base_url = str(self.server.make_url("/"))
        self.config = {"backend": {"baseUrl": base_url, "queryPath": "/api/search/", "connectTimeout": 5}}
        return self

    async def __aexit__(self, *exc):
        await self.server.close()
        return False


class TestParsePayload:
    """JSON first, raw text as a fallback."""

    def test_json_object(self):
        assert parse_payload('{"data": "ok"}') == {"data": "ok"}

    def test_raw_text(self):
        assert parse_payload("Indexing Completed") == {"data": "Indexing Completed"}

    def test_non_object_json(self):
        assert parse_payload('"just a string"') == {"data": "just a string"}


class TestQueryClient:
    """Streaming questions through the real transport."""

    @pytest.mark.asyncio
    async def test_event_stream_answer(self):
        async with Upstream() as upstream:
            turn = ChatTurn(question="Say hello")
            client = QueryClient(upstream.config)
            await StreamIngestionLoop(turn).run(client.open_query(turn.question, "session-42"))

        assert turn.status == TurnStatus.COMPLETE
        assert turn.answer_text == "Hellowörld"
        assert upstream.received == [("search", {"input": "Say hello"}, "session-42")]

    @pytest.mark.asyncio
    async def test_plain_answer(self):
        async with Upstream() as upstream:
            upstream.config["backend"]["queryPath"] = "api/plain/"
            turn = ChatTurn(question="q")
            await StreamIngestionLoop(turn).run(QueryClient(upstream.config).open_query("q", "s"))

        assert turn.answer_text == "data: kept verbatim"

    @pytest.mark.asyncio
    async def test_error_status_fails_turn(self):
        async with Upstream() as upstream:
            turn = ChatTurn(question="q")
            await StreamIngestionLoop(turn).run(QueryClient(upstream.config).open_query("q", "broken"))

        assert turn.status == TurnStatus.FAILED
        assert turn.answer_text == "Error: Request failed with status 500"

    @pytest.mark.asyncio
    async def test_unreachable_backend_fails_turn(self):
        config = {"backend": {"baseUrl": "http://127.0.0.1:9", "connectTimeout": 2}}
        turn = ChatTurn(question="q")
        await StreamIngestionLoop(turn).run(QueryClient(config).open_query("q", "s"))

        assert turn.status == TurnStatus.FAILED
        assert turn.answer_text.startswith("Error: ")


class TestSourcesClient:
    """Upload success/error contract."""

    @pytest.mark.asyncio
    async def test_file_upload(self):
        async with Upstream() as upstream:
            result = await SourcesClient(upstream.config).upload_file("notes.pdf", b"%PDF", "s1", "application/pdf")

        assert result.message == "Indexing Completed for the given file"
        assert result.file_id == "f-1"
        assert upstream.received == [("upload", "notes.pdf", b"%PDF")]

    @pytest.mark.asyncio
    async def test_file_upload_without_marker_fails(self):
        async with Upstream() as upstream:
            with pytest.raises(UploadError, match="Nothing to index"):
                await SourcesClient(upstream.config).upload_file("empty.pdf", b"", "s1")

    @pytest.mark.asyncio
    async def test_website_default_message(self):
        async with Upstream() as upstream:
            result = await SourcesClient(upstream.config).upload_website("https://example.com", "s1")

        assert result.message == "Indexing Completed for the given website"
        assert result.file_id is None
        assert upstream.received == [("website", {"url": "https://example.com"}, "s1")]

    @pytest.mark.asyncio
    async def test_error_uses_upstream_message(self):
        async with Upstream() as upstream:
            with pytest.raises(UploadError, match="Could not crawl site"):
                await SourcesClient(upstream.config).upload_website("https://bad.example.com", "s1")

    @pytest.mark.asyncio
    async def test_error_without_message_uses_status(self):
        async with Upstream() as upstream:
            with pytest.raises(UploadError, match="Upload failed with status 503"):
                await SourcesClient(upstream.config).upload_youtube("https://youtu.be/x", "s1")

    @pytest.mark.asyncio
    async def test_text_upload_raw_text_response(self):
        async with Upstream() as upstream:
            result = await SourcesClient(upstream.config).upload_text("some notes", "s1")

        assert result.message == "Indexed your text"

    @pytest.mark.asyncio
    async def test_delete_sends_headers(self):
        async with Upstream() as upstream:
            assert await SourcesClient(upstream.config).delete("f-1", "s1") is True

        assert upstream.received == [("delete", "f-1", "s1")]

    @pytest.mark.asyncio
    async def test_delete_unreachable_is_best_effort(self):
        config = {"backend": {"baseUrl": "http://127.0.0.1:9", "connectTimeout": 2}}
        assert await SourcesClient(config).delete("f-1", "s1") is False
