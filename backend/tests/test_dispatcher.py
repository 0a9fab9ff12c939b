"""Tests for the webhook dispatcher."""
import asyncio
import json
import time

import httpx
import pytest

from chunk_dispatch.models.document import DispatchMetadata
from chunk_dispatch.services.webhook_dispatcher import PDF_MIME_TYPE, WebhookDispatcher

WEBHOOK_URL = "http://automation.test/webhook/pdf-chunks"


def recording_transport(handler):
    """Wrap a handler so every request it sees is kept."""
    seen = []

    def record(request: httpx.Request):
        seen.append(request)
        return handler(request)

    return httpx.MockTransport(record), seen


class TestBuildParts:
    """Tests for multipart layout."""

    def test_part_names_and_order(self, sample_artifacts, sample_metadata):
        dispatcher = WebhookDispatcher(WEBHOOK_URL)
        parts = dispatcher.build_parts(sample_artifacts, sample_metadata)

        assert [name for name, _ in parts] == [
            "originalFileName",
            "totalPages",
            "totalChunks",
            "chunks",
            "chunk_1_info",
            "chunks",
            "chunk_2_info",
            "chunks",
            "chunk_3_info",
        ]

    def test_metadata_values(self, sample_artifacts, sample_metadata):
        parts = dict(WebhookDispatcher(WEBHOOK_URL).build_parts(sample_artifacts, sample_metadata)[:3])

        assert parts["originalFileName"] == (None, b"statement.pdf", None)
        assert parts["totalPages"] == (None, b"7", None)
        assert parts["totalChunks"] == (None, b"3", None)

    def test_chunk_parts(self, sample_artifacts, sample_metadata):
        parts = WebhookDispatcher(WEBHOOK_URL).build_parts(sample_artifacts, sample_metadata)
        file_parts = [value for name, value in parts if name == "chunks"]

        assert [p[0] for p in file_parts] == [a.file_name for a in sample_artifacts]
        assert [p[1] for p in file_parts] == [a.content for a in sample_artifacts]
        assert all(p[2] == PDF_MIME_TYPE for p in file_parts)

    def test_chunk_info_json(self, sample_artifacts, sample_metadata):
        parts = dict(
            (name, value)
            for name, value in WebhookDispatcher(WEBHOOK_URL).build_parts(sample_artifacts, sample_metadata)
            if name.endswith("_info")
        )

        info = json.loads(parts["chunk_3_info"][1])
        assert info == {
            "chunkNumber": 3,
            "pageRange": "7-7",
            "fileSize": sample_artifacts[2].file_size,
        }


class TestSend:
    """Tests for WebhookDispatcher.send."""

    @pytest.mark.asyncio
    async def test_success_sends_one_request(self, sample_artifacts, sample_metadata):
        transport, seen = recording_transport(
            lambda request: httpx.Response(200, json={"received": True})
        )
        dispatcher = WebhookDispatcher(WEBHOOK_URL, transport=transport)

        outcome = await dispatcher.send(sample_artifacts, sample_metadata)

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == WEBHOOK_URL
        assert request.headers["content-type"].startswith("multipart/form-data")

        body = request.content
        assert body.count(b'name="chunks"') == 3
        for artifact in sample_artifacts:
            assert f'filename="{artifact.file_name}"'.encode() in body
            assert f'name="chunk_{artifact.chunk_number}_info"'.encode() in body
        assert b'name="originalFileName"' in body
        assert b"Content-Type: application/pdf" in body

        assert outcome.success is True
        assert outcome.message == "Successfully sent 3 chunks to webhook"
        assert outcome.error is None
        assert outcome.webhook_response.status == 200
        assert outcome.webhook_response.status_text == "OK"
        assert outcome.webhook_response.data == {"received": True}

    @pytest.mark.asyncio
    async def test_summary_and_descriptors(self, sample_artifacts, sample_metadata):
        transport, _ = recording_transport(lambda request: httpx.Response(200, text="ok"))
        outcome = await WebhookDispatcher(WEBHOOK_URL, transport=transport).send(
            sample_artifacts, sample_metadata
        )

        assert outcome.summary.original_file_name == "statement.pdf"
        assert outcome.summary.total_pages == 7
        assert outcome.summary.total_chunks == 3
        assert outcome.summary.chunk_size == 3
        assert outcome.summary.total_size == sum(a.file_size for a in sample_artifacts)
        assert [c.page_range for c in outcome.chunks] == ["1-3", "4-6", "7-7"]
        assert outcome.webhook_response.data == "ok"

    @pytest.mark.asyncio
    async def test_connection_error(self, sample_artifacts, sample_metadata):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        transport, _ = recording_transport(refuse)
        outcome = await WebhookDispatcher(WEBHOOK_URL, transport=transport).send(
            sample_artifacts, sample_metadata
        )

        assert outcome.success is False
        assert outcome.error.code == "CONNECTION_ERROR"
        assert outcome.error.message == "Connection refused"
        assert outcome.message.startswith("Failed to send chunks to webhook")
        assert outcome.webhook_response is None
        assert outcome.summary.total_chunks == 3
        assert len(outcome.chunks) == 3

    @pytest.mark.asyncio
    async def test_timeout(self, sample_artifacts, sample_metadata):
        def stall(request):
            raise httpx.ReadTimeout("", request=request)

        transport, _ = recording_transport(stall)
        outcome = await WebhookDispatcher(WEBHOOK_URL, timeout=0.5, transport=transport).send(
            sample_artifacts, sample_metadata
        )

        assert outcome.success is False
        assert outcome.error.code == "TIMEOUT"
        assert outcome.error.message == "ReadTimeout"

    @pytest.mark.asyncio
    async def test_error_status_echoes_response(self, sample_artifacts, sample_metadata):
        transport, _ = recording_transport(
            lambda request: httpx.Response(500, json={"message": "workflow failed"})
        )
        outcome = await WebhookDispatcher(WEBHOOK_URL, transport=transport).send(
            sample_artifacts, sample_metadata
        )

        assert outcome.success is False
        assert outcome.error.code == "HTTP_500"
        assert "500" in outcome.error.message
        assert outcome.error.response == {"message": "workflow failed"}

    @pytest.mark.asyncio
    async def test_webhook_not_registered(self, sample_artifacts, sample_metadata):
        transport, _ = recording_transport(lambda request: httpx.Response(404, text=""))
        outcome = await WebhookDispatcher(WEBHOOK_URL, transport=transport).send(
            sample_artifacts, sample_metadata
        )

        assert outcome.success is False
        assert outcome.error.code == "HTTP_404"
        assert outcome.error.response == ""

    @pytest.mark.asyncio
    async def test_invalid_url_is_a_failure(self, sample_artifacts, sample_metadata):
        outcome = await WebhookDispatcher("not-a-url").send(sample_artifacts, sample_metadata)

        assert outcome.success is False
        assert outcome.error.message

    @pytest.mark.asyncio
    async def test_zero_chunks_still_dispatched(self):
        transport, seen = recording_transport(lambda request: httpx.Response(200, json={}))
        metadata = DispatchMetadata(
            original_file_name="empty.pdf", total_pages=0, total_chunks=0, chunk_size=3
        )

        outcome = await WebhookDispatcher(WEBHOOK_URL, transport=transport).send([], metadata)

        assert len(seen) == 1
        assert seen[0].headers["content-type"].startswith("multipart/form-data")
        assert b'name="totalChunks"' in seen[0].content
        assert outcome.success is True
        assert outcome.summary.total_chunks == 0
        assert outcome.summary.total_size == 0
        assert outcome.chunks == []

    @pytest.mark.asyncio
    async def test_repeated_sends_are_independent(self, sample_artifacts, sample_metadata):
        transport, seen = recording_transport(lambda request: httpx.Response(200, json={}))
        dispatcher = WebhookDispatcher(WEBHOOK_URL, transport=transport)

        first = await dispatcher.send(sample_artifacts, sample_metadata)
        second = await dispatcher.send(sample_artifacts, sample_metadata)

        assert len(seen) == 2
        assert first == second

    @pytest.mark.asyncio
    async def test_empty_success_body_kept(self, sample_artifacts, sample_metadata):
        transport, _ = recording_transport(lambda request: httpx.Response(204))
        outcome = await WebhookDispatcher(WEBHOOK_URL, transport=transport).send(
            sample_artifacts, sample_metadata
        )

        assert outcome.success is True
        assert outcome.webhook_response.status == 204
        assert outcome.webhook_response.data == ""


async def trickle_reply(reader, writer):
    """Answer with a 10-byte body, one byte every 0.3 seconds."""
    await reader.readuntil(b"\r\n\r\n")
    try:
        writer.write(b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\nContent-Length: 10\r\n\r\n")
        await writer.drain()
        for _ in range(10):
            await asyncio.sleep(0.3)
            writer.write(b".")
            await writer.drain()
    except ConnectionError:
        pass
    finally:
        writer.close()


class TestDispatchDeadline:
    """The timeout bounds the whole transmission, not each socket operation."""

    @pytest.mark.asyncio
    async def test_slow_reply_fails_at_deadline(self, sample_metadata):
        server = await asyncio.start_server(trickle_reply, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        dispatcher = WebhookDispatcher(f"http://127.0.0.1:{port}/webhook", timeout=0.5)

        async with server:
            start = time.monotonic()
            outcome = await dispatcher.send([], sample_metadata)
            elapsed = time.monotonic() - start

        assert elapsed < 1.5
        assert outcome.success is False
        assert outcome.error.code == "TIMEOUT"
        assert outcome.error.message == "Webhook did not respond within 0.5 seconds"
        assert outcome.webhook_response is None
