"""Webhook dispatcher: sends every chunk to the automation webhook in one request."""
import asyncio
import json
import time
from typing import Any, List, Optional, Sequence, Tuple

import httpx
from opentelemetry import trace

from chunk_dispatch.models.document import (
    ChunkArtifact,
    DispatchFailure,
    DispatchMetadata,
    DispatchOutcome,
    DispatchSummary,
    WebhookReply,
)
from chunk_dispatch.utils.logger import logger
from chunk_dispatch.utils.metrics import WEBHOOK_DISPATCHES, WEBHOOK_DISPATCH_SECONDS

PDF_MIME_TYPE = "application/pdf"

tracer = trace.get_tracer(__name__)

MultipartPart = Tuple[str, Tuple[Optional[str], bytes, Optional[str]]]


def _text_part(name: str, value: Any) -> MultipartPart:
    return name, (None, str(value).encode("utf-8"), None)


def _response_body(response: httpx.Response) -> Any:
    """Decode a webhook response body as JSON, falling back to text."""
    try:
        return response.json()
    except ValueError:
        return response.text


class WebhookDispatcher:
    """Delivers chunk artifacts and their metadata to a single webhook URL."""

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize webhook dispatcher.

        Args:
            webhook_url: Destination URL that receives the multipart payload
            timeout: Deadline in seconds for the whole transmission, from connect
                until the response body has been read
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.transport = transport

    def build_parts(
        self, artifacts: Sequence[ChunkArtifact], metadata: DispatchMetadata
    ) -> List[MultipartPart]:
        """
        Build the ordered multipart parts for one transmission.

        Metadata fields come first, then for each chunk its PDF part
        followed by a ``chunk_<n>_info`` JSON part.
        """
        parts = [
            _text_part("originalFileName", metadata.original_file_name),
            _text_part("totalPages", metadata.total_pages),
            _text_part("totalChunks", metadata.total_chunks),
        ]

        for chunk in artifacts:
            parts.append(("chunks", (chunk.file_name, chunk.content, PDF_MIME_TYPE)))
            info = {
                "chunkNumber": chunk.chunk_number,
                "pageRange": chunk.page_range.display_range,
                "fileSize": chunk.file_size,
            }
            parts.append(_text_part(f"chunk_{chunk.chunk_number}_info", json.dumps(info)))

        return parts

    async def send(
        self, artifacts: Sequence[ChunkArtifact], metadata: DispatchMetadata
    ) -> DispatchOutcome:
        """
        Send all chunks to the webhook in a single multipart request.

        Transport failures never raise; they are reported through a
        DispatchOutcome with ``success=False``.

        Args:
            artifacts: Chunk artifacts ordered by chunk number
            metadata: Source document metadata

        Returns:
            DispatchOutcome describing what was sent and how the webhook answered
        """
        summary = DispatchSummary(
            original_file_name=metadata.original_file_name,
            total_pages=metadata.total_pages,
            total_chunks=metadata.total_chunks,
            chunk_size=metadata.chunk_size,
            total_size=sum(chunk.file_size for chunk in artifacts),
        )
        descriptors = [chunk.describe() for chunk in artifacts]
        parts = self.build_parts(artifacts, metadata)

        logger.info(
            f"Sending {len(artifacts)} chunks to webhook in a single request",
            extra={
                "original_file_name": metadata.original_file_name,
                "total_chunks": len(artifacts),
                "total_size": summary.total_size,
            },
        )

        start_time = time.time()
        with tracer.start_as_current_span("webhook.dispatch") as span:
            span.set_attribute("webhook.total_chunks", len(artifacts))
            try:
                # httpx timeouts apply per connect/read/write, so a slow
                # trickling reply is bounded by an overall deadline too
                response = await asyncio.wait_for(self._post(parts), timeout=self.timeout)
            except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError) as e:
                failure = self._describe_failure(e)
                elapsed = time.time() - start_time
                span.set_attribute("webhook.error_code", failure.code or "")
                WEBHOOK_DISPATCHES.labels(outcome="failure").inc()
                WEBHOOK_DISPATCH_SECONDS.observe(elapsed)
                logger.error(
                    f"Failed to send chunks: {failure.message}",
                    extra={
                        "original_file_name": metadata.original_file_name,
                        "error_code": failure.code,
                        "dispatch_time_ms": elapsed * 1000,
                    },
                )
                return DispatchOutcome(
                    success=False,
                    message=f"Failed to send chunks to webhook: {failure.message}",
                    summary=summary,
                    chunks=descriptors,
                    error=failure,
                )

            span.set_attribute("webhook.status", response.status_code)

        elapsed = time.time() - start_time
        WEBHOOK_DISPATCHES.labels(outcome="success").inc()
        WEBHOOK_DISPATCH_SECONDS.observe(elapsed)
        logger.info(
            f"All chunks sent successfully: {response.status_code} {response.reason_phrase}",
            extra={
                "original_file_name": metadata.original_file_name,
                "webhook_status": response.status_code,
                "dispatch_time_ms": elapsed * 1000,
            },
        )

        return DispatchOutcome(
            success=True,
            message=f"Successfully sent {metadata.total_chunks} chunks to webhook",
            summary=summary,
            chunks=descriptors,
            webhook_response=WebhookReply(
                status=response.status_code,
                status_text=response.reason_phrase,
                data=_response_body(response),
            ),
        )

    async def _post(self, parts: List[MultipartPart]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.webhook_url, files=parts)
            response.raise_for_status()
            return response

    def _describe_failure(self, error: Exception) -> DispatchFailure:
        """Translate an httpx error or an expired deadline into a DispatchFailure."""
        if isinstance(error, asyncio.TimeoutError):
            return DispatchFailure(
                message=f"Webhook did not respond within {self.timeout:g} seconds",
                code="TIMEOUT",
            )

        if isinstance(error, httpx.HTTPStatusError):
            response = error.response
            return DispatchFailure(
                message=f"Webhook responded with {response.status_code} {response.reason_phrase}".strip(),
                code=f"HTTP_{response.status_code}",
                response=_response_body(response),
            )

        message = str(error) or error.__class__.__name__
        if isinstance(error, httpx.TimeoutException):
            code = "TIMEOUT"
        elif isinstance(error, httpx.ConnectError):
            code = "CONNECTION_ERROR"
        else:
            code = "REQUEST_ERROR"
        return DispatchFailure(message=message, code=code)
