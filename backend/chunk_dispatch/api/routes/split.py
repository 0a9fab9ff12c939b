"""PDF split endpoint: chunks an uploaded PDF and forwards it to the webhook."""
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from chunk_dispatch.api.schemas import ErrorResponse, SplitResponse
from chunk_dispatch.exceptions import DocumentProcessingError
from chunk_dispatch.models.document import DispatchMetadata, SourceDocument
from chunk_dispatch.services.pdf_chunker import PDFChunker
from chunk_dispatch.services.webhook_dispatcher import PDF_MIME_TYPE, WebhookDispatcher
from chunk_dispatch.utils.logger import logger
from chunk_dispatch.utils.metrics import SPLIT_REQUESTS


router = APIRouter()

NO_FILE_ERROR = "No file uploaded"
NOT_PDF_ERROR = "File must be a PDF"
PROCESSING_ERROR = "Failed to process PDF"


def get_chunker() -> PDFChunker:
    """Get PDF chunker from main app."""
    from chunk_dispatch.main import pdf_chunker
    if pdf_chunker is None:
        raise HTTPException(status_code=503, detail="PDF chunker not initialized")
    return pdf_chunker


def get_dispatcher() -> WebhookDispatcher:
    """Get webhook dispatcher from main app."""
    from chunk_dispatch.main import webhook_dispatcher
    if webhook_dispatcher is None:
        raise HTTPException(status_code=503, detail="Webhook dispatcher not initialized")
    return webhook_dispatcher


def get_app_settings():
    """Get application settings from main app."""
    from chunk_dispatch.main import settings
    if settings is None:
        raise HTTPException(status_code=503, detail="Settings not initialized")
    return settings


def error_response(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@router.post(
    "/pdf/split",
    response_model=SplitResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def split_pdf(
    file: Annotated[Optional[UploadFile], File()] = None,
    chunker: PDFChunker = Depends(get_chunker),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
    app_settings=Depends(get_app_settings),
):
    """
    Split an uploaded PDF into page chunks and send them to the webhook.

    Args:
        file: PDF file to split
        chunker: PDF chunker instance
        dispatcher: Webhook dispatcher instance
        app_settings: Application settings

    Returns:
        SplitResponse with the dispatch outcome, even when the webhook failed
    """
    if file is None:
        SPLIT_REQUESTS.labels(result="rejected").inc()
        return error_response(400, NO_FILE_ERROR)

    if file.content_type != PDF_MIME_TYPE:
        SPLIT_REQUESTS.labels(result="rejected").inc()
        logger.info(f"Rejected upload {file.filename} with content type {file.content_type}")
        return error_response(400, NOT_PDF_ERROR)

    content = await file.read()
    document = SourceDocument(file_name=file.filename or "document.pdf", content=content)

    try:
        chunked = await run_in_threadpool(chunker.split_document, document, app_settings.chunk_size)
    except DocumentProcessingError as e:
        SPLIT_REQUESTS.labels(result="error").inc()
        logger.error(f"Error processing PDF {document.file_name}: {str(e)}", exc_info=True)
        return error_response(500, PROCESSING_ERROR, str(e))

    metadata = DispatchMetadata(
        original_file_name=document.file_name,
        total_pages=chunked.total_pages,
        total_chunks=len(chunked.chunks),
        chunk_size=app_settings.chunk_size,
    )
    outcome = await dispatcher.send(chunked.chunks, metadata)

    SPLIT_REQUESTS.labels(result="dispatched" if outcome.success else "dispatch_failed").inc()
    return SplitResponse.from_outcome(outcome)
