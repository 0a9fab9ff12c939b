"""FastAPI application entry point."""
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from starlette.responses import Response

from chunk_dispatch.api.routes import split
from chunk_dispatch.services.pdf_chunker import PDFChunker
from chunk_dispatch.services.webhook_dispatcher import WebhookDispatcher
from chunk_dispatch.utils.logger import logger
from chunk_dispatch.utils.tracer import initialize_tracing, shutdown_tracing

SERVICE_NAME = "PDF Chunk Dispatch"


class Settings(BaseSettings):
    """Application settings."""

    # Automation webhook that receives every chunk in one multipart request
    webhook_url: str = "http://localhost:5678/webhook/pdf-chunks"
    dispatch_timeout_seconds: float = Field(default=60.0, gt=0)

    # Pages per chunk
    chunk_size: int = Field(default=3, ge=1)

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    # OpenTelemetry tracing configuration
    tracing_enabled: bool = False
    otlp_endpoint: str = ""  # OTLP endpoint URL (empty = use console exporter)

    model_config = SettingsConfigDict(
        # Look for .env in the repository root and in backend/
        env_file=(
            os.path.join(os.path.dirname(__file__), "..", "..", ".env"),
            os.path.join(os.path.dirname(__file__), "..", ".env"),
        ),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global services (initialized in lifespan)
pdf_chunker: PDFChunker = None
webhook_dispatcher: WebhookDispatcher = None
settings: Settings = None
tracer_provider = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    global pdf_chunker, webhook_dispatcher, settings, tracer_provider

    # Startup
    logger.info(f"Starting {SERVICE_NAME}")
    settings = Settings()

    tracer_provider = initialize_tracing(
        service_version=app.version,
        chunk_size=settings.chunk_size,
        webhook_url=settings.webhook_url,
        otlp_endpoint=settings.otlp_endpoint if settings.otlp_endpoint else None,
        tracing_enabled=settings.tracing_enabled,
    )

    pdf_chunker = PDFChunker()
    webhook_dispatcher = WebhookDispatcher(
        webhook_url=settings.webhook_url,
        timeout=settings.dispatch_timeout_seconds,
    )

    logger.info(
        f"Services initialized: chunk_size={settings.chunk_size}, "
        f"webhook_url={settings.webhook_url}, "
        f"timeout={settings.dispatch_timeout_seconds}s"
    )

    yield

    # Shutdown
    logger.info(f"Shutting down {SERVICE_NAME}")
    if tracer_provider:
        shutdown_tracing(tracer_provider)
    pdf_chunker = None
    webhook_dispatcher = None
    settings = None
    tracer_provider = None


app = FastAPI(
    title=SERVICE_NAME,
    description="Splits uploaded PDF statements into page chunks and forwards them to an automation webhook",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle validation errors.

    A ``file`` form field that is not an uploaded file is reported the same
    way as a missing one.
    """
    errors = exc.errors()

    for error in errors:
        if tuple(error.get("loc", ()))[-1:] == ("file",):
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": split.NO_FILE_ERROR},
            )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(errors)},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify allowed origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": SERVICE_NAME}


@app.get("/metrics")
async def prometheus_metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(split.router, prefix="/api", tags=["pdf"])


if __name__ == "__main__":
    import uvicorn

    run_settings = Settings()
    uvicorn.run(app, host=run_settings.api_host, port=run_settings.api_port)
