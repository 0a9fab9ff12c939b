"""OpenTelemetry tracing for the pdf.split and webhook.dispatch spans."""
from typing import Optional
from urllib.parse import urlsplit

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

from chunk_dispatch.utils.logger import logger


def build_tracer_provider(
    service_name: str,
    service_version: str,
    chunk_size: int,
    webhook_url: str,
    exporter: SpanExporter,
) -> TracerProvider:
    """
    Build a tracer provider whose resource describes this dispatch service.

    Only the webhook host is recorded. Webhook paths may carry secret tokens.
    """
    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": service_version,
            "chunk_dispatch.chunk_size": chunk_size,
            "chunk_dispatch.webhook.host": urlsplit(webhook_url).netloc,
        }
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def initialize_tracing(
    service_version: str,
    chunk_size: int,
    webhook_url: str,
    otlp_endpoint: Optional[str] = None,
    tracing_enabled: bool = True,
    service_name: str = "pdf-chunk-dispatch",
) -> Optional[TracerProvider]:
    """
    Install the global tracer provider used by the chunker and dispatcher.

    Args:
        service_version: Application version
        chunk_size: Configured pages per chunk, recorded on every span's resource
        webhook_url: Configured webhook; only its host is recorded
        otlp_endpoint: OTLP HTTP endpoint (e.g. http://localhost:4318/v1/traces).
                      Spans go to the console when it is empty.
        tracing_enabled: Enable/disable tracing
        service_name: Name reported to the trace backend

    Returns:
        The installed TracerProvider, or None when tracing is off or setup failed
    """
    if not tracing_enabled:
        logger.info("Tracing is disabled")
        return None

    try:
        if otlp_endpoint:
            exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
        else:
            exporter = ConsoleSpanExporter()

        provider = build_tracer_provider(
            service_name, service_version, chunk_size, webhook_url, exporter
        )
        trace.set_tracer_provider(provider)
    except Exception as e:
        logger.error(f"Failed to initialize tracing: {str(e)}", exc_info=True)
        return None

    logger.info(
        f"Tracing initialized with {type(exporter).__name__}"
        + (f": {otlp_endpoint}" if otlp_endpoint else "")
    )
    return provider


def shutdown_tracing(tracer_provider: Optional[TracerProvider]) -> None:
    """Flush pending spans and stop the exporter."""
    if tracer_provider:
        try:
            tracer_provider.shutdown()
            logger.info("Tracing shutdown completed")
        except Exception as e:
            logger.warning(f"Error during tracing shutdown: {str(e)}")
