"""Prometheus metrics for the split pipeline."""
from prometheus_client import Counter, Histogram

SPLIT_REQUESTS = Counter(
    "pdf_split_requests_total",
    "Split requests by result",
    ["result"],
)

CHUNKS_CREATED = Counter(
    "pdf_chunks_created_total",
    "Chunk documents built from uploaded PDFs",
)

WEBHOOK_DISPATCHES = Counter(
    "webhook_dispatch_total",
    "Webhook transmissions by outcome",
    ["outcome"],
)

WEBHOOK_DISPATCH_SECONDS = Histogram(
    "webhook_dispatch_seconds",
    "Time spent sending chunks to the webhook",
    buckets=(0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120),
)
