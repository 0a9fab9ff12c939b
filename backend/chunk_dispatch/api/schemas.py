"""Pydantic schemas for API responses."""
from dataclasses import asdict
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from chunk_dispatch.models.document import DispatchOutcome


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChunkInfo(CamelModel):
    """Descriptor of one chunk sent to the webhook."""

    chunk_number: int = Field(..., description="1-based chunk position")
    page_range: str = Field(..., description="1-based inclusive page range, e.g. '4-6'")
    chunk_file_name: str = Field(..., description="File name of the chunk PDF")
    file_size: int = Field(..., description="Chunk size in bytes")


class SplitSummary(CamelModel):
    original_file_name: str
    total_pages: int
    total_chunks: int
    chunk_size: int
    total_size: int = Field(..., description="Sum of all chunk sizes in bytes")


class WebhookResponse(CamelModel):
    status: int
    status_text: str
    data: Any = None


class DispatchError(CamelModel):
    message: str
    code: Optional[str] = None
    response: Any = None


class SplitResponse(CamelModel):
    """Response schema for the PDF split endpoint."""

    success: bool = Field(..., description="Whether the webhook accepted the chunks")
    message: str
    summary: SplitSummary
    webhook_response: Optional[WebhookResponse] = None
    error: Optional[DispatchError] = None
    chunks: List[ChunkInfo]

    @classmethod
    def from_outcome(cls, outcome: DispatchOutcome) -> "SplitResponse":
        return cls.model_validate(asdict(outcome))


class ErrorResponse(BaseModel):
    """Error body returned for rejected uploads and processing failures."""

    error: str
    details: Optional[str] = None
