"""Document and dispatch data models."""
from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class SourceDocument:
    """An uploaded PDF as received from the caller."""

    file_name: str
    content: bytes


@dataclass(frozen=True)
class PageRange:
    """Half-open range [start, end) of zero-based page indices."""

    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end <= self.start:
            raise ValueError(f"Invalid page range [{self.start}, {self.end})")

    def __len__(self) -> int:
        return self.end - self.start

    @property
    def display_range(self) -> str:
        """1-based inclusive range, e.g. ``"4-6"``."""
        return f"{self.start + 1}-{self.end}"


@dataclass(frozen=True)
class ChunkArtifact:
    """A standalone PDF built from one page range of the source."""

    chunk_number: int
    page_range: PageRange
    file_name: str
    content: bytes = field(repr=False)

    @property
    def file_size(self) -> int:
        return len(self.content)

    def describe(self) -> "ChunkDescriptor":
        return ChunkDescriptor(
            chunk_number=self.chunk_number,
            page_range=self.page_range.display_range,
            chunk_file_name=self.file_name,
            file_size=self.file_size,
        )


@dataclass
class ChunkedDocument:
    """Result of splitting a source document."""

    total_pages: int
    chunks: List[ChunkArtifact]


@dataclass
class DispatchMetadata:
    """Metadata sent alongside the chunks."""

    original_file_name: str
    total_pages: int
    total_chunks: int
    chunk_size: int


@dataclass
class ChunkDescriptor:
    """Reportable description of a chunk, without its payload."""

    chunk_number: int
    page_range: str
    chunk_file_name: str
    file_size: int


@dataclass
class DispatchSummary:
    original_file_name: str
    total_pages: int
    total_chunks: int
    chunk_size: int
    total_size: int


@dataclass
class WebhookReply:
    """What the webhook answered on a successful dispatch."""

    status: int
    status_text: str
    data: Any = None


@dataclass
class DispatchFailure:
    """Diagnostic details of a failed dispatch."""

    message: str
    code: Optional[str] = None
    response: Any = None


@dataclass
class DispatchOutcome:
    """Result of sending all chunks in one transmission."""

    success: bool
    message: str
    summary: DispatchSummary
    chunks: List[ChunkDescriptor]
    webhook_response: Optional[WebhookReply] = None
    error: Optional[DispatchFailure] = None
