"""PDF chunking service: splits an uploaded PDF into fixed-size page chunks."""
import math
import threading
import time
from typing import List

import fitz  # PyMuPDF
from opentelemetry import trace

from chunk_dispatch.exceptions import ChunkConstructionError, DocumentParseError
from chunk_dispatch.models.document import (
    ChunkArtifact,
    ChunkedDocument,
    PageRange,
    SourceDocument,
)
from chunk_dispatch.utils.logger import logger
from chunk_dispatch.utils.metrics import CHUNKS_CREATED

tracer = trace.get_tracer(__name__)

# MuPDF keeps global state and is not thread-safe even across separate
# documents, so every split in this process runs under one lock.
_MUPDF_LOCK = threading.Lock()


def plan_page_ranges(total_pages: int, chunk_size: int) -> List[PageRange]:
    """
    Partition ``total_pages`` pages into consecutive ranges of ``chunk_size``.

    The last range holds the remainder when the page count is not a
    multiple of the chunk size. Zero pages yield no ranges.

    Args:
        total_pages: Number of pages in the source document
        chunk_size: Maximum number of pages per chunk

    Returns:
        Ordered list of PageRange objects covering [0, total_pages)

    Raises:
        ValueError: If chunk_size is below 1 or total_pages is negative
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
    if total_pages < 0:
        raise ValueError(f"total_pages cannot be negative, got {total_pages}")

    total_chunks = math.ceil(total_pages / chunk_size)
    ranges = []
    for index in range(total_chunks):
        start = index * chunk_size
        end = min(start + chunk_size, total_pages)
        ranges.append(PageRange(start=start, end=end))
    return ranges


def chunk_file_name(original_file_name: str, chunk_number: int) -> str:
    """Derive ``<stem>_chunk_<n>.pdf`` from the uploaded file name."""
    stem = original_file_name
    if stem.lower().endswith(".pdf"):
        stem = stem[:-4]
    return f"{stem}_chunk_{chunk_number}.pdf"


class PDFChunker:
    """Builds standalone PDF documents from consecutive page ranges."""

    def split(self, document: SourceDocument, chunk_size: int) -> List[ChunkArtifact]:
        """
        Split a document into chunk artifacts.

        Args:
            document: Uploaded source document
            chunk_size: Maximum number of pages per chunk

        Returns:
            Chunk artifacts ordered by chunk number
        """
        return self.split_document(document, chunk_size).chunks

    def split_document(self, document: SourceDocument, chunk_size: int) -> ChunkedDocument:
        """
        Split a document and report the source page count with the chunks.

        Args:
            document: Uploaded source document
            chunk_size: Maximum number of pages per chunk

        Returns:
            ChunkedDocument with total_pages and the ordered chunk artifacts

        Raises:
            ValueError: If chunk_size is below 1
            DocumentParseError: If the bytes cannot be loaded as a PDF
            ChunkConstructionError: If a chunk cannot be built or serialized
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")

        start_time = time.time()

        with _MUPDF_LOCK, tracer.start_as_current_span("pdf.split") as span:
            source = self._open(document)
            try:
                total_pages = source.page_count
                page_ranges = plan_page_ranges(total_pages, chunk_size)
                span.set_attribute("pdf.total_pages", total_pages)
                span.set_attribute("pdf.total_chunks", len(page_ranges))

                logger.info(
                    f"Processing PDF: {document.file_name}, total pages: {total_pages}",
                    extra={
                        "original_file_name": document.file_name,
                        "total_pages": total_pages,
                        "chunk_size": chunk_size,
                    },
                )

                chunks = []
                for chunk_number, page_range in enumerate(page_ranges, 1):
                    chunk = self._build_chunk(source, document.file_name, chunk_number, page_range)
                    chunks.append(chunk)
                    logger.debug(
                        f"Chunk {chunk_number}/{len(page_ranges)} created ({chunk.file_size} bytes)",
                        extra={"chunk_number": chunk_number},
                    )
            finally:
                source.close()

        CHUNKS_CREATED.inc(len(chunks))
        logger.info(
            f"Created {len(chunks)} chunks from {document.file_name}",
            extra={
                "original_file_name": document.file_name,
                "total_chunks": len(chunks),
                "total_size": sum(chunk.file_size for chunk in chunks),
                "split_time_ms": (time.time() - start_time) * 1000,
            },
        )
        return ChunkedDocument(total_pages=total_pages, chunks=chunks)

    def _open(self, document: SourceDocument) -> fitz.Document:
        """Load the uploaded bytes as a PDF document."""
        try:
            source = fitz.open(stream=document.content, filetype="pdf")
        except Exception as e:
            logger.error(f"Error opening PDF {document.file_name}: {str(e)}")
            raise DocumentParseError(f"Failed to load PDF: {str(e)}") from e

        if source.needs_pass:
            source.close()
            raise DocumentParseError("PDF is password-protected or encrypted")

        return source

    def _build_chunk(
        self,
        source: fitz.Document,
        original_file_name: str,
        chunk_number: int,
        page_range: PageRange,
    ) -> ChunkArtifact:
        """Copy one page range into a new PDF and serialize it."""
        chunk_doc = fitz.open()
        try:
            # insert_pdf takes an inclusive last page
            chunk_doc.insert_pdf(source, from_page=page_range.start, to_page=page_range.end - 1)
            content = chunk_doc.tobytes(garbage=3, deflate=True)
        except Exception as e:
            raise ChunkConstructionError(
                f"Failed to build chunk {chunk_number} (pages {page_range.display_range}): {str(e)}"
            ) from e
        finally:
            chunk_doc.close()

        return ChunkArtifact(
            chunk_number=chunk_number,
            page_range=page_range,
            file_name=chunk_file_name(original_file_name, chunk_number),
            content=content,
        )
