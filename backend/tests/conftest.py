"""Pytest configuration and fixtures."""
import pytest
import fitz  # PyMuPDF

from chunk_dispatch.models.document import ChunkArtifact, DispatchMetadata, PageRange


def build_pdf(page_count: int, **save_options) -> bytes:
    """Create a PDF whose pages read "Statement page <n>"."""
    doc = fitz.open()
    for page_number in range(1, page_count + 1):
        page = doc.new_page()
        page.insert_text((72, 72), f"Statement page {page_number}")
    content = doc.tobytes(**save_options)
    doc.close()
    return content


@pytest.fixture
def make_pdf():
    """Factory fixture producing PDFs with a given number of pages."""
    return build_pdf


@pytest.fixture
def seven_page_pdf():
    """Seven page statement used by the end-to-end scenarios."""
    return build_pdf(7)


@pytest.fixture
def sample_artifacts():
    """Three chunk artifacts covering a seven page document in chunks of three."""
    ranges = [PageRange(0, 3), PageRange(3, 6), PageRange(6, 7)]
    return [
        ChunkArtifact(
            chunk_number=number,
            page_range=page_range,
            file_name=f"statement_chunk_{number}.pdf",
            content=b"%PDF-1.7 chunk " + str(number).encode() * number,
        )
        for number, page_range in enumerate(ranges, 1)
    ]


@pytest.fixture
def sample_metadata():
    """Dispatch metadata matching sample_artifacts."""
    return DispatchMetadata(
        original_file_name="statement.pdf",
        total_pages=7,
        total_chunks=3,
        chunk_size=3,
    )
