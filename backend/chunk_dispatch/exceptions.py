"""Custom exception classes for PDF chunking."""


class DocumentProcessingError(Exception):
    """Base exception for document processing errors."""
    pass


class DocumentParseError(DocumentProcessingError):
    """Raised when the uploaded bytes cannot be loaded as a PDF."""
    pass


class ChunkConstructionError(DocumentProcessingError):
    """Raised when building or serializing a chunk document fails."""
    pass
