"""Abstract base classes for document loading and text extraction.

A loader turns a source URI into raw bytes plus a mime type; an extractor
turns those bytes into plain text.  Both stages are fatal for a single
document -- the ingestion pipeline lets their errors propagate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tenantrag.models.ingestion import Document


# Concrete implementations (tenantrag/providers/loader/):
#   FileDocumentLoader, HttpDocumentLoader, CompositeDocumentLoader
class IDocumentLoader(ABC):
    """Contract for fetching a document from a source URI."""

    @abstractmethod
    async def load(self, source_uri: str) -> Document:
        """Fetch *source_uri* and return it as a :class:`Document`.

        Raises
        ------
        tenantrag.utils.errors.DocumentLoadError
            If the source cannot be read.
        """

    @abstractmethod
    def supports(self, source_uri: str) -> bool:
        """Return ``True`` if this loader can handle *source_uri*."""


# Concrete implementations (tenantrag/providers/extractor/):
#   PlainTextExtractor, HtmlTextExtractor, MimeRoutingExtractor
class ITextExtractor(ABC):
    """Contract for turning a loaded document into plain text."""

    @abstractmethod
    async def extract(self, document: Document) -> str:
        """Return the text content of *document*.

        Raises
        ------
        tenantrag.utils.errors.ExtractionError
            If the content cannot be decoded.
        """

    @abstractmethod
    def supports(self, mime_type: str) -> bool:
        """Return ``True`` if this extractor understands *mime_type*."""
