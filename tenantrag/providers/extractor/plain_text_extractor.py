"""UTF-8 text extraction for plain text, Markdown and JSON documents."""

from __future__ import annotations

import structlog

from tenantrag.interfaces.document_loader import ITextExtractor
from tenantrag.models.ingestion import Document
from tenantrag.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

_KNOWN_MIME_TYPES = frozenset({"application/json", "application/octet-stream"})


def decode_utf8(document: Document, provider_name: str) -> str:
    """Decode *document* as UTF-8 (a leading BOM is dropped)."""
    try:
        return document.content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ExtractionError(
            message=f"{document.source_uri} is not valid UTF-8: {exc}",
            provider_name=provider_name,
        ) from exc


class PlainTextExtractor(ITextExtractor):
    """Return the document's bytes decoded as UTF-8, unchanged.

    Markdown is passed through as-is so heading-aware chunking can still
    see the ``#`` markers.  Unknown mime types are decoded too, with a
    warning.
    """

    def supports(self, mime_type: str) -> bool:
        return mime_type.startswith("text/") or mime_type in _KNOWN_MIME_TYPES

    async def extract(self, document: Document) -> str:
        if not self.supports(document.mime_type):
            logger.warning(
                "unknown_mime_type_decoded_as_text",
                source_uri=document.source_uri,
                mime_type=document.mime_type,
            )
        text = decode_utf8(document, self.get_provider_name())
        logger.debug("text_extracted", source_uri=document.source_uri, length=len(text))
        return text

    def get_provider_name(self) -> str:
        return "plain-text"
