"""HTML main-content extraction via trafilatura."""

from __future__ import annotations

import structlog
import trafilatura

from tenantrag.interfaces.document_loader import ITextExtractor
from tenantrag.models.ingestion import Document
from tenantrag.providers.extractor.plain_text_extractor import decode_utf8

logger = structlog.get_logger(logger_name=__name__)

_HTML_MIME_TYPES = frozenset({"text/html", "application/xhtml+xml"})


class HtmlTextExtractor(ITextExtractor):
    """Strip navigation, ads and boilerplate from HTML pages.

    When trafilatura finds no main content (e.g. a bare fragment), the
    decoded HTML is returned unchanged.
    """

    def supports(self, mime_type: str) -> bool:
        return mime_type in _HTML_MIME_TYPES

    async def extract(self, document: Document) -> str:
        html = decode_utf8(document, self.get_provider_name())
        text = trafilatura.extract(html, include_comments=False, include_tables=True)
        if not text:
            logger.warning("trafilatura_extraction_empty", source_uri=document.source_uri)
            return html
        logger.debug("html_extracted", source_uri=document.source_uri, length=len(text))
        return text

    def get_provider_name(self) -> str:
        return "html"
