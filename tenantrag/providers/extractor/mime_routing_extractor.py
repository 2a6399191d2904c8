"""Dispatch extraction to an extractor chosen by mime type."""

from __future__ import annotations

import structlog

from tenantrag.interfaces.document_loader import ITextExtractor
from tenantrag.models.ingestion import Document
from tenantrag.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class MimeRoutingExtractor(ITextExtractor):
    """Use the first of *extractors* that supports the document's mime type.

    Parameters
    ----------
    extractors:
        Candidates, in priority order.
    fallback:
        Used when no candidate supports the mime type.  Without one, such
        documents raise :class:`ExtractionError`.
    """

    def __init__(
        self,
        extractors: list[ITextExtractor],
        fallback: ITextExtractor | None = None,
    ) -> None:
        self._extractors = list(extractors)
        self._fallback = fallback

    def supports(self, mime_type: str) -> bool:
        return self._fallback is not None or any(e.supports(mime_type) for e in self._extractors)

    async def extract(self, document: Document) -> str:
        for extractor in self._extractors:
            if extractor.supports(document.mime_type):
                return await extractor.extract(document)
        if self._fallback is not None:
            logger.debug(
                "extractor_fallback",
                source_uri=document.source_uri,
                mime_type=document.mime_type,
            )
            return await self._fallback.extract(document)
        raise ExtractionError(
            message=f"No extractor for mime type '{document.mime_type}'",
            provider_name="mime-router",
        )
