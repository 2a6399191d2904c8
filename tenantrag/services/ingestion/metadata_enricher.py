"""Chunk provenance enrichment.

Attaches document-level provenance (source URI, mime type, indexing
timestamp, title) to each chunk's metadata.  Keys a chunking strategy
already set -- ``chunkIndex``, ``strategy``, ``heading`` -- are kept.
"""

from __future__ import annotations

import structlog

from tenantrag.interfaces.ingestion import IMetadataEnricher
from tenantrag.models import metadata as md
from tenantrag.models.ingestion import Chunk, Document
from tenantrag.utils.clock import Clock, SystemClock

logger = structlog.get_logger(logger_name=__name__)


class DefaultMetadataEnricher(IMetadataEnricher):
    """Merge document provenance into chunk metadata.

    ``sourceUri``, ``mimeType`` and ``indexedAt`` always describe the
    document being ingested.  ``title`` is copied from the document metadata
    when present.  Any other document metadata key is added only if the
    chunk does not already carry a value for it.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()

    def enrich(self, chunk: Chunk, document: Document) -> Chunk:
        merged: dict[str, md.MetadataValue] = dict(chunk.metadata or {})
        document_metadata = document.metadata or {}

        for key, value in document_metadata.items():
            merged.setdefault(key, value)

        merged[md.SOURCE_URI] = document.source_uri
        merged[md.MIME_TYPE] = document.mime_type
        merged[md.INDEXED_AT] = md.format_timestamp(self._clock.now())

        title = document_metadata.get(md.TITLE)
        if title is not None:
            merged[md.TITLE] = title

        logger.debug("chunk_enriched", chunk_id=chunk.id, source_uri=document.source_uri)
        return chunk.with_metadata(merged)
