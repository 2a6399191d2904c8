"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **load -> extract -> chunk -> enrich -> index**.

:class:`IngestionPipeline` coordinates five injected collaborators without
any of them knowing about each other.  Failure handling is
asymmetric: loader, extractor and chunker errors propagate to the caller
(the document is unusable), while the indexer reports its own failures in
:attr:`IndexResult.errors` and never raises.

:meth:`IngestionPipeline.ingest_batch` fans out over many source URIs with
bounded concurrency; one document failing never aborts the others.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import structlog

from tenantrag.models.ingestion import (
    BatchIndexResult,
    BatchIngestionError,
    ChunkOptions,
    IndexOptions,
    IndexResult,
    UpdateMode,
)
from tenantrag.utils.concurrency import default_concurrency, throttled_gather
from tenantrag.utils.tenant_validator import validate_tenant_id

if TYPE_CHECKING:
    from tenantrag.interfaces.chunking import IChunker
    from tenantrag.interfaces.document_loader import IDocumentLoader, ITextExtractor
    from tenantrag.interfaces.ingestion import (
        IDocumentVersionManager,
        IIndexer,
        IMetadataEnricher,
    )
    from tenantrag.services.tenancy.quota_enforcer import TenantQuotaEnforcer

logger = structlog.get_logger(logger_name=__name__)


class IngestionPipeline:
    """Runs documents through load -> extract -> chunk -> enrich -> index.

    Parameters
    ----------
    loader:
        Fetches raw bytes for a source URI.
    extractor:
        Turns a loaded document into plain text.
    chunker:
        Splits text into chunks according to :class:`ChunkOptions`.
    enricher:
        Merges document provenance into each chunk's metadata.
    indexer:
        Embeds and stores the enriched chunks.
    version_manager:
        Optional.  When present, documents with a ``doc_id`` but no
        ``version_id`` get a freshly generated version id.
    quota_enforcer:
        Optional.  When present, ingestion is refused for tenants over
        their document or storage quota, and successful ingestions are
        recorded against the tenant's usage.
    """

    def __init__(
        self,
        loader: IDocumentLoader,
        extractor: ITextExtractor,
        chunker: IChunker,
        enricher: IMetadataEnricher,
        indexer: IIndexer,
        version_manager: IDocumentVersionManager | None = None,
        quota_enforcer: TenantQuotaEnforcer | None = None,
    ) -> None:
        self._loader = loader
        self._extractor = extractor
        self._chunker = chunker
        self._enricher = enricher
        self._indexer = indexer
        self._version_manager = version_manager
        self._quota_enforcer = quota_enforcer

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        source_uri: str,
        options: IndexOptions,
        chunk_options: ChunkOptions | None = None,
    ) -> IndexResult:
        """Ingest one document.

        Returns
        -------
        IndexResult
            The indexer's result.  A quota denial is reported as a result
            with zero vectors and one error entry.

        Raises
        ------
        tenantrag.utils.errors.ConfigurationError
            If ``options.tenant_id`` is malformed.
        tenantrag.utils.errors.DocumentLoadError
            If the source cannot be loaded.
        tenantrag.utils.errors.ExtractionError
            If the content cannot be turned into text.
        """
        validate_tenant_id(options.tenant_id)
        start = time.monotonic()

        options = self._with_version(options)

        if options.update_mode is UpdateMode.UPDATE:
            await self._check_existing_versions(options)

        if self._quota_enforcer is not None and not await self._quota_enforcer.can_ingest_document(
            options.tenant_id
        ):
            logger.warning(
                "ingestion_quota_exceeded",
                tenant_id=options.tenant_id,
                source_uri=source_uri,
            )
            return IndexResult(
                chunks_indexed=0,
                vectors_created=0,
                errors=[f"quota exceeded for tenant '{options.tenant_id}'"],
            )

        document = await self._loader.load(source_uri)
        text = await self._extractor.extract(document)
        chunks = self._chunker.chunk(text, chunk_options or ChunkOptions())
        enriched = [self._enricher.enrich(chunk, document) for chunk in chunks]

        result = await self._indexer.index(enriched, options)

        if self._quota_enforcer is not None and result.vectors_created > 0:
            await self._quota_enforcer.record_document_ingestion(
                options.tenant_id, result.vectors_created, len(document.content)
            )

        logger.info(
            "document_ingested",
            tenant_id=options.tenant_id,
            source_uri=source_uri,
            doc_id=options.doc_id,
            version_id=options.version_id,
            chunks=result.chunks_indexed,
            vectors=result.vectors_created,
            errors=len(result.errors or []),
            elapsed_s=round(time.monotonic() - start, 3),
        )
        return result

    async def ingest_batch(
        self,
        source_uris: list[str],
        options: IndexOptions,
        chunk_options: ChunkOptions | None = None,
        max_concurrency: int | None = None,
    ) -> BatchIndexResult:
        """Ingest many documents concurrently.

        At most *max_concurrency* documents (default: the host's logical
        core count) are in flight at once.  A document that raises is
        recorded in ``errors``; the rest of the batch carries on.  Results
        are collected in completion order.
        """
        semaphore = asyncio.Semaphore(max_concurrency or default_concurrency())
        results: list[IndexResult] = []
        errors: list[BatchIngestionError] = []
        lock = asyncio.Lock()

        async def _process(uri: str) -> None:
            try:
                result = await self.ingest(uri, options, chunk_options)
            except Exception as exc:
                logger.error("batch_item_failed", source_uri=uri, error=str(exc))
                async with lock:
                    errors.append(BatchIngestionError(source_uri=uri, error_message=str(exc)))
                return
            async with lock:
                results.append(result)

        outcomes = await throttled_gather(
            [_process(uri) for uri in source_uris], semaphore=semaphore
        )
        # _process handles Exception itself; anything else (e.g. cancellation) is re-raised.
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        batch = BatchIndexResult(results=results, errors=errors)
        logger.info(
            "batch_ingested",
            tenant_id=options.tenant_id,
            documents=len(source_uris),
            succeeded=len(results),
            failed=len(errors),
            total_vectors=batch.total_vectors_created,
        )
        return batch

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _with_version(self, options: IndexOptions) -> IndexOptions:
        if options.version_id or self._version_manager is None or not options.doc_id:
            return options
        version_id = self._version_manager.generate_version_id(options.tenant_id, options.doc_id)
        logger.debug("version_id_generated", doc_id=options.doc_id, version_id=version_id)
        return options.model_copy(update={"version_id": version_id})

    async def _check_existing_versions(self, options: IndexOptions) -> None:
        """Log whether the document already has versions.  Never raises."""
        if self._version_manager is None or not options.doc_id:
            return
        try:
            versions = await self._version_manager.list_versions(
                options.tenant_id, options.doc_id, options.collection_name
            )
        except Exception as exc:
            logger.warning(
                "existing_version_check_failed",
                tenant_id=options.tenant_id,
                doc_id=options.doc_id,
                error=str(exc),
            )
            return
        if not versions:
            logger.warning(
                "update_without_existing_versions",
                tenant_id=options.tenant_id,
                doc_id=options.doc_id,
            )
        else:
            logger.info(
                "existing_versions_found",
                tenant_id=options.tenant_id,
                doc_id=options.doc_id,
                count=len(versions),
                latest=versions[0].version_id,
            )
