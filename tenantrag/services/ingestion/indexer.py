"""Embedding and upsert of chunks as versioned vector records.

Indexing steps for one batch of chunks:

    1. Pick the tenant's embedding provider from the router.
    2. Embed every chunk text in a single call.  The provider must return
       exactly one vector per text, in order -- chunks and vectors are
       zipped positionally, so a count mismatch aborts the batch.
    3. Build one :class:`VectorRecord` per chunk with merged provenance.
    4. For ``UpdateMode.UPDATE`` with ``delete_old_versions``, purge the
       records of every other version of the document.  Cleanup failures
       are logged and ignored; the new version is still written.
    5. Upsert all new records in one call.

:meth:`DefaultIndexer.index` never raises.  Every failure ends up in
``IndexResult.errors`` and ``vectors_created`` counts only what was
actually written.
"""

from __future__ import annotations

import structlog

from tenantrag.interfaces.embedding_provider import IEmbeddingRouter
from tenantrag.interfaces.ingestion import IIndexer
from tenantrag.interfaces.vector_store_provider import IVectorStoreProvider
from tenantrag.models import metadata as md
from tenantrag.models.filters import AndFilter, VectorFilter, VectorFilterBuilder
from tenantrag.models.ingestion import Chunk, IndexOptions, IndexResult, UpdateMode
from tenantrag.models.vector import VectorRecord
from tenantrag.utils.clock import Clock, SystemClock
from tenantrag.utils.errors import EmbeddingContractError
from tenantrag.utils.tenant_validator import validate_tenant_id

logger = structlog.get_logger(logger_name=__name__)

# Upper bound used to approximate "every record of this document".
_CLEANUP_TOP_K = 10_000


class DefaultIndexer(IIndexer):
    """Embeds chunks and upserts them into the vector store.

    Parameters
    ----------
    embedding_router:
        Selects the embedding provider for the tenant being indexed.
    vector_store:
        Destination store.
    clock:
        Source of the ``createdAt`` timestamp stamped on every record.
    """

    def __init__(
        self,
        embedding_router: IEmbeddingRouter,
        vector_store: IVectorStoreProvider,
        clock: Clock | None = None,
    ) -> None:
        self._router = embedding_router
        self._vector_store = vector_store
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def index(self, chunks: list[Chunk], options: IndexOptions) -> IndexResult:
        if not chunks:
            return IndexResult(chunks_indexed=0, vectors_created=0)

        errors: list[str] = []
        vectors_created = 0

        try:
            validate_tenant_id(options.tenant_id)
            provider = self._router.select(options.tenant_id)
            texts = [c.text for c in chunks]
            vectors = await provider.embed(texts)

            if len(vectors) != len(chunks):
                raise EmbeddingContractError(
                    message=f"Expected {len(chunks)} embeddings but got {len(vectors)}",
                    provider_name=provider.get_provider_name(),
                )

            records = self._build_records(chunks, vectors, options)

            if (
                options.update_mode is UpdateMode.UPDATE
                and options.delete_old_versions
                and options.doc_id
            ):
                await self._delete_old_versions(options)

            await self._vector_store.upsert(records, options.collection_name)
            vectors_created = len(records)

            logger.info(
                "chunks_indexed",
                tenant_id=options.tenant_id,
                doc_id=options.doc_id,
                version_id=options.version_id,
                count=vectors_created,
            )
        except Exception as exc:
            logger.error(
                "indexing_failed",
                tenant_id=options.tenant_id,
                doc_id=options.doc_id,
                error=str(exc),
            )
            errors.append(str(exc))

        return IndexResult(
            chunks_indexed=len(chunks),
            vectors_created=vectors_created,
            errors=errors or None,
        )

    # ------------------------------------------------------------------
    # Record construction
    # ------------------------------------------------------------------

    def _build_records(
        self,
        chunks: list[Chunk],
        vectors: list[list[float]],
        options: IndexOptions,
    ) -> list[VectorRecord]:
        created_at = md.format_timestamp(self._clock.now())
        doc_id = options.doc_id or ""
        records: list[VectorRecord] = []

        for chunk, vector in zip(chunks, vectors, strict=True):
            metadata: dict[str, md.MetadataValue] = {
                md.TEXT: chunk.text,
                md.SOURCE_URI: doc_id,
                md.CREATED_AT: created_at,
                md.START_INDEX: chunk.start_index,
                md.END_INDEX: chunk.end_index,
            }
            metadata.update(chunk.metadata or {})
            # Identity keys always win over chunk metadata.
            metadata[md.DOC_ID] = doc_id
            metadata[md.CHUNK_ID] = chunk.id
            metadata[md.TENANT_ID] = options.tenant_id
            if options.version_id:
                metadata[md.VERSION_ID] = options.version_id
            else:
                metadata.pop(md.VERSION_ID, None)

            records.append(
                VectorRecord(
                    id=self._record_id(chunk, options),
                    vector=vector,
                    text=chunk.text,
                    metadata=metadata,
                    source_uri=md.get_source_uri(metadata),
                    doc_id=options.doc_id,
                    chunk_id=chunk.id,
                    tenant_id=options.tenant_id,
                    version_id=options.version_id,
                )
            )
        return records

    @staticmethod
    def _record_id(chunk: Chunk, options: IndexOptions) -> str:
        if options.doc_id and options.version_id:
            return f"{options.doc_id}_{options.version_id}_{chunk.id}"
        return chunk.id

    # ------------------------------------------------------------------
    # Version cleanup
    # ------------------------------------------------------------------

    async def _delete_old_versions(self, options: IndexOptions) -> None:
        """Delete records of *options.doc_id* that belong to other versions."""
        scope = (
            VectorFilterBuilder()
            .equal(md.DOC_ID, options.doc_id or "")
            .equal(md.TENANT_ID, options.tenant_id)
        )
        stale_filter: VectorFilter = scope.build()
        if options.version_id:
            current = VectorFilterBuilder().equal(md.VERSION_ID, options.version_id).not_()
            stale_filter = AndFilter(scope.nodes + (current,))

        try:
            matches = await self._vector_store.query(
                None,
                _CLEANUP_TOP_K,
                filter=stale_filter,
                tenant_id=options.tenant_id,
                collection=options.collection_name,
            )
            stale_ids = [m.record.id for m in matches]
            if stale_ids:
                await self._vector_store.delete(stale_ids, options.collection_name)
            logger.info(
                "old_versions_deleted",
                tenant_id=options.tenant_id,
                doc_id=options.doc_id,
                kept_version=options.version_id,
                deleted=len(stale_ids),
            )
        except Exception as exc:
            logger.warning(
                "old_version_cleanup_failed",
                tenant_id=options.tenant_id,
                doc_id=options.doc_id,
                error=str(exc),
            )
