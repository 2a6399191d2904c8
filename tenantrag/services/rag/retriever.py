"""Tenant-scoped semantic retrieval.

Every query is restricted to the caller's tenant: the tenant predicate is
always part of the filter sent to the vector store, and a caller-supplied
filter can only narrow it further.
"""

from __future__ import annotations

import structlog

from tenantrag.interfaces.embedding_provider import IEmbeddingRouter
from tenantrag.interfaces.vector_store_provider import IVectorStoreProvider
from tenantrag.models import metadata as md
from tenantrag.models.filters import AndFilter, VectorFilter, tenant_filter
from tenantrag.models.ingestion import Chunk
from tenantrag.models.rag import RagChunk, RetrieveRequest, RetrieveResult
from tenantrag.models.vector import VectorMatch
from tenantrag.utils.errors import EmbeddingContractError
from tenantrag.utils.tenant_validator import validate_tenant_id

logger = structlog.get_logger(logger_name=__name__)


class VectorRetriever:
    """Embed a query and fetch the tenant's closest chunks.

    Parameters
    ----------
    embedding_router:
        Selects the embedding provider for the querying tenant.  It must be
        the same provider the tenant's documents were indexed with.
    vector_store:
        Store to search.
    """

    def __init__(
        self,
        embedding_router: IEmbeddingRouter,
        vector_store: IVectorStoreProvider,
    ) -> None:
        self._router = embedding_router
        self._vector_store = vector_store

    async def retrieve(
        self,
        query: str,
        tenant_id: str,
        top_k: int = 5,
        filter: VectorFilter | None = None,
        collection: str | None = None,
    ) -> RetrieveResult:
        """Return up to *top_k* chunks for *query*, best first.

        Raises
        ------
        ValueError
            If *tenant_id* is empty.
        tenantrag.utils.errors.ConfigurationError
            If *tenant_id* is malformed.
        tenantrag.utils.errors.EmbeddingContractError
            If the embedding provider returns no vector.
        tenantrag.utils.errors.RAGError
            If embedding or the store query fails.
        """
        if not tenant_id or not tenant_id.strip():
            raise ValueError("tenant_id must not be empty")
        validate_tenant_id(tenant_id)

        provider = self._router.select(tenant_id)
        vectors = await provider.embed([query])
        if not vectors:
            raise EmbeddingContractError(
                message="Embedding provider returned no vector for the query",
                provider_name=provider.get_provider_name(),
            )
        query_vector = vectors[0]

        scope = tenant_filter(tenant_id)
        effective: VectorFilter = AndFilter((scope, filter)) if filter is not None else scope

        matches = await self._vector_store.query(
            query_vector,
            top_k,
            filter=effective,
            tenant_id=tenant_id,
            collection=collection,
        )
        chunks = [self._to_rag_chunk(m) for m in matches]

        logger.info(
            "retrieval_complete",
            tenant_id=tenant_id,
            top_k=top_k,
            matches=len(chunks),
            filtered=filter is not None,
        )
        return RetrieveResult(
            chunks=chunks,
            query_vector=query_vector,
            total_matches=len(chunks),
        )

    async def retrieve_request(self, request: RetrieveRequest) -> RetrieveResult:
        return await self.retrieve(
            request.query,
            request.tenant_id,
            top_k=request.top_k,
            filter=request.filter,
            collection=request.collection_name,
        )

    @staticmethod
    def _to_rag_chunk(match: VectorMatch) -> RagChunk:
        record = match.record
        metadata = record.metadata or {}
        start = md.get_int(metadata, md.START_INDEX)
        end = md.get_int(metadata, md.END_INDEX)
        if start is None or end is None or start < 0 or end <= start:
            start, end = 0, max(len(record.text), 1)

        chunk = Chunk(
            id=record.chunk_id or record.id,
            text=record.text,
            start_index=start,
            end_index=end,
            metadata=dict(metadata) if metadata else None,
        )
        return RagChunk(
            chunk=chunk,
            score=match.score,
            source_uri=record.source_uri or md.get_source_uri(metadata),
            doc_id=record.doc_id or md.get_doc_id(metadata),
        )
