"""Retrieval models for the RAG layer.

RAG (Retrieval-Augmented Generation) in tenantrag:

    1. INGESTION: documents are chunked and embedded into vector records,
       each stamped with its tenant, document and version.
    2. RETRIEVAL: a query is embedded and matched against the store, always
       restricted to the caller's tenant.
    3. COMPOSITION: the matched chunks are folded into the chat request as
       a grounding system message.

:class:`RetrieveResult` is the hand-off between steps 2 and 3.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from tenantrag.models.filters import VectorFilter
from tenantrag.models.ingestion import Chunk


class RagChunk(BaseModel):
    """A retrieved chunk annotated with its similarity score and provenance."""

    model_config = ConfigDict(frozen=True)

    chunk: Chunk
    score: float = Field(description="Similarity score (higher is closer).")
    source_uri: str | None = None
    doc_id: str | None = None


class RetrieveResult(BaseModel):
    """Ranked retrieval output (``chunks`` are score-descending)."""

    model_config = ConfigDict(frozen=True)

    chunks: list[RagChunk] = Field(default_factory=list)
    query_vector: list[float] = Field(default_factory=list)
    total_matches: int = 0


@dataclass(frozen=True)
class RetrieveRequest:
    """Bundled arguments for :meth:`VectorRetriever.retrieve_request`."""

    query: str
    tenant_id: str
    top_k: int = 5
    filter: VectorFilter | None = None
    collection_name: str | None = None
