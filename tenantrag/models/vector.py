"""Vector-store record models.

A :class:`VectorRecord` is one chunk of one document version, embedded and
annotated with provenance.  Once upserted it belongs to the vector store;
queries hand records back wrapped in :class:`VectorMatch`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from tenantrag.models.metadata import MetadataValue


class VectorRecord(BaseModel):
    """An embedding vector plus its source text and provenance."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Primary key in the vector store.")
    vector: list[float] = Field(description="Embedding vector.")
    text: str = Field(description="The chunk text the vector was computed from.")
    metadata: dict[str, MetadataValue] | None = None
    source_uri: str | None = None
    doc_id: str | None = None
    chunk_id: str | None = None
    tenant_id: str | None = None
    version_id: str | None = None


class VectorMatch(BaseModel):
    """A record returned by a similarity query, with its score.

    ``score`` is a similarity in ``[0, 1]`` (higher is closer).  Filter-only
    listings, which have no query vector, report ``1.0``.
    """

    model_config = ConfigDict(frozen=True)

    record: VectorRecord
    score: float
