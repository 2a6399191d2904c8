"""Ingestion data models: chunks, documents, indexing options and results.

All models are Pydantic v2 with frozen config -- a chunk is never edited in
place; enrichment produces a new chunk carrying the merged metadata.

Flow of these types through the pipeline::

    IDocumentLoader  -> Document
    ITextExtractor   -> str
    IChunker         -> list[Chunk]            (guided by ChunkOptions)
    IMetadataEnricher-> list[Chunk]            (provenance merged in)
    IIndexer         -> IndexResult            (guided by IndexOptions)
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tenantrag.models.metadata import MetadataValue


class ChunkStrategy(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """Available chunking algorithms."""

    FIXED_SIZE = "fixed_size"
    SENTENCE = "sentence"
    PARAGRAPH = "paragraph"
    MARKDOWN_AWARE = "markdown_aware"


class UpdateMode(str, Enum):  # noqa: UP042
    """How the indexer treats records that already exist for a document.

    ``UPSERT`` simply writes the new records.  ``UPDATE`` additionally
    purges superseded versions when ``delete_old_versions`` is set.
    """

    UPSERT = "upsert"
    UPDATE = "update"


# ---------------------------------------------------------------------------
# Chunk -- a contiguous span of extracted document text.
# ---------------------------------------------------------------------------
class Chunk(BaseModel):
    """A contiguous span of document text sized for embedding.

    ``start_index`` / ``end_index`` are character offsets into the
    extracted text the chunk was cut from (end exclusive).
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique chunk identifier.")
    text: str = Field(description="The chunk's textual content.")
    start_index: int = Field(ge=0, description="Offset of the first character (inclusive).")
    end_index: int = Field(ge=0, description="Offset past the last character (exclusive).")
    metadata: dict[str, MetadataValue] | None = Field(
        default=None,
        description="Open key/value metadata (chunkIndex, heading, provenance...).",
    )

    @model_validator(mode="after")
    def _check_span(self) -> Chunk:
        if self.start_index >= self.end_index:
            raise ValueError(
                f"start_index ({self.start_index}) must be < end_index ({self.end_index})"
            )
        return self

    def with_metadata(self, metadata: dict[str, MetadataValue]) -> Chunk:
        """Return a copy of this chunk carrying *metadata* instead."""
        return self.model_copy(update={"metadata": dict(metadata)})


class ChunkOptions(BaseModel):
    """Chunking parameters.

    ``overlap`` should be smaller than ``max_size``; fixed-size chunking
    still makes forward progress when it is not.
    """

    model_config = ConfigDict(frozen=True)

    max_size: int = Field(default=1000, gt=0, description="Maximum characters per chunk.")
    overlap: int = Field(default=200, ge=0, description="Characters shared by neighbours.")
    strategy: ChunkStrategy = Field(default=ChunkStrategy.FIXED_SIZE)


class Document(BaseModel):
    """A raw document produced by a loader and consumed once by an extractor."""

    model_config = ConfigDict(frozen=True)

    source_uri: str
    content: bytes
    mime_type: str = "application/octet-stream"
    metadata: dict[str, MetadataValue] | None = None


# ---------------------------------------------------------------------------
# Indexing
# ---------------------------------------------------------------------------
class IndexOptions(BaseModel):
    """Where and how chunks are indexed."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(description="Owning tenant (required).")
    doc_id: str | None = Field(default=None, description="Logical document id.")
    version_id: str | None = Field(default=None, description="Version of the document.")
    collection_name: str | None = Field(default=None, description="Target collection.")
    update_mode: UpdateMode = Field(default=UpdateMode.UPSERT)
    delete_old_versions: bool = Field(default=False)


class IndexResult(BaseModel):
    """Outcome of indexing one batch of chunks.

    The indexer never raises; failures are reported through ``errors``
    and ``vectors_created`` counts only what was actually upserted.
    """

    model_config = ConfigDict(frozen=True)

    chunks_indexed: int = 0
    vectors_created: int = 0
    errors: list[str] | None = None

    @property
    def succeeded(self) -> bool:
        return not self.errors


class BatchIngestionError(BaseModel):
    """One failed document in a batch ingestion run."""

    model_config = ConfigDict(frozen=True)

    source_uri: str
    error_message: str


class BatchIndexResult(BaseModel):
    """Aggregate outcome of :meth:`IngestionPipeline.ingest_batch`."""

    model_config = ConfigDict(frozen=True)

    results: list[IndexResult] = Field(default_factory=list)
    errors: list[BatchIngestionError] = Field(default_factory=list)

    @property
    def total_chunks_indexed(self) -> int:
        return sum(r.chunks_indexed for r in self.results)

    @property
    def total_vectors_created(self) -> int:
        return sum(r.vectors_created for r in self.results)


class DocumentVersion(BaseModel):
    """Aggregated view of one version of a document.

    Never stored directly -- reconstructed on demand from the vector
    records that share a ``versionId``.
    """

    model_config = ConfigDict(frozen=True)

    version_id: str
    doc_id: str
    tenant_id: str
    created_at: datetime
    chunk_count: int = Field(ge=0)
    metadata: dict[str, MetadataValue] | None = None
