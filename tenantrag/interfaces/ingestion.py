"""Abstract base classes for the ingestion stages after chunking.

Enrichment attaches provenance, indexing embeds and stores, and version
management reconstructs a document's history from the stored records.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tenantrag.models.ingestion import Chunk, Document, DocumentVersion, IndexOptions, IndexResult


class IMetadataEnricher(ABC):
    @abstractmethod
    def enrich(self, chunk: Chunk, document: Document) -> Chunk:
        """Return a copy of *chunk* with document provenance merged into its metadata.

        Existing chunk metadata (e.g. ``heading``) is preserved.
        """


class IIndexer(ABC):
    @abstractmethod
    async def index(self, chunks: list[Chunk], options: IndexOptions) -> IndexResult:
        """Embed *chunks* and upsert them as vector records.

        Never raises: every failure is reported through
        :attr:`IndexResult.errors`.
        """


class IDocumentVersionManager(ABC):
    """Generates version ids and reconstructs version history."""

    @abstractmethod
    def generate_version_id(self, tenant_id: str, doc_id: str) -> str:
        """Return a fresh version id for *doc_id*."""

    @abstractmethod
    async def list_versions(
        self, tenant_id: str, doc_id: str, collection: str | None = None
    ) -> list[DocumentVersion]:
        """Return every stored version of *doc_id*, newest first."""

    @abstractmethod
    async def get_version(
        self,
        tenant_id: str,
        doc_id: str,
        version_id: str,
        collection: str | None = None,
    ) -> DocumentVersion | None:
        """Return one version of *doc_id*, or ``None`` if it has no records."""
