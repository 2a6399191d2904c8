"""Abstract base class for vector-store providers.

Defines the contract for storing, querying and deleting embedded vector
records.  Implementations may wrap ChromaDB (local/persistent), an
in-memory dict, or any network vector database.  Filters are passed as a
:data:`~tenantrag.models.filters.VectorFilter` tree; each adapter
translates it into its native query language.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tenantrag.models.filters import VectorFilter
from tenantrag.models.vector import VectorMatch, VectorRecord


# Concrete implementations (tenantrag/providers/vector_store/):
#   ChromaDBProvider     -- persistent, cosine distance
#   InMemoryVectorStore  -- dict-backed, for tests and ephemeral use
class IVectorStoreProvider(ABC):
    """Contract for vector-store services used by the RAG engine.

    All query and mutation methods are async so network-backed stores never
    block the event loop.  ``collection`` selects a named collection; ``None``
    means the provider's default collection.
    """

    @abstractmethod
    async def upsert(self, records: list[VectorRecord], collection: str | None = None) -> int:
        """Insert or replace *records* (keyed by ``record.id``).

        Returns
        -------
        int
            The number of records written.

        Raises
        ------
        tenantrag.utils.errors.RAGError
            If the store operation fails.
        """

    @abstractmethod
    async def query(
        self,
        vector: list[float] | None,
        top_k: int,
        filter: VectorFilter | None = None,
        tenant_id: str | None = None,
        collection: str | None = None,
    ) -> list[VectorMatch]:
        """Return up to *top_k* records matching *filter*, best first.

        Parameters
        ----------
        vector:
            Query embedding.  ``None`` performs a filter-only listing in
            which every match reports a score of ``1.0``.
        top_k:
            Maximum number of matches.
        filter:
            Optional metadata filter tree.
        tenant_id:
            Informational tenant hint (for logging / routing).  Isolation is
            the caller's job and must be expressed in *filter*.
        collection:
            Target collection.

        Returns
        -------
        list[VectorMatch]
            Matches sorted by score, descending.

        Raises
        ------
        tenantrag.utils.errors.RAGError
            If the store query fails.
        """

    @abstractmethod
    async def delete(
        self,
        ids: list[str],
        collection: str | None = None,
        filter: VectorFilter | None = None,
    ) -> int:
        """Delete records by id, or -- when *ids* is empty -- by *filter*.

        Returns
        -------
        int
            The number of records deleted (best effort for backends that do
            not report it).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is accessible."""
