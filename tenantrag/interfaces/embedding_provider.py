"""Abstract base classes for text-embedding providers and tenant routing.

:class:`IEmbeddingProvider` generates vectors; :class:`IEmbeddingRouter`
picks which provider serves a given tenant, so tenants can be pinned to
different models (or different API keys) without the indexer or retriever
knowing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OpenAIEmbeddingProvider -- OpenAI-compatible embeddings API
# Located in: tenantrag/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by indexing and retrieval."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.  Implementations handle
            batching internally if the underlying API has a per-call limit.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  The
            count must equal ``len(texts)``; callers zip positionally and
            treat a mismatch as a fatal contract violation.

        Raises
        ------
        tenantrag.utils.errors.RAGError
            If the embedding API call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai_embedding"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""


class IEmbeddingRouter(ABC):
    """Selects the embedding provider that serves a tenant."""

    @abstractmethod
    def select(self, tenant_id: str) -> IEmbeddingProvider:
        """Return the embedding provider scoped to *tenant_id*."""

