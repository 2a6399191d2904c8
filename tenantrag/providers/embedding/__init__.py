"""Embedding provider implementations and tenant routing.

    OpenAIEmbeddingProvider -- text-embedding-3-small (1536 dims) by default,
                               or any OpenAI-compatible endpoint.
    StaticEmbeddingRouter   -- one default provider plus per-tenant overrides.
"""

from tenantrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from tenantrag.providers.embedding.static_router import StaticEmbeddingRouter

__all__ = ["OpenAIEmbeddingProvider", "StaticEmbeddingRouter"]
