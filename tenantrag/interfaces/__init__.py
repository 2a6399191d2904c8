"""Interface definitions for every collaborator of the RAG engine.

Services depend only on these abstract base classes; concrete adapters in
``tenantrag/providers/`` are wired together in ``tenantrag/main.py``.

CONCRETE PROVIDER MAP:
    Interface              ->  Concrete implementations
    ---------------------------------------------------------------
    IEmbeddingProvider     ->  OpenAIEmbeddingProvider
    IEmbeddingRouter       ->  StaticEmbeddingRouter
    IVectorStoreProvider   ->  ChromaDBProvider, InMemoryVectorStore
    IDocumentLoader        ->  FileDocumentLoader, HttpDocumentLoader,
                               CompositeDocumentLoader
    ITextExtractor         ->  PlainTextExtractor, HtmlTextExtractor,
                               MimeRoutingExtractor
    IChatModel             ->  OpenAIChatProvider
    ITenantManager         ->  InMemoryTenantManager
    IChunkingStrategy      ->  FixedSize/Sentence/Paragraph/MarkdownAware
    IChunker               ->  StrategyChunker
    IMetadataEnricher      ->  DefaultMetadataEnricher
    IIndexer               ->  DefaultIndexer
    IDocumentVersionManager->  VectorStoreVersionManager
"""

from tenantrag.interfaces.chat_model import IChatModel
from tenantrag.interfaces.chunking import IChunker, IChunkingStrategy, IChunkingStrategyFactory
from tenantrag.interfaces.document_loader import IDocumentLoader, ITextExtractor
from tenantrag.interfaces.embedding_provider import IEmbeddingProvider, IEmbeddingRouter
from tenantrag.interfaces.ingestion import IDocumentVersionManager, IIndexer, IMetadataEnricher
from tenantrag.interfaces.tenant_manager import ITenantManager
from tenantrag.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IChatModel",
    "IChunker",
    "IChunkingStrategy",
    "IChunkingStrategyFactory",
    "IDocumentLoader",
    "IDocumentVersionManager",
    "IEmbeddingProvider",
    "IEmbeddingRouter",
    "IIndexer",
    "IMetadataEnricher",
    "ITenantManager",
    "ITextExtractor",
    "IVectorStoreProvider",
]
