"""tenantrag composition root.

Wires providers and services together via constructor injection.  Loads
configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.  The CLI and embedding applications call
:func:`build_services` and pick the services they need from the result.
"""

from __future__ import annotations

from typing import Any

import structlog

from tenantrag.config.loader import load_config, load_tenants
from tenantrag.config.settings import Settings
from tenantrag.interfaces.chat_model import IChatModel
from tenantrag.interfaces.embedding_provider import IEmbeddingProvider
from tenantrag.interfaces.vector_store_provider import IVectorStoreProvider
from tenantrag.models.ingestion import ChunkOptions, ChunkStrategy
from tenantrag.providers.embedding.static_router import StaticEmbeddingRouter
from tenantrag.providers.extractor.html_extractor import HtmlTextExtractor
from tenantrag.providers.extractor.mime_routing_extractor import MimeRoutingExtractor
from tenantrag.providers.extractor.plain_text_extractor import PlainTextExtractor
from tenantrag.providers.loader.composite_loader import CompositeDocumentLoader
from tenantrag.providers.loader.file_loader import FileDocumentLoader
from tenantrag.providers.loader.http_loader import HttpDocumentLoader
from tenantrag.providers.vector_store.memory_vector_store import InMemoryVectorStore
from tenantrag.services.ingestion.indexer import DefaultIndexer
from tenantrag.services.ingestion.ingestion_pipeline import IngestionPipeline
from tenantrag.services.ingestion.metadata_enricher import DefaultMetadataEnricher
from tenantrag.services.ingestion.strategy_factory import StrategyChunker
from tenantrag.services.ingestion.version_manager import VectorStoreVersionManager
from tenantrag.services.ingestion.worker import IngestionWorker
from tenantrag.services.rag.composer import DefaultRagComposer
from tenantrag.services.rag.rag_service import RagChatService
from tenantrag.services.rag.retriever import VectorRetriever
from tenantrag.services.tenancy.quota_enforcer import TenantQuotaEnforcer
from tenantrag.services.tenancy.tenant_manager import InMemoryTenantManager
from tenantrag.utils.clock import Clock, SystemClock
from tenantrag.utils.errors import ConfigurationError
from tenantrag.utils.logging import configure_logging

logger = structlog.get_logger(logger_name=__name__)


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Return the OpenAI-compatible embedding provider.

    Deferred import keeps the openai SDK off the import path of callers
    that inject their own provider.
    """
    from tenantrag.providers.embedding.openai_embedding_provider import (
        OpenAIEmbeddingProvider,
    )

    provider = OpenAIEmbeddingProvider(settings=app_settings)
    if not provider.is_available():
        logger.warning("embedding_provider_unconfigured", provider=provider.get_provider_name())
    return provider


def _build_chat_model(app_settings: Settings) -> IChatModel:
    from tenantrag.providers.chat.openai_chat_provider import OpenAIChatProvider

    return OpenAIChatProvider(settings=app_settings)


def _build_vector_store(app_settings: Settings) -> IVectorStoreProvider:
    """Select the vector store named by ``settings.vector_store``."""
    kind = app_settings.vector_store.lower()
    if kind == "memory":
        return InMemoryVectorStore(default_collection=app_settings.chromadb_collection)
    if kind == "chromadb":
        from tenantrag.providers.vector_store.chromadb_provider import ChromaDBProvider

        return ChromaDBProvider(
            persist_directory=app_settings.chromadb_persist_dir,
            collection_name=app_settings.chromadb_collection,
        )
    raise ConfigurationError(message=f"Unknown vector store '{app_settings.vector_store}'")


def default_chunk_options(app_settings: Settings) -> ChunkOptions:
    """Chunk options from settings; an unknown strategy name is a configuration error."""
    try:
        strategy = ChunkStrategy(app_settings.chunk_strategy)
    except ValueError as exc:
        raise ConfigurationError(
            message=f"Unknown chunk strategy '{app_settings.chunk_strategy}'"
        ) from exc
    return ChunkOptions(
        max_size=app_settings.chunk_max_size,
        overlap=app_settings.chunk_overlap,
        strategy=strategy,
    )


def build_services(
    custom_settings: Settings | None = None,
    *,
    embedding_provider: IEmbeddingProvider | None = None,
    vector_store: IVectorStoreProvider | None = None,
    chat_model: IChatModel | None = None,
    clock: Clock | None = None,
    configure_logs: bool = True,
) -> dict[str, Any]:
    """Construct every service with injected dependencies.

    Parameters
    ----------
    custom_settings:
        Application settings.  A fresh ``Settings()`` if not provided.
    embedding_provider, vector_store, chat_model:
        Optional replacements for the providers built from settings.
    clock:
        Time source shared by the enricher, indexer, versioning and quotas.
    configure_logs:
        Configure structlog from ``log_level`` / ``app_env``.

    Returns
    -------
    dict
        Service instances keyed by role name.
    """
    s = custom_settings or Settings()
    if configure_logs:
        configure_logging(s.log_level, json_output=s.app_env == "production")

    config = load_config(s.tenants_config_path, settings=s)
    clock = clock or SystemClock()

    embedding = embedding_provider or _build_embedding_provider(s)
    store = vector_store or _build_vector_store(s)
    router = StaticEmbeddingRouter(default=embedding)

    tenant_manager = InMemoryTenantManager(seed_default=True, tenants=load_tenants(config))
    quota_enforcer = TenantQuotaEnforcer(tenant_manager, clock=clock)
    version_manager = VectorStoreVersionManager(store, clock=clock)

    loader = CompositeDocumentLoader([FileDocumentLoader(), HttpDocumentLoader()])
    extractor = MimeRoutingExtractor(
        [HtmlTextExtractor(), PlainTextExtractor()],
        fallback=PlainTextExtractor(),
    )
    pipeline = IngestionPipeline(
        loader=loader,
        extractor=extractor,
        chunker=StrategyChunker(),
        enricher=DefaultMetadataEnricher(clock=clock),
        indexer=DefaultIndexer(router, store, clock=clock),
        version_manager=version_manager,
        quota_enforcer=quota_enforcer,
    )
    worker = IngestionWorker(pipeline, queue_size=s.worker_queue_size)

    retriever = VectorRetriever(router, store)
    composer = DefaultRagComposer()
    chat = chat_model or _build_chat_model(s)
    rag_service = RagChatService(retriever, composer, chat, quota_enforcer=quota_enforcer)

    logger.info(
        "services_built",
        vector_store=store.get_provider_name(),
        embedding=embedding.get_provider_name(),
        tenants=len(config.get("tenants") or []) + 1,
    )

    return {
        "settings": s,
        "config": config,
        "chunk_options": default_chunk_options(s),
        "embedding_router": router,
        "vector_store": store,
        "tenant_manager": tenant_manager,
        "quota_enforcer": quota_enforcer,
        "version_manager": version_manager,
        "pipeline": pipeline,
        "worker": worker,
        "retriever": retriever,
        "composer": composer,
        "rag_service": rag_service,
    }
