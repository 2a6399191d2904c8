"""Route a source URI to the first loader that supports it."""

from __future__ import annotations

import structlog

from tenantrag.interfaces.document_loader import IDocumentLoader
from tenantrag.models.ingestion import Document
from tenantrag.utils.errors import DocumentLoadError

logger = structlog.get_logger(logger_name=__name__)


class CompositeDocumentLoader(IDocumentLoader):
    """Delegate to the first of *loaders* whose ``supports`` accepts the URI."""

    def __init__(self, loaders: list[IDocumentLoader]) -> None:
        self._loaders = list(loaders)

    def supports(self, source_uri: str) -> bool:
        return any(loader.supports(source_uri) for loader in self._loaders)

    async def load(self, source_uri: str) -> Document:
        for loader in self._loaders:
            if loader.supports(source_uri):
                return await loader.load(source_uri)
        raise DocumentLoadError(
            message=f"No loader supports '{source_uri}'",
            provider_name="composite-loader",
        )
