"""HTTP(S) document loader using httpx."""

from __future__ import annotations

import httpx
import structlog

from tenantrag.interfaces.document_loader import IDocumentLoader
from tenantrag.models.ingestion import Document
from tenantrag.providers.loader.file_loader import DEFAULT_MIME_TYPE
from tenantrag.utils.errors import DocumentLoadError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 10.0
_DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; tenantrag/0.1)",
    "Accept": "text/html,text/plain,text/markdown,application/json;q=0.9,*/*;q=0.8",
}


class HttpDocumentLoader(IDocumentLoader):
    """Fetch ``http://`` and ``https://`` documents.

    The mime type comes from the response's ``Content-Type`` header with
    any parameters (``; charset=...``) stripped.
    """

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(_DEFAULT_TIMEOUT),
            headers=_DEFAULT_HEADERS,
            follow_redirects=True,
        )

    def supports(self, source_uri: str) -> bool:
        return source_uri.startswith(("http://", "https://"))

    async def load(self, source_uri: str) -> Document:
        try:
            response = await self._client.get(source_uri)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise DocumentLoadError(
                message=f"Timeout fetching {source_uri}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise DocumentLoadError(
                message=f"HTTP {exc.response.status_code} for {source_uri}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise DocumentLoadError(
                message=f"HTTP error fetching {source_uri}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content_type = response.headers.get("content-type", "")
        mime_type = content_type.split(";", 1)[0].strip().lower() or DEFAULT_MIME_TYPE
        logger.info(
            "document_fetched",
            source_uri=source_uri,
            status=response.status_code,
            size=len(response.content),
            mime_type=mime_type,
        )
        return Document(source_uri=source_uri, content=response.content, mime_type=mime_type)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def get_provider_name(self) -> str:
        return "http-loader"
