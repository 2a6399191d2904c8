"""Local file system document loader."""

from __future__ import annotations

import asyncio
from pathlib import Path
from urllib.parse import unquote, urlparse

import structlog

from tenantrag.interfaces.document_loader import IDocumentLoader
from tenantrag.models import metadata as md
from tenantrag.models.ingestion import Document
from tenantrag.utils.errors import DocumentLoadError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"

_MIME_TYPES: dict[str, str] = {
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".html": "text/html",
    ".json": "application/json",
}


def guess_mime_type(path: str | Path) -> str:
    """Map a file extension to a mime type (``application/octet-stream`` if unknown)."""
    return _MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


def _to_path(source_uri: str) -> Path:
    if source_uri.startswith("file://"):
        return Path(unquote(urlparse(source_uri).path))
    return Path(source_uri)


class FileDocumentLoader(IDocumentLoader):
    """Reads ``file://`` URIs and plain paths from disk.

    The document's ``source_uri`` is the URI exactly as given; its
    ``title`` metadata is the file name.
    """

    def supports(self, source_uri: str) -> bool:
        if source_uri.startswith("file://"):
            return True
        return "://" not in source_uri

    async def load(self, source_uri: str) -> Document:
        path = _to_path(source_uri)
        if not path.is_file():
            raise DocumentLoadError(
                message=f"File not found: {source_uri}",
                provider_name=self.get_provider_name(),
            )
        try:
            content = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise DocumentLoadError(
                message=f"Cannot read {source_uri}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        mime_type = guess_mime_type(path)
        logger.info("document_loaded", source_uri=source_uri, size=len(content), mime_type=mime_type)
        return Document(
            source_uri=source_uri,
            content=content,
            mime_type=mime_type,
            metadata={md.TITLE: path.name},
        )

    def get_provider_name(self) -> str:
        return "file-loader"
