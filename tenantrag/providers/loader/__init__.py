"""Document loaders: local files, HTTP(S) and a scheme-routing composite."""

from tenantrag.providers.loader.composite_loader import CompositeDocumentLoader
from tenantrag.providers.loader.file_loader import FileDocumentLoader
from tenantrag.providers.loader.http_loader import HttpDocumentLoader

__all__ = ["CompositeDocumentLoader", "FileDocumentLoader", "HttpDocumentLoader"]
