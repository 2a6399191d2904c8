"""Text extractors: UTF-8 plain text, trafilatura HTML and a mime router."""

from tenantrag.providers.extractor.html_extractor import HtmlTextExtractor
from tenantrag.providers.extractor.mime_routing_extractor import MimeRoutingExtractor
from tenantrag.providers.extractor.plain_text_extractor import PlainTextExtractor

__all__ = ["HtmlTextExtractor", "MimeRoutingExtractor", "PlainTextExtractor"]
