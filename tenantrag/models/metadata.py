"""Chunk and vector-record metadata helpers.

Metadata maps are open-ended, but their values are restricted to a small
set of scalar types that every supported vector store can persist.  The
well-known keys are named here once, with accessors, so no caller has to
spell ``"tenantId"`` by hand.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Mapping, Union

MetadataValue = Union[str, int, float, bool, datetime]
Metadata = dict[str, MetadataValue]

# Well-known metadata keys (camelCase on the wire, shared with stored records).
TEXT = "text"
SOURCE_URI = "sourceUri"
DOC_ID = "docId"
CHUNK_ID = "chunkId"
TENANT_ID = "tenantId"
VERSION_ID = "versionId"
CREATED_AT = "createdAt"
INDEXED_AT = "indexedAt"
MIME_TYPE = "mimeType"
TITLE = "title"
HEADING = "heading"
CHUNK_INDEX = "chunkIndex"
STRATEGY = "strategy"
START_INDEX = "startIndex"
END_INDEX = "endIndex"


def _get_str(metadata: Mapping[str, MetadataValue] | None, key: str) -> str | None:
    if not metadata:
        return None
    value = metadata.get(key)
    if value is None:
        return None
    return str(value)


def get_source_uri(metadata: Mapping[str, MetadataValue] | None) -> str | None:
    return _get_str(metadata, SOURCE_URI)


def get_doc_id(metadata: Mapping[str, MetadataValue] | None) -> str | None:
    return _get_str(metadata, DOC_ID)


def get_chunk_id(metadata: Mapping[str, MetadataValue] | None) -> str | None:
    return _get_str(metadata, CHUNK_ID)


def get_tenant_id(metadata: Mapping[str, MetadataValue] | None) -> str | None:
    return _get_str(metadata, TENANT_ID)


def get_version_id(metadata: Mapping[str, MetadataValue] | None) -> str | None:
    return _get_str(metadata, VERSION_ID)


def get_heading(metadata: Mapping[str, MetadataValue] | None) -> str | None:
    return _get_str(metadata, HEADING)


def get_created_at(metadata: Mapping[str, MetadataValue] | None) -> datetime | None:
    if not metadata:
        return None
    return parse_timestamp(metadata.get(CREATED_AT))


def get_int(metadata: Mapping[str, MetadataValue] | None, key: str) -> int | None:
    """Return ``metadata[key]`` as an int, or ``None`` if absent or non-numeric."""
    if not metadata:
        return None
    value = metadata.get(key)
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    try:
        return int(str(value))
    except ValueError:
        return None


def parse_timestamp(value: MetadataValue | None) -> datetime | None:
    """Parse a stored timestamp into a UTC-aware datetime.

    Accepts ``datetime`` objects, ISO-8601 strings (with or without a
    trailing ``Z``) and unix epoch seconds.  Returns ``None`` for anything
    else.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Render *value* as an ISO-8601 UTC string for storage."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()
