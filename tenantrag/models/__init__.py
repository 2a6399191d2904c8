"""tenantrag domain models -- re-exports all public model classes.

Organized by concern:
    - ingestion.py -- chunks, documents, index options/results, versions
    - vector.py    -- vector records and query matches
    - filters.py   -- the VectorFilter algebra and its builder
    - tenant.py    -- tenants, quotas and runtime usage
    - rag.py       -- retrieval results
    - chat.py      -- chat requests/responses
    - metadata.py  -- metadata value type and well-known keys
"""

from __future__ import annotations

from tenantrag.models.chat import ChatRequest, ChatResponse, Message, MessageRole
from tenantrag.models.filters import (
    AndFilter,
    FilterOperator,
    FilterPredicate,
    NotFilter,
    OrFilter,
    VectorFilter,
    VectorFilterBuilder,
    evaluate_filter,
    tenant_filter,
)
from tenantrag.models.ingestion import (
    BatchIndexResult,
    BatchIngestionError,
    Chunk,
    ChunkOptions,
    ChunkStrategy,
    Document,
    DocumentVersion,
    IndexOptions,
    IndexResult,
    UpdateMode,
)
from tenantrag.models.rag import RagChunk, RetrieveRequest, RetrieveResult
from tenantrag.models.tenant import TenantInfo, TenantQuotas, TenantQuotaUsage
from tenantrag.models.vector import VectorMatch, VectorRecord

__all__ = [
    "AndFilter",
    "BatchIndexResult",
    "BatchIngestionError",
    "ChatRequest",
    "ChatResponse",
    "Chunk",
    "ChunkOptions",
    "ChunkStrategy",
    "Document",
    "DocumentVersion",
    "FilterOperator",
    "FilterPredicate",
    "IndexOptions",
    "IndexResult",
    "Message",
    "MessageRole",
    "NotFilter",
    "OrFilter",
    "RagChunk",
    "RetrieveRequest",
    "RetrieveResult",
    "TenantInfo",
    "TenantQuotaUsage",
    "TenantQuotas",
    "UpdateMode",
    "VectorFilter",
    "VectorFilterBuilder",
    "VectorMatch",
    "VectorRecord",
    "evaluate_filter",
    "tenant_filter",
]
