"""Dict-backed vector store for tests and ephemeral runs.

Records live in one ``{id: record}`` dict per collection.  Queries score
every record that passes the filter (a linear scan), so this store is
meant for small corpora only.
"""

from __future__ import annotations

import asyncio
import math

import structlog

from tenantrag.interfaces.vector_store_provider import IVectorStoreProvider
from tenantrag.models.filters import VectorFilter, evaluate_filter
from tenantrag.models.vector import VectorMatch, VectorRecord

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_COLLECTION = "default"


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity clamped to ``[0, 1]``; 0 for mismatched or zero vectors."""
    if len(a) != len(b) or not a:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0.0:
        return 0.0
    return max(0.0, min(1.0, dot / norm))


class InMemoryVectorStore(IVectorStoreProvider):
    """:class:`IVectorStoreProvider` backed by plain dicts."""

    def __init__(self, default_collection: str = DEFAULT_COLLECTION) -> None:
        self._default_collection = default_collection
        self._collections: dict[str, dict[str, VectorRecord]] = {}
        self._lock = asyncio.Lock()

    def _records(self, collection: str | None) -> dict[str, VectorRecord]:
        return self._collections.setdefault(collection or self._default_collection, {})

    async def upsert(self, records: list[VectorRecord], collection: str | None = None) -> int:
        async with self._lock:
            target = self._records(collection)
            for record in records:
                target[record.id] = record
        logger.debug("memory_upsert", collection=collection, count=len(records))
        return len(records)

    async def query(
        self,
        vector: list[float] | None,
        top_k: int,
        filter: VectorFilter | None = None,
        tenant_id: str | None = None,
        collection: str | None = None,
    ) -> list[VectorMatch]:
        if top_k <= 0:
            return []
        async with self._lock:
            candidates = [
                r for r in self._records(collection).values() if evaluate_filter(filter, r.metadata)
            ]

        if vector is None:
            matches = [VectorMatch(record=r, score=1.0) for r in candidates]
        else:
            matches = [
                VectorMatch(record=r, score=cosine_similarity(vector, r.vector)) for r in candidates
            ]
            matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    async def delete(
        self,
        ids: list[str],
        collection: str | None = None,
        filter: VectorFilter | None = None,
    ) -> int:
        async with self._lock:
            target = self._records(collection)
            if ids:
                doomed = [i for i in ids if i in target]
            elif filter is not None:
                doomed = [i for i, r in target.items() if evaluate_filter(filter, r.metadata)]
            else:
                doomed = []
            for record_id in doomed:
                del target[record_id]
        logger.debug("memory_delete", collection=collection, deleted=len(doomed))
        return len(doomed)

    def get_provider_name(self) -> str:
        return "memory"

    def is_available(self) -> bool:
        return True

    def count(self, collection: str | None = None) -> int:
        return len(self._records(collection))
