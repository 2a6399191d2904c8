"""ChromaDB vector store provider adapter.

Wraps ``chromadb.PersistentClient`` to implement :class:`IVectorStoreProvider`.
Collections use cosine distance; a record's similarity is ``1 - distance``
clamped to ``[0, 1]``.  Filter trees are translated into Chroma ``where``
clauses by :func:`translate_filter`; whatever Chroma cannot evaluate the
same way as :func:`evaluate_filter` is checked after the fetch.
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import Any, NamedTuple

# Disable ChromaDB telemetry before importing chromadb.  Its bundled
# PostHog client can clash with the installed posthog version.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from tenantrag.interfaces.vector_store_provider import IVectorStoreProvider
from tenantrag.models import metadata as md
from tenantrag.models.filters import (
    AndFilter,
    FilterOperator,
    FilterPredicate,
    NotFilter,
    OrFilter,
    VectorFilter,
    evaluate_filter,
)
from tenantrag.models.vector import VectorMatch, VectorRecord
from tenantrag.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Embedding function that is never meant to run.

    Records are always upserted with pre-computed vectors.  Passing this
    stops ChromaDB from downloading its default ONNX model on collection
    creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "tenantrag uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        return "noop_precomputed"


# ---------------------------------------------------------------------------
# Filter translation
# ---------------------------------------------------------------------------

# Ordering pushed to Chroma for numeric values.  ``$ne`` and negated
# comparisons there skip records that lack the field, and a metadata
# ``$contains`` is not a substring match, so those are checked client-side.
_ORDERING: dict[FilterOperator, str] = {
    FilterOperator.GT: "$gt",
    FilterOperator.GTE: "$gte",
    FilterOperator.LT: "$lt",
    FilterOperator.LTE: "$lte",
}


class TranslatedFilter(NamedTuple):
    """A Chroma ``where`` clause and whether it matches exactly.

    ``where`` may select a superset of the records the filter accepts
    (``None`` selects everything).  When ``exact`` is ``False`` the caller
    re-checks each fetched record with :func:`evaluate_filter`.
    """

    where: dict[str, Any] | None
    exact: bool


_UNCONSTRAINED = TranslatedFilter(None, False)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _combine(key: str, clauses: list[dict[str, Any]]) -> dict[str, Any]:
    if len(clauses) == 1:
        return clauses[0]
    return {key: clauses}


def _translate_predicate(node: FilterPredicate) -> TranslatedFilter:
    value = node.value
    if node.operator is FilterOperator.EQ and isinstance(value, (str, int, float, bool)):
        return TranslatedFilter({node.field: {"$eq": value}}, True)
    if node.operator in _ORDERING and _is_number(value):
        return TranslatedFilter({node.field: {_ORDERING[node.operator]: value}}, True)
    return _UNCONSTRAINED


def _translate_group(
    key: str, children: tuple[VectorFilter, ...], negate: bool
) -> TranslatedFilter:
    if not children:
        return _UNCONSTRAINED
    parts = [translate_filter(child, negate) for child in children]
    exact = all(part.exact for part in parts)
    clauses = [part.where for part in parts if part.where is not None]
    if key == "$or" and len(clauses) < len(parts):
        # One unconstrained branch lets any record through.
        return _UNCONSTRAINED
    if not clauses:
        return TranslatedFilter(None, exact)
    return TranslatedFilter(_combine(key, clauses), exact)


def translate_filter(node: VectorFilter, negate: bool = False) -> TranslatedFilter:
    """Translate a filter tree into a Chroma ``where`` clause.

    Chroma has no ``$not``, so negation is pushed down to the leaves with
    De Morgan's laws.  Only positive ``EQ`` and numeric ordering
    comparisons are sent to Chroma; every other leaf widens the clause and
    marks the translation inexact.  Single-element groups are unwrapped
    because Chroma rejects ``$and`` / ``$or`` with fewer than two operands.
    """
    if isinstance(node, FilterPredicate):
        return _UNCONSTRAINED if negate else _translate_predicate(node)
    if isinstance(node, NotFilter):
        return translate_filter(node.filter, not negate)
    if isinstance(node, AndFilter):
        return _translate_group("$or" if negate else "$and", node.filters, negate)
    if isinstance(node, OrFilter):
        return _translate_group("$and" if negate else "$or", node.filters, negate)
    raise TypeError(f"Unsupported filter node: {type(node).__name__}")


def _to_chroma_metadata(metadata: dict[str, Any] | None) -> dict[str, str | int | float | bool]:
    """ChromaDB metadata values must be str, int, float or bool."""
    out: dict[str, str | int | float | bool] = {}
    for key, value in (metadata or {}).items():
        if value is None:
            continue
        if isinstance(value, datetime):
            out[key] = md.format_timestamp(value)
        elif isinstance(value, (str, int, float, bool)):
            out[key] = value
        else:
            out[key] = str(value)
    return out


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB with local persistence.

    Parameters
    ----------
    persist_directory:
        Directory ChromaDB persists to.
    collection_name:
        Collection used when a call passes ``collection=None``.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "tenantrag",
    ) -> None:
        self._persist_directory = persist_directory
        self._default_collection = collection_name
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        self._collections: dict[str, Any] = {}
        self._collection(None)

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, records: list[VectorRecord], collection: str | None = None) -> int:
        if not records:
            return 0
        try:
            target = self._collection(collection)
            target.upsert(
                ids=[r.id for r in records],
                embeddings=[r.vector for r in records],
                documents=[r.text for r in records],
                metadatas=[_to_chroma_metadata(self._record_metadata(r)) for r in records],
            )
            logger.info("chromadb_upsert", collection=target.name, count=len(records))
            return len(records)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def query(
        self,
        vector: list[float] | None,
        top_k: int,
        filter: VectorFilter | None = None,
        tenant_id: str | None = None,
        collection: str | None = None,
    ) -> list[VectorMatch]:
        try:
            target = self._collection(collection)
            where, residual = self._split(filter)

            if vector is None:
                matches = self._list(target, top_k, where, residual)
            else:
                matches = self._search(target, vector, top_k, where, residual)

            logger.info(
                "chromadb_query",
                collection=target.name,
                tenant_id=tenant_id,
                filter_only=vector is None,
                post_filtered=residual is not None,
                results_count=len(matches),
                top_score=matches[0].score if matches else 0.0,
            )
            return matches
        except RAGError:
            raise
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def delete(
        self,
        ids: list[str],
        collection: str | None = None,
        filter: VectorFilter | None = None,
    ) -> int:
        try:
            target = self._collection(collection)
            if ids:
                target.delete(ids=ids)
                count = len(ids)
            elif filter is not None:
                where, residual = self._split(filter)
                kwargs: dict[str, Any] = {"include": ["metadatas"]}
                if where:
                    kwargs["where"] = where
                page = target.get(**kwargs)
                found = page["ids"] or []
                metadatas = page["metadatas"] or [{}] * len(found)
                doomed = [
                    record_id
                    for record_id, meta in zip(found, metadatas, strict=True)
                    if residual is None or evaluate_filter(residual, meta)
                ]
                count = len(doomed)
                if doomed:
                    target.delete(ids=doomed)
            else:
                count = 0
            logger.info("chromadb_delete", collection=target.name, deleted_count=count)
            return count
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the default collection is accessible."""
        try:
            self._collection(None).count()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _collection(self, name: str | None) -> Any:
        name = name or self._default_collection
        cached = self._collections.get(name)
        if cached is not None:
            return cached
        # Collections created with a different persisted embedding function
        # reject the no-op one; reopen them without it.
        try:
            created = self._client.get_or_create_collection(
                name=name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            created = self._client.get_or_create_collection(
                name=name,
                metadata={"hnsw:space": "cosine"},
            )
        self._collections[name] = created
        return created

    @staticmethod
    def _split(
        filter: VectorFilter | None,
    ) -> tuple[dict[str, Any] | None, VectorFilter | None]:
        """Return the ``where`` clause and the filter left to check per record."""
        if filter is None:
            return None, None
        where, exact = translate_filter(filter)
        return where, None if exact else filter

    def _search(
        self,
        target: Any,
        vector: list[float],
        top_k: int,
        where: dict[str, Any] | None,
        residual: VectorFilter | None = None,
    ) -> list[VectorMatch]:
        available = target.count()
        if available == 0 or top_k <= 0:
            return []

        kwargs: dict[str, Any] = {
            "query_embeddings": [vector],
            "n_results": available if residual is not None else min(top_k, available),
            "include": ["documents", "metadatas", "distances", "embeddings"],
        }
        if where:
            kwargs["where"] = where
        results = target.query(**kwargs)

        ids = results["ids"][0] if results["ids"] else []
        if not ids:
            return []
        documents = results["documents"][0] if results["documents"] else [""] * len(ids)
        metadatas = results["metadatas"][0] if results["metadatas"] else [{}] * len(ids)
        distances = results["distances"][0] if results["distances"] else [0.0] * len(ids)
        embeddings = results["embeddings"][0] if results["embeddings"] is not None else None

        matches: list[VectorMatch] = []
        for i, (record_id, text, meta, distance) in enumerate(
            zip(ids, documents, metadatas, distances, strict=True)
        ):
            similarity = max(0.0, min(1.0, 1.0 - distance))
            emb = embeddings[i] if embeddings is not None else []
            if residual is not None and not evaluate_filter(residual, meta):
                continue
            matches.append(
                VectorMatch(record=self._to_record(record_id, text, meta, emb), score=similarity)
            )
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    def _list(
        self,
        target: Any,
        top_k: int,
        where: dict[str, Any] | None,
        residual: VectorFilter | None = None,
    ) -> list[VectorMatch]:
        if top_k <= 0:
            return []
        kwargs: dict[str, Any] = {"include": ["documents", "metadatas", "embeddings"]}
        if residual is None:
            kwargs["limit"] = top_k
        if where:
            kwargs["where"] = where
        page = target.get(**kwargs)

        ids = page["ids"] or []
        documents = page["documents"] or [""] * len(ids)
        metadatas = page["metadatas"] or [{}] * len(ids)
        embeddings = page["embeddings"] if page["embeddings"] is not None else None
        matches = [
            VectorMatch(
                record=self._to_record(
                    record_id,
                    documents[i],
                    metadatas[i],
                    embeddings[i] if embeddings is not None else [],
                ),
                score=1.0,
            )
            for i, record_id in enumerate(ids)
            if residual is None or evaluate_filter(residual, metadatas[i])
        ]
        return matches[:top_k]

    @staticmethod
    def _record_metadata(record: VectorRecord) -> dict[str, Any]:
        metadata: dict[str, Any] = dict(record.metadata or {})
        # Identity fields are stored as metadata so filters can reach them.
        for key, value in (
            (md.SOURCE_URI, record.source_uri),
            (md.DOC_ID, record.doc_id),
            (md.CHUNK_ID, record.chunk_id),
            (md.TENANT_ID, record.tenant_id),
            (md.VERSION_ID, record.version_id),
        ):
            if value is not None:
                metadata.setdefault(key, value)
        return metadata

    @staticmethod
    def _to_record(
        record_id: str,
        text: str | None,
        meta: dict[str, Any] | None,
        embedding: Any,
    ) -> VectorRecord:
        metadata = dict(meta or {})
        return VectorRecord(
            id=record_id,
            vector=[float(x) for x in embedding],
            text=text or str(metadata.get(md.TEXT, "")),
            metadata=metadata,
            source_uri=md.get_source_uri(metadata),
            doc_id=md.get_doc_id(metadata),
            chunk_id=md.get_chunk_id(metadata),
            tenant_id=md.get_tenant_id(metadata),
            version_id=md.get_version_id(metadata),
        )
