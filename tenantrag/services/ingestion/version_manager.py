"""Document version management backed by the vector store.

Versions are not stored anywhere on their own.  A document version is the
set of vector records sharing a ``versionId``; its history is rebuilt on
demand by listing the document's records and grouping them.
"""

from __future__ import annotations

import secrets
from datetime import datetime

import structlog

from tenantrag.interfaces.ingestion import IDocumentVersionManager
from tenantrag.interfaces.vector_store_provider import IVectorStoreProvider
from tenantrag.models import metadata as md
from tenantrag.models.filters import VectorFilterBuilder
from tenantrag.models.ingestion import DocumentVersion
from tenantrag.models.vector import VectorRecord
from tenantrag.utils.clock import Clock, SystemClock
from tenantrag.utils.tenant_validator import validate_tenant_id

logger = structlog.get_logger(logger_name=__name__)

# Large top-K used to approximate "all records of a document".
_LIST_TOP_K = 10_000


class VectorStoreVersionManager(IDocumentVersionManager):
    """Reconstructs document versions from stored vector records.

    Parameters
    ----------
    vector_store:
        Store holding the indexed records.
    clock:
        Time source for version ids and for records lacking ``createdAt``.
    """

    def __init__(self, vector_store: IVectorStoreProvider, clock: Clock | None = None) -> None:
        self._vector_store = vector_store
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate_version_id(self, tenant_id: str, doc_id: str) -> str:
        """Return ``"{unix_seconds}-{8 hex chars}"``.

        Uniqueness relies on the random suffix; ids from the same second
        are not ordered.
        """
        timestamp = int(self._clock.now().timestamp())
        return f"{timestamp}-{secrets.token_hex(4)}"

    async def list_versions(
        self, tenant_id: str, doc_id: str, collection: str | None = None
    ) -> list[DocumentVersion]:
        validate_tenant_id(tenant_id)
        builder = VectorFilterBuilder().equal(md.DOC_ID, doc_id).equal(md.TENANT_ID, tenant_id)
        records = await self._fetch(builder, tenant_id, collection)

        groups: dict[str, list[VectorRecord]] = {}
        for record in records:
            version_id = record.version_id or md.get_version_id(record.metadata)
            if not version_id:
                continue
            groups.setdefault(version_id, []).append(record)

        versions = [
            self._to_version(version_id, doc_id, tenant_id, group)
            for version_id, group in groups.items()
        ]
        versions.sort(key=lambda v: v.created_at, reverse=True)

        logger.info(
            "versions_listed",
            tenant_id=tenant_id,
            doc_id=doc_id,
            count=len(versions),
        )
        return versions

    async def get_version(
        self,
        tenant_id: str,
        doc_id: str,
        version_id: str,
        collection: str | None = None,
    ) -> DocumentVersion | None:
        validate_tenant_id(tenant_id)
        builder = (
            VectorFilterBuilder()
            .equal(md.DOC_ID, doc_id)
            .equal(md.TENANT_ID, tenant_id)
            .equal(md.VERSION_ID, version_id)
        )
        records = await self._fetch(builder, tenant_id, collection)
        if not records:
            return None
        return self._to_version(version_id, doc_id, tenant_id, records)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _fetch(
        self,
        builder: VectorFilterBuilder,
        tenant_id: str,
        collection: str | None,
    ) -> list[VectorRecord]:
        try:
            matches = await self._vector_store.query(
                None,
                _LIST_TOP_K,
                filter=builder.build(),
                tenant_id=tenant_id,
                collection=collection,
            )
        except Exception as exc:
            logger.error("version_lookup_failed", tenant_id=tenant_id, error=str(exc))
            raise
        return [m.record for m in matches]

    def _to_version(
        self,
        version_id: str,
        doc_id: str,
        tenant_id: str,
        records: list[VectorRecord],
    ) -> DocumentVersion:
        first = records[0]
        created_at: datetime = md.get_created_at(first.metadata) or self._clock.now()
        return DocumentVersion(
            version_id=version_id,
            doc_id=doc_id,
            tenant_id=tenant_id,
            created_at=created_at,
            chunk_count=len(records),
            metadata=dict(first.metadata) if first.metadata else None,
        )
