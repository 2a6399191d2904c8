"""Unit tests for VectorStoreVersionManager."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from tenantrag.interfaces.vector_store_provider import IVectorStoreProvider
from tenantrag.models import metadata as md
from tenantrag.models.vector import VectorRecord
from tenantrag.providers.vector_store.memory_vector_store import InMemoryVectorStore
from tenantrag.services.ingestion.version_manager import VectorStoreVersionManager
from tenantrag.utils.clock import FixedClock
from tenantrag.utils.errors import ConfigurationError, RAGError


def _record(
    record_id: str,
    version_id: str | None,
    created_at: datetime | None,
    doc_id: str = "guide",
    tenant: str = "acme",
) -> VectorRecord:
    metadata: dict[str, md.MetadataValue] = {md.DOC_ID: doc_id, md.TENANT_ID: tenant}
    if version_id:
        metadata[md.VERSION_ID] = version_id
    if created_at:
        metadata[md.CREATED_AT] = md.format_timestamp(created_at)
    return VectorRecord(
        id=record_id,
        vector=[1.0, 0.0],
        text=record_id,
        metadata=metadata,
        doc_id=doc_id,
        tenant_id=tenant,
    )


_T0 = datetime(2024, 3, 1, tzinfo=timezone.utc)


class TestGenerateVersionId:
    def test_format_is_epoch_seconds_and_hex_suffix(self, fixed_clock: FixedClock) -> None:
        manager = VectorStoreVersionManager(InMemoryVectorStore(), clock=fixed_clock)
        version_id = manager.generate_version_id("acme", "guide")

        match = re.fullmatch(r"(\d+)-([0-9a-f]{8})", version_id)
        assert match is not None
        assert int(match.group(1)) == int(fixed_clock.now().timestamp())

    def test_ids_are_unique(self, fixed_clock: FixedClock) -> None:
        manager = VectorStoreVersionManager(InMemoryVectorStore(), clock=fixed_clock)
        ids = {manager.generate_version_id("acme", "guide") for _ in range(50)}
        assert len(ids) == 50


class TestListVersions:
    """Versions are rebuilt by grouping stored records."""

    @pytest.mark.asyncio
    async def test_groups_and_sorts_newest_first(self, memory_store: InMemoryVectorStore) -> None:
        await memory_store.upsert(
            [
                _record("a1", "v1", _T0),
                _record("a2", "v1", _T0),
                _record("b1", "v2", _T0 + timedelta(days=1)),
                _record("b2", "v2", _T0 + timedelta(days=1)),
                _record("b3", "v2", _T0 + timedelta(days=1)),
                _record("x1", "v9", _T0, doc_id="faq"),
                _record("y1", "v8", _T0, tenant="globex"),
                _record("z1", None, _T0),
            ]
        )
        manager = VectorStoreVersionManager(memory_store)

        versions = await manager.list_versions("acme", "guide")

        assert [v.version_id for v in versions] == ["v2", "v1"]
        assert [v.chunk_count for v in versions] == [3, 2]
        assert versions[0].created_at == _T0 + timedelta(days=1)
        assert all(v.tenant_id == "acme" and v.doc_id == "guide" for v in versions)
        assert versions[0].metadata[md.VERSION_ID] == "v2"

    @pytest.mark.asyncio
    async def test_missing_created_at_uses_clock(
        self, memory_store: InMemoryVectorStore, fixed_clock: FixedClock
    ) -> None:
        await memory_store.upsert([_record("a1", "v1", None)])
        manager = VectorStoreVersionManager(memory_store, clock=fixed_clock)

        (version,) = await manager.list_versions("acme", "guide")

        assert version.created_at == fixed_clock.now()

    @pytest.mark.asyncio
    async def test_unknown_document_has_no_versions(self, memory_store: InMemoryVectorStore) -> None:
        manager = VectorStoreVersionManager(memory_store)
        assert await manager.list_versions("acme", "nothing") == []

    @pytest.mark.asyncio
    async def test_invalid_tenant_raises(self, memory_store: InMemoryVectorStore) -> None:
        manager = VectorStoreVersionManager(memory_store)
        with pytest.raises(ConfigurationError):
            await manager.list_versions("acme corp", "guide")

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self) -> None:
        store = MagicMock(spec=IVectorStoreProvider)
        store.query = AsyncMock(side_effect=RAGError(message="down", provider_name="chromadb"))
        manager = VectorStoreVersionManager(store)

        with pytest.raises(RAGError):
            await manager.list_versions("acme", "guide")


class TestGetVersion:
    @pytest.mark.asyncio
    async def test_returns_matching_version(self, memory_store: InMemoryVectorStore) -> None:
        await memory_store.upsert([_record("a1", "v1", _T0), _record("b1", "v2", _T0)])
        manager = VectorStoreVersionManager(memory_store)

        version = await manager.get_version("acme", "guide", "v1")

        assert version is not None
        assert version.version_id == "v1"
        assert version.chunk_count == 1
        assert version.created_at == _T0

    @pytest.mark.asyncio
    async def test_absent_version_is_none(self, memory_store: InMemoryVectorStore) -> None:
        await memory_store.upsert([_record("a1", "v1", _T0)])
        manager = VectorStoreVersionManager(memory_store)

        assert await manager.get_version("acme", "guide", "v7") is None
        assert await manager.get_version("globex", "guide", "v1") is None
