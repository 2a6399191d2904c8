"""Integration tests: files on disk through the full ingestion pipeline.

Uses the real loaders, extractors, chunkers, enricher, indexer and
version manager with a deterministic embedding provider.  The in-memory
store is used by default; one test repeats the update flow on ChromaDB.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from tenantrag.interfaces.vector_store_provider import IVectorStoreProvider
from tenantrag.models import metadata as md
from tenantrag.models.filters import VectorFilterBuilder
from tenantrag.models.ingestion import ChunkOptions, ChunkStrategy, IndexOptions, UpdateMode
from tenantrag.providers.embedding.static_router import StaticEmbeddingRouter
from tenantrag.providers.extractor.html_extractor import HtmlTextExtractor
from tenantrag.providers.extractor.mime_routing_extractor import MimeRoutingExtractor
from tenantrag.providers.extractor.plain_text_extractor import PlainTextExtractor
from tenantrag.providers.loader.composite_loader import CompositeDocumentLoader
from tenantrag.providers.loader.file_loader import FileDocumentLoader
from tenantrag.providers.vector_store.memory_vector_store import InMemoryVectorStore
from tenantrag.services.ingestion.indexer import DefaultIndexer
from tenantrag.services.ingestion.ingestion_pipeline import IngestionPipeline
from tenantrag.services.ingestion.metadata_enricher import DefaultMetadataEnricher
from tenantrag.services.ingestion.strategy_factory import StrategyChunker
from tenantrag.services.ingestion.version_manager import VectorStoreVersionManager
from tenantrag.utils.clock import FixedClock
from tests.conftest import FIXED_NOW, MockEmbeddingProvider


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_GUIDE_V1 = """# Accounts

Create an account from the sign-up page. Reset your password from the profile page.

# Billing

Invoices are sent monthly. Refunds are approved by the billing team.
"""

_GUIDE_V2 = """# Accounts

Accounts are created by administrators only. Passwords reset through single sign-on.

# Billing

Invoices are sent quarterly.

# Support

Open a ticket from the help centre.
"""

_MARKDOWN_OPTIONS = ChunkOptions(max_size=120, overlap=0, strategy=ChunkStrategy.MARKDOWN_AWARE)


def _build(store: IVectorStoreProvider, clock: FixedClock) -> tuple[IngestionPipeline, VectorStoreVersionManager]:
    router = StaticEmbeddingRouter(default=MockEmbeddingProvider())
    version_manager = VectorStoreVersionManager(store, clock=clock)
    pipeline = IngestionPipeline(
        loader=CompositeDocumentLoader([FileDocumentLoader()]),
        extractor=MimeRoutingExtractor(
            [HtmlTextExtractor(), PlainTextExtractor()], fallback=PlainTextExtractor()
        ),
        chunker=StrategyChunker(),
        enricher=DefaultMetadataEnricher(clock=clock),
        indexer=DefaultIndexer(router, store, clock=clock),
        version_manager=version_manager,
    )
    return pipeline, version_manager


def _write(tmp_path: Path, name: str, content: str) -> str:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return str(path)


async def _doc_records(store: IVectorStoreProvider, tenant: str, doc_id: str):
    scope = VectorFilterBuilder().equal(md.TENANT_ID, tenant).equal(md.DOC_ID, doc_id).build()
    return [m.record for m in await store.query(None, 1000, filter=scope)]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestVersionedUpdates:
    """Re-ingesting a document with UPDATE replaces the previous version."""

    async def _update_flow(self, store: IVectorStoreProvider, tmp_path: Path) -> None:
        clock = FixedClock(FIXED_NOW)
        pipeline, versions = _build(store, clock)
        path = _write(tmp_path, "guide.md", _GUIDE_V1)

        first = await pipeline.ingest(
            path, IndexOptions(tenant_id="acme", doc_id="guide"), _MARKDOWN_OPTIONS
        )
        assert first.succeeded
        assert first.vectors_created == 2

        clock.advance(timedelta(hours=1))
        _write(tmp_path, "guide.md", _GUIDE_V2)
        second = await pipeline.ingest(
            path,
            IndexOptions(
                tenant_id="acme",
                doc_id="guide",
                update_mode=UpdateMode.UPDATE,
                delete_old_versions=True,
            ),
            _MARKDOWN_OPTIONS,
        )
        assert second.succeeded

        history = await versions.list_versions("acme", "guide")
        assert len(history) == 1
        assert history[0].chunk_count == second.vectors_created
        assert history[0].created_at == clock.now()

        records = await _doc_records(store, "acme", "guide")
        assert len(records) == second.vectors_created
        assert {r.version_id for r in records} == {history[0].version_id}
        assert any("quarterly" in r.text for r in records)
        assert not any("sign-up page" in r.text for r in records)

    @pytest.mark.asyncio
    async def test_update_flow_in_memory(self, tmp_path: Path) -> None:
        await self._update_flow(InMemoryVectorStore(), tmp_path)

    @pytest.mark.asyncio
    async def test_update_flow_on_chromadb(self, tmp_chromadb, tmp_path: Path) -> None:
        await self._update_flow(tmp_chromadb, tmp_path)

    @pytest.mark.asyncio
    async def test_upsert_keeps_history(self, tmp_path: Path) -> None:
        store = InMemoryVectorStore()
        clock = FixedClock(FIXED_NOW)
        pipeline, versions = _build(store, clock)
        path = _write(tmp_path, "guide.md", _GUIDE_V1)
        options = IndexOptions(tenant_id="acme", doc_id="guide")

        await pipeline.ingest(path, options, _MARKDOWN_OPTIONS)
        clock.advance(timedelta(minutes=5))
        await pipeline.ingest(path, options, _MARKDOWN_OPTIONS)

        history = await versions.list_versions("acme", "guide")
        assert len(history) == 2
        assert history[0].created_at > history[1].created_at

    @pytest.mark.asyncio
    async def test_update_does_not_touch_other_tenants(self, tmp_path: Path) -> None:
        store = InMemoryVectorStore()
        pipeline, versions = _build(store, FixedClock(FIXED_NOW))
        path = _write(tmp_path, "guide.md", _GUIDE_V1)

        await pipeline.ingest(path, IndexOptions(tenant_id="globex", doc_id="guide"), _MARKDOWN_OPTIONS)
        await pipeline.ingest(
            path,
            IndexOptions(
                tenant_id="acme",
                doc_id="guide",
                update_mode=UpdateMode.UPDATE,
                delete_old_versions=True,
            ),
            _MARKDOWN_OPTIONS,
        )

        assert len(await versions.list_versions("globex", "guide")) == 1
        assert len(await versions.list_versions("acme", "guide")) == 1


class TestBatchIngestion:
    """One bad document never aborts the rest of a batch."""

    @pytest.mark.asyncio
    async def test_mixed_batch(self, tmp_path: Path) -> None:
        store = InMemoryVectorStore()
        pipeline, _ = _build(store, FixedClock(FIXED_NOW))
        good = [
            _write(tmp_path, "a.md", _GUIDE_V1),
            _write(tmp_path, "b.txt", "Plain text notes about refunds."),
            _write(tmp_path, "c.json", '{"faq": "How do I reset my password?"}'),
        ]
        bad = [str(tmp_path / "missing.md"), "ftp://example.com/remote.md"]
        _bad_bytes = tmp_path / "d.txt"
        _bad_bytes.write_bytes(b"\xff\xfe not utf-8 \xfa")
        bad.append(str(_bad_bytes))

        batch = await pipeline.ingest_batch(
            good + bad, IndexOptions(tenant_id="acme"), _MARKDOWN_OPTIONS, max_concurrency=2
        )

        assert len(batch.results) == 3
        assert sorted(e.source_uri for e in batch.errors) == sorted(bad)
        assert batch.total_vectors_created == store.count()
        sources = {
            m.record.metadata[md.SOURCE_URI] for m in await store.query(None, 1000)
        }
        assert sources == set(good)
