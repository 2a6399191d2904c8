"""Unit tests for the retriever, the context composer and the RAG chat service."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from tenantrag.interfaces.chat_model import IChatModel
from tenantrag.models import metadata as md
from tenantrag.models.chat import ChatRequest, ChatResponse, Message, MessageRole
from tenantrag.models.filters import AndFilter, VectorFilterBuilder, tenant_filter
from tenantrag.models.ingestion import Chunk
from tenantrag.models.rag import RagChunk, RetrieveRequest, RetrieveResult
from tenantrag.models.tenant import TenantInfo, TenantQuotas
from tenantrag.models.vector import VectorRecord
from tenantrag.providers.embedding.static_router import StaticEmbeddingRouter
from tenantrag.services.rag.composer import CONTEXT_HEADER, DefaultRagComposer, format_source
from tenantrag.services.rag.rag_service import RagChatService, estimate_tokens, last_user_message
from tenantrag.services.rag.retriever import VectorRetriever
from tenantrag.services.tenancy.quota_enforcer import TenantQuotaEnforcer
from tenantrag.services.tenancy.tenant_manager import InMemoryTenantManager
from tenantrag.utils.errors import ConfigurationError, EmbeddingContractError, QuotaExceededError
from tests.conftest import MockEmbeddingProvider, RecordingVectorStore, _hash_to_vector

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _record(record_id: str, text: str, tenant: str, **extra: md.MetadataValue) -> VectorRecord:
    metadata: dict[str, md.MetadataValue] = {
        md.TENANT_ID: tenant,
        md.DOC_ID: "guide",
        md.SOURCE_URI: "docs/guide.md",
        md.START_INDEX: 10,
        md.END_INDEX: 10 + len(text),
        md.CHUNK_ID: f"chunk-{record_id}",
    }
    metadata.update(extra)
    return VectorRecord(
        id=record_id,
        vector=_hash_to_vector(text),
        text=text,
        metadata=metadata,
        source_uri="docs/guide.md",
        doc_id="guide",
        chunk_id=f"chunk-{record_id}",
        tenant_id=tenant,
    )


async def _seeded_store() -> RecordingVectorStore:
    store = RecordingVectorStore()
    await store.upsert(
        [
            _record("a1", "how to reset a password", "acme", heading="Accounts"),
            _record("a2", "monthly invoices", "acme", heading="Billing"),
            _record("g1", "how to reset a password", "globex", heading="Accounts"),
        ]
    )
    return store


def _make_retriever(store: RecordingVectorStore, embedding=None) -> VectorRetriever:
    return VectorRetriever(StaticEmbeddingRouter(default=embedding or MockEmbeddingProvider()), store)


def _rag_chunk(text: str, doc_id: str | None = "guide", uri: str | None = "docs/guide.md") -> RagChunk:
    return RagChunk(
        chunk=Chunk(id="c", text=text, start_index=0, end_index=len(text)),
        score=0.9,
        source_uri=uri,
        doc_id=doc_id,
    )


# ---------------------------------------------------------------------------
# Retriever
# ---------------------------------------------------------------------------


class TestVectorRetriever:
    """Tenant scoping is always part of the store query."""

    @pytest.mark.asyncio
    async def test_results_are_tenant_scoped(self) -> None:
        store = await _seeded_store()
        result = await _make_retriever(store).retrieve("how to reset a password", "acme", top_k=5)

        assert result.total_matches == 2
        assert {c.chunk.metadata[md.TENANT_ID] for c in result.chunks} == {"acme"}
        assert result.chunks[0].chunk.text == "how to reset a password"
        assert result.chunks[0].score == pytest.approx(1.0)
        assert result.query_vector == _hash_to_vector("how to reset a password")
        assert store.query_filters == [tenant_filter("acme")]
        assert store.query_tenants == ["acme"]

    @pytest.mark.asyncio
    async def test_caller_filter_is_and_combined(self) -> None:
        store = await _seeded_store()
        user_filter = VectorFilterBuilder().equal(md.HEADING, "Billing").build()

        result = await _make_retriever(store).retrieve("anything", "acme", filter=user_filter)

        assert [c.chunk.text for c in result.chunks] == ["monthly invoices"]
        assert store.query_filters == [AndFilter((tenant_filter("acme"), user_filter))]

    @pytest.mark.asyncio
    async def test_caller_filter_cannot_escape_tenant(self) -> None:
        store = await _seeded_store()
        sneaky = VectorFilterBuilder().equal(md.TENANT_ID, "globex").build()

        result = await _make_retriever(store).retrieve("reset", "acme", filter=sneaky)

        assert result.chunks == []

    @pytest.mark.asyncio
    async def test_chunk_offsets_and_provenance(self) -> None:
        store = await _seeded_store()
        result = await _make_retriever(store).retrieve("monthly invoices", "acme", top_k=1)

        (rag_chunk,) = result.chunks
        assert rag_chunk.chunk.id == "chunk-a2"
        assert rag_chunk.chunk.start_index == 10
        assert rag_chunk.chunk.end_index == 10 + len("monthly invoices")
        assert rag_chunk.doc_id == "guide"
        assert rag_chunk.source_uri == "docs/guide.md"

    @pytest.mark.asyncio
    async def test_missing_offsets_fall_back_to_text_span(self) -> None:
        store = RecordingVectorStore()
        await store.upsert(
            [VectorRecord(id="r1", vector=[1.0], text="bare", metadata={md.TENANT_ID: "acme"})]
        )
        provider = MagicMock()
        provider.embed = AsyncMock(return_value=[[1.0]])
        retriever = VectorRetriever(StaticEmbeddingRouter(default=provider), store)

        result = await retriever.retrieve("q", "acme")

        chunk = result.chunks[0].chunk
        assert (chunk.start_index, chunk.end_index) == (0, 4)
        assert chunk.id == "r1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tenant_id", ["", "   "])
    async def test_empty_tenant_raises_value_error(self, tenant_id: str) -> None:
        store = await _seeded_store()
        with pytest.raises(ValueError):
            await _make_retriever(store).retrieve("q", tenant_id)
        assert store.query_filters == []

    @pytest.mark.asyncio
    async def test_malformed_tenant_raises(self) -> None:
        store = await _seeded_store()
        with pytest.raises(ConfigurationError):
            await _make_retriever(store).retrieve("q", "acme;drop")

    @pytest.mark.asyncio
    async def test_empty_embedding_raises(self) -> None:
        store = await _seeded_store()
        embedding = MockEmbeddingProvider(drop=1)

        with pytest.raises(EmbeddingContractError):
            await _make_retriever(store, embedding).retrieve("q", "acme")

    @pytest.mark.asyncio
    async def test_retrieve_request(self) -> None:
        store = await _seeded_store()
        request = RetrieveRequest(query="monthly invoices", tenant_id="acme", top_k=1)

        result = await _make_retriever(store).retrieve_request(request)

        assert len(result.chunks) == 1


# ---------------------------------------------------------------------------
# Composer
# ---------------------------------------------------------------------------


class TestComposer:
    def test_format_source_variants(self) -> None:
        assert format_source(1, _rag_chunk("Body")) == (
            "Source 1 (Document: guide, URI: docs/guide.md): Body"
        )
        assert format_source(2, _rag_chunk("Body", doc_id=None)) == "Source 2 (URI: docs/guide.md): Body"
        assert format_source(3, _rag_chunk("Body", doc_id=None, uri=None)) == "Source 3: Body"

    def test_inserts_system_message_when_absent(self) -> None:
        request = ChatRequest(messages=[Message(role=MessageRole.USER, content="Question?")])
        result = RetrieveResult(chunks=[_rag_chunk("First"), _rag_chunk("Second")])

        composed = DefaultRagComposer().compose(request, result)

        assert len(composed.messages) == 2
        system = composed.messages[0]
        assert system.role is MessageRole.SYSTEM
        assert system.content == "\n\n".join(
            [
                CONTEXT_HEADER,
                "Source 1 (Document: guide, URI: docs/guide.md): First",
                "Source 2 (Document: guide, URI: docs/guide.md): Second",
            ]
        )
        assert composed.messages[1] == request.messages[0]

    def test_prepends_context_to_existing_system_message(self) -> None:
        request = ChatRequest(
            messages=[
                Message(role=MessageRole.SYSTEM, content="Be brief."),
                Message(role=MessageRole.USER, content="Question?"),
            ],
            temperature=0.1,
        )

        composed = DefaultRagComposer().compose(request, RetrieveResult(chunks=[_rag_chunk("Ctx")]))

        assert len(composed.messages) == 2
        assert composed.messages[0].content.startswith(CONTEXT_HEADER)
        assert composed.messages[0].content.endswith("\n\nBe brief.")
        assert composed.temperature == 0.1
        assert request.messages[0].content == "Be brief."

    def test_no_chunks_returns_request_unchanged(self) -> None:
        request = ChatRequest(messages=[Message(role=MessageRole.USER, content="Q")])
        assert DefaultRagComposer().compose(request, RetrieveResult()) is request


# ---------------------------------------------------------------------------
# Chat service
# ---------------------------------------------------------------------------


def _make_chat_model(reply: str = "Use the profile page.", tokens: int = 42) -> IChatModel:
    model = MagicMock(spec=IChatModel)
    model.complete = AsyncMock(
        return_value=ChatResponse(content=reply, model="mock-chat", usage_tokens=tokens)
    )
    model.get_provider_name.return_value = "mock-chat"
    return model


class TestRagChatService:
    @pytest.mark.asyncio
    async def test_answer_grounds_the_request(self) -> None:
        store = await _seeded_store()
        chat = _make_chat_model()
        enforcer = TenantQuotaEnforcer(
            InMemoryTenantManager(tenants=[TenantInfo(tenant_id="acme", name="Acme")])
        )
        service = RagChatService(_make_retriever(store), DefaultRagComposer(), chat, enforcer)
        request = ChatRequest(
            messages=[Message(role=MessageRole.USER, content="how to reset a password")]
        )

        response = await service.answer(request, "acme")

        assert response.content == "Use the profile page."
        sent: ChatRequest = chat.complete.await_args.args[0]
        assert sent.messages[0].role is MessageRole.SYSTEM
        assert "Source 1 (Document: guide" in sent.messages[0].content
        assert sent.messages[-1].content == "how to reset a password"
        usage = await enforcer.get_usage("acme")
        assert usage.requests_today == 1
        assert usage.total_tokens_used == 42

    @pytest.mark.asyncio
    async def test_quota_denial_raises(self) -> None:
        store = await _seeded_store()
        chat = _make_chat_model()
        tenants = InMemoryTenantManager(
            tenants=[
                TenantInfo(
                    tenant_id="acme", name="Acme", quotas=TenantQuotas(max_tokens_per_request=1)
                )
            ]
        )
        service = RagChatService(
            _make_retriever(store), DefaultRagComposer(), chat, TenantQuotaEnforcer(tenants)
        )
        request = ChatRequest(messages=[Message(role=MessageRole.USER, content="x" * 40)])

        with pytest.raises(QuotaExceededError):
            await service.answer(request, "acme")
        chat.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_question_raises(self) -> None:
        store = await _seeded_store()
        service = RagChatService(_make_retriever(store), DefaultRagComposer(), _make_chat_model())
        request = ChatRequest(messages=[Message(role=MessageRole.SYSTEM, content="sys")])

        with pytest.raises(ValueError):
            await service.answer(request, "acme")

    def test_helpers(self) -> None:
        request = ChatRequest(
            messages=[
                Message(role=MessageRole.USER, content="first"),
                Message(role=MessageRole.ASSISTANT, content="reply"),
                Message(role=MessageRole.USER, content="second!!"),
            ]
        )
        assert last_user_message(request) == "second!!"
        assert estimate_tokens(request) == len("firstreplysecond!!") // 4
