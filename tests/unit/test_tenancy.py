"""Unit tests for tenant validation, the tenant registry and quota enforcement."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from tenantrag.models.tenant import TenantInfo, TenantQuotas
from tenantrag.services.tenancy.quota_enforcer import TenantQuotaEnforcer
from tenantrag.services.tenancy.tenant_manager import (
    DEFAULT_QUOTAS,
    DEFAULT_TENANT_ID,
    InMemoryTenantManager,
)
from tenantrag.utils.clock import FixedClock
from tenantrag.utils.errors import ConfigurationError
from tenantrag.utils.tenant_validator import is_valid_tenant_id, validate_tenant_id

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_enforcer(clock: FixedClock | None = None, **quotas: int) -> TenantQuotaEnforcer:
    tenants = [
        TenantInfo(tenant_id="acme", name="Acme", quotas=TenantQuotas(**quotas)),
        TenantInfo(tenant_id="sandbox", name="Sandbox"),
    ]
    return TenantQuotaEnforcer(InMemoryTenantManager(tenants=tenants), clock=clock)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestTenantValidator:
    @pytest.mark.parametrize("tenant_id", ["acme", "ACME_2", "a-b-c", "x" * 100, "0"])
    def test_valid_ids(self, tenant_id: str) -> None:
        assert is_valid_tenant_id(tenant_id)
        assert validate_tenant_id(tenant_id) == tenant_id

    @pytest.mark.parametrize(
        "tenant_id", ["", None, "x" * 101, "acme corp", "acme/prod", "../etc", "tenant\n", "café"]
    )
    def test_invalid_ids(self, tenant_id: str | None) -> None:
        assert not is_valid_tenant_id(tenant_id)
        with pytest.raises(ConfigurationError):
            validate_tenant_id(tenant_id)

    def test_tenant_info_rejects_invalid_id(self) -> None:
        with pytest.raises(ConfigurationError):
            TenantInfo(tenant_id="bad id", name="Bad")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestInMemoryTenantManager:
    @pytest.mark.asyncio
    async def test_default_tenant_is_seeded(self) -> None:
        manager = InMemoryTenantManager()
        tenant = await manager.get_tenant(DEFAULT_TENANT_ID)

        assert tenant is not None
        assert tenant.quotas == DEFAULT_QUOTAS
        assert await manager.tenant_exists(DEFAULT_TENANT_ID)

    @pytest.mark.asyncio
    async def test_seeding_can_be_disabled(self) -> None:
        manager = InMemoryTenantManager(seed_default=False)
        assert await manager.list_tenants() == []
        assert not await manager.tenant_exists(DEFAULT_TENANT_ID)

    @pytest.mark.asyncio
    async def test_register_and_update(self) -> None:
        manager = InMemoryTenantManager(seed_default=False)
        await manager.register_tenant(TenantInfo(tenant_id="acme", name="Acme"))
        await manager.update_tenant(TenantInfo(tenant_id="acme", name="Acme Corp"))

        tenant = await manager.get_tenant("acme")
        assert tenant is not None
        assert tenant.name == "Acme Corp"

    @pytest.mark.asyncio
    async def test_update_unknown_tenant_raises(self) -> None:
        manager = InMemoryTenantManager(seed_default=False)
        with pytest.raises(KeyError):
            await manager.update_tenant(TenantInfo(tenant_id="ghost", name="Ghost"))

    @pytest.mark.asyncio
    async def test_configured_default_replaces_seeded(self) -> None:
        custom = TenantInfo(tenant_id=DEFAULT_TENANT_ID, name="Mine")
        manager = InMemoryTenantManager(tenants=[custom])

        tenants = await manager.list_tenants()
        assert len(tenants) == 1
        assert tenants[0].name == "Mine"


# ---------------------------------------------------------------------------
# Quotas
# ---------------------------------------------------------------------------


class TestDocumentQuotas:
    @pytest.mark.asyncio
    async def test_unknown_tenant_is_denied(self) -> None:
        enforcer = _make_enforcer()
        assert not await enforcer.can_ingest_document("ghost")
        assert not await enforcer.can_make_chat_request("ghost", 1)

    @pytest.mark.asyncio
    async def test_tenant_without_quotas_is_never_denied(self) -> None:
        enforcer = _make_enforcer()
        for _ in range(5):
            await enforcer.record_document_ingestion("sandbox", 10, 10_000)
        assert await enforcer.can_ingest_document("sandbox")
        assert await enforcer.can_make_chat_request("sandbox", 10**9)

    @pytest.mark.asyncio
    async def test_document_limit(self) -> None:
        enforcer = _make_enforcer(max_documents=2)
        await enforcer.record_document_ingestion("acme", 5, 100)
        assert await enforcer.can_ingest_document("acme")
        await enforcer.record_document_ingestion("acme", 5, 100)
        assert not await enforcer.can_ingest_document("acme")

    @pytest.mark.asyncio
    async def test_storage_limit(self) -> None:
        enforcer = _make_enforcer(max_storage_bytes=1000)
        await enforcer.record_document_ingestion("acme", 1, 999)
        assert await enforcer.can_ingest_document("acme")
        await enforcer.record_document_ingestion("acme", 1, 1)
        assert not await enforcer.can_ingest_document("acme")

    @pytest.mark.asyncio
    async def test_document_count_is_per_document_not_per_chunk(self) -> None:
        enforcer = _make_enforcer(max_documents=10)
        await enforcer.record_document_ingestion("acme", 40, 10)

        usage = await enforcer.get_usage("acme")
        assert usage.document_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_recording_loses_no_updates(self) -> None:
        enforcer = _make_enforcer()
        await asyncio.gather(
            *(enforcer.record_document_ingestion("acme", 1, 3) for _ in range(200))
        )

        usage = await enforcer.get_usage("acme")
        assert usage.document_count == 200
        assert usage.storage_bytes == 600


class TestChatQuotas:
    @pytest.mark.asyncio
    async def test_token_limit_per_request(self) -> None:
        enforcer = _make_enforcer(max_tokens_per_request=500)
        assert await enforcer.can_make_chat_request("acme", 500)
        assert not await enforcer.can_make_chat_request("acme", 501)

    @pytest.mark.asyncio
    async def test_daily_limit_resets_on_new_day(self, fixed_clock: FixedClock) -> None:
        enforcer = _make_enforcer(clock=fixed_clock, max_requests_per_day=2)

        for _ in range(2):
            assert await enforcer.can_make_chat_request("acme", 10)
            await enforcer.record_chat_request("acme", 10)
        assert not await enforcer.can_make_chat_request("acme", 10)

        fixed_clock.advance(timedelta(days=1))
        assert await enforcer.can_make_chat_request("acme", 10)

        usage = await enforcer.get_usage("acme")
        assert usage.requests_today == 0
        assert usage.last_request_date == fixed_clock.today()
        assert usage.total_tokens_used == 20

    @pytest.mark.asyncio
    async def test_usage_snapshot_is_a_copy(self) -> None:
        enforcer = _make_enforcer()
        await enforcer.record_chat_request("acme", 7)

        snapshot = await enforcer.get_usage("acme")
        snapshot.requests_today = 99

        usage = await enforcer.get_usage("acme")
        assert usage.requests_today == 1
        assert usage.total_tokens_used == 7
