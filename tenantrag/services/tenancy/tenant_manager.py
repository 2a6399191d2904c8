"""In-memory tenant registry."""

from __future__ import annotations

import asyncio
from typing import Iterable

import structlog

from tenantrag.interfaces.tenant_manager import ITenantManager
from tenantrag.models.tenant import TenantInfo, TenantQuotas

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_TENANT_ID = "default"

DEFAULT_QUOTAS = TenantQuotas(
    max_documents=10_000,
    max_storage_bytes=10 * 1024 * 1024 * 1024,
    max_requests_per_day=100_000,
    max_tokens_per_request=100_000,
)


def default_tenant() -> TenantInfo:
    return TenantInfo(tenant_id=DEFAULT_TENANT_ID, name="Default Tenant", quotas=DEFAULT_QUOTAS)


class InMemoryTenantManager(ITenantManager):
    """Dict-backed :class:`ITenantManager`.

    Parameters
    ----------
    seed_default:
        Register the ``default`` tenant on construction.
    tenants:
        Additional tenants to register (e.g. loaded from YAML).  An entry
        with id ``default`` replaces the seeded one.
    """

    def __init__(
        self,
        seed_default: bool = True,
        tenants: Iterable[TenantInfo] | None = None,
    ) -> None:
        self._tenants: dict[str, TenantInfo] = {}
        self._lock = asyncio.Lock()
        if seed_default:
            seeded = default_tenant()
            self._tenants[seeded.tenant_id] = seeded
        for tenant in tenants or ():
            self._tenants[tenant.tenant_id] = tenant

    async def get_tenant(self, tenant_id: str) -> TenantInfo | None:
        return self._tenants.get(tenant_id)

    async def register_tenant(self, tenant: TenantInfo) -> None:
        # TenantInfo validates its id on construction.
        async with self._lock:
            self._tenants[tenant.tenant_id] = tenant
        logger.info("tenant_registered", tenant_id=tenant.tenant_id)

    async def update_tenant(self, tenant: TenantInfo) -> None:
        async with self._lock:
            if tenant.tenant_id not in self._tenants:
                raise KeyError(tenant.tenant_id)
            self._tenants[tenant.tenant_id] = tenant
        logger.info("tenant_updated", tenant_id=tenant.tenant_id)

    async def list_tenants(self) -> list[TenantInfo]:
        return list(self._tenants.values())
