"""Abstract base class for tenant registries."""

from __future__ import annotations

from abc import ABC, abstractmethod

from tenantrag.models.tenant import TenantInfo


class ITenantManager(ABC):
    """Contract for looking up and registering tenants.

    Implementations validate tenant ids on registration and raise
    :class:`~tenantrag.utils.errors.ConfigurationError` for malformed ones.
    """

    @abstractmethod
    async def get_tenant(self, tenant_id: str) -> TenantInfo | None:
        """Return the tenant, or ``None`` if it is not registered."""

    @abstractmethod
    async def register_tenant(self, tenant: TenantInfo) -> None:
        """Add *tenant*, replacing any existing entry with the same id."""

    @abstractmethod
    async def update_tenant(self, tenant: TenantInfo) -> None:
        """Replace an existing tenant.

        Raises
        ------
        KeyError
            If the tenant is not registered.
        """

    @abstractmethod
    async def list_tenants(self) -> list[TenantInfo]:
        """Return all registered tenants."""

    async def tenant_exists(self, tenant_id: str) -> bool:
        return await self.get_tenant(tenant_id) is not None
