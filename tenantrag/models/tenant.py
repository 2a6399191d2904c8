"""Tenant models: identity, configured quotas and runtime usage.

Quota fields are optional -- ``None`` means the dimension is unlimited.
:class:`TenantQuotaUsage` is the only mutable model in the package; it is
owned by :class:`~tenantrag.services.tenancy.quota_enforcer.TenantQuotaEnforcer`
and only ever mutated while holding the enforcer's lock.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tenantrag.utils.tenant_validator import validate_tenant_id


class TenantQuotas(BaseModel):
    """Per-tenant resource ceilings."""

    model_config = ConfigDict(frozen=True)

    max_documents: int | None = Field(default=None, ge=0)
    max_storage_bytes: int | None = Field(default=None, ge=0)
    max_requests_per_day: int | None = Field(default=None, ge=0)
    max_tokens_per_request: int | None = Field(default=None, ge=0)


class TenantInfo(BaseModel):
    """A registered tenant."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    quotas: TenantQuotas | None = None

    @field_validator("tenant_id")
    @classmethod
    def _validate_tenant_id(cls, value: str) -> str:
        # ConfigurationError is not a ValueError, so pydantic lets it propagate.
        return validate_tenant_id(value)


class TenantQuotaUsage(BaseModel):
    """Running usage counters for one tenant (in memory, not persisted)."""

    document_count: int = 0
    storage_bytes: int = 0
    requests_today: int = 0
    last_request_date: date | None = None
    total_tokens_used: int = 0
