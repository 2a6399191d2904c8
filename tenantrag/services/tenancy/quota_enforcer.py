"""Per-tenant quota checks and usage accounting.

The ``can_*`` methods answer whether an operation is allowed; the
``record_*`` methods account for an operation that happened.  Recording
never re-checks, so callers wanting enforcement must ask first.  A denial
is a ``False`` return, never an exception.

Unknown tenants are always denied.  A tenant without quotas is never
denied.  Daily request counters reset lazily: the first check or record
on a new UTC date zeroes ``requests_today``.

All usage state is guarded by one :class:`asyncio.Lock`, so concurrent
read-modify-write cycles cannot lose updates.
"""

from __future__ import annotations

import asyncio

import structlog

from tenantrag.interfaces.tenant_manager import ITenantManager
from tenantrag.models.tenant import TenantQuotaUsage
from tenantrag.utils.clock import Clock, SystemClock

logger = structlog.get_logger(logger_name=__name__)


class TenantQuotaEnforcer:
    """Tracks tenant usage in memory and checks it against configured quotas.

    Parameters
    ----------
    tenant_manager:
        Source of tenant quotas.
    clock:
        Source of the current UTC date for daily resets.
    """

    def __init__(self, tenant_manager: ITenantManager, clock: Clock | None = None) -> None:
        self._tenants = tenant_manager
        self._clock = clock or SystemClock()
        self._usage: dict[str, TenantQuotaUsage] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    async def can_ingest_document(self, tenant_id: str) -> bool:
        tenant = await self._tenants.get_tenant(tenant_id)
        if tenant is None:
            logger.warning("quota_unknown_tenant", tenant_id=tenant_id)
            return False
        quotas = tenant.quotas
        if quotas is None:
            return True

        async with self._lock:
            usage = self._usage_for(tenant_id)
            if quotas.max_documents is not None and usage.document_count >= quotas.max_documents:
                logger.info(
                    "document_quota_reached",
                    tenant_id=tenant_id,
                    documents=usage.document_count,
                    limit=quotas.max_documents,
                )
                return False
            if (
                quotas.max_storage_bytes is not None
                and usage.storage_bytes >= quotas.max_storage_bytes
            ):
                logger.info(
                    "storage_quota_reached",
                    tenant_id=tenant_id,
                    storage_bytes=usage.storage_bytes,
                    limit=quotas.max_storage_bytes,
                )
                return False
        return True

    async def can_make_chat_request(self, tenant_id: str, estimated_tokens: int) -> bool:
        tenant = await self._tenants.get_tenant(tenant_id)
        if tenant is None:
            logger.warning("quota_unknown_tenant", tenant_id=tenant_id)
            return False
        quotas = tenant.quotas
        if quotas is None:
            return True

        if (
            quotas.max_tokens_per_request is not None
            and estimated_tokens > quotas.max_tokens_per_request
        ):
            logger.info(
                "token_quota_exceeded",
                tenant_id=tenant_id,
                estimated_tokens=estimated_tokens,
                limit=quotas.max_tokens_per_request,
            )
            return False

        async with self._lock:
            usage = self._usage_for(tenant_id)
            self._reset_if_new_day(usage)
            if (
                quotas.max_requests_per_day is not None
                and usage.requests_today >= quotas.max_requests_per_day
            ):
                logger.info(
                    "daily_request_quota_reached",
                    tenant_id=tenant_id,
                    requests_today=usage.requests_today,
                    limit=quotas.max_requests_per_day,
                )
                return False
        return True

    # ------------------------------------------------------------------
    # Accounting
    # ------------------------------------------------------------------

    async def record_document_ingestion(
        self, tenant_id: str, chunk_count: int, storage_bytes: int
    ) -> None:
        """Count one ingested document.

        *chunk_count* is accepted for symmetry with the indexer result but
        the document quota counts documents, not chunks.
        """
        async with self._lock:
            usage = self._usage_for(tenant_id)
            usage.document_count += 1
            usage.storage_bytes += storage_bytes
        logger.debug(
            "document_ingestion_recorded",
            tenant_id=tenant_id,
            chunks=chunk_count,
            storage_bytes=storage_bytes,
        )

    async def record_chat_request(self, tenant_id: str, tokens_used: int) -> None:
        async with self._lock:
            usage = self._usage_for(tenant_id)
            self._reset_if_new_day(usage)
            usage.requests_today += 1
            usage.last_request_date = self._clock.today()
            usage.total_tokens_used += tokens_used
        logger.debug("chat_request_recorded", tenant_id=tenant_id, tokens=tokens_used)

    async def get_usage(self, tenant_id: str) -> TenantQuotaUsage:
        """Return a snapshot copy of the tenant's usage counters."""
        async with self._lock:
            return self._usage_for(tenant_id).model_copy()

    # ------------------------------------------------------------------
    # Helpers (call with the lock held)
    # ------------------------------------------------------------------

    def _usage_for(self, tenant_id: str) -> TenantQuotaUsage:
        usage = self._usage.get(tenant_id)
        if usage is None:
            usage = TenantQuotaUsage()
            self._usage[tenant_id] = usage
        return usage

    def _reset_if_new_day(self, usage: TenantQuotaUsage) -> None:
        today = self._clock.today()
        if usage.last_request_date is not None and usage.last_request_date < today:
            usage.requests_today = 0
            usage.last_request_date = today
