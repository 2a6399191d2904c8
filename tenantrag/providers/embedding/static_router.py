"""Tenant-to-embedding-provider routing backed by a fixed map."""

from __future__ import annotations

import structlog

from tenantrag.interfaces.embedding_provider import IEmbeddingProvider, IEmbeddingRouter

logger = structlog.get_logger(logger_name=__name__)


class StaticEmbeddingRouter(IEmbeddingRouter):
    """Route every tenant to a default provider, with optional overrides.

    Parameters
    ----------
    default:
        Provider used for tenants without an override.
    overrides:
        Optional ``{tenant_id: provider}`` map.
    """

    def __init__(
        self,
        default: IEmbeddingProvider,
        overrides: dict[str, IEmbeddingProvider] | None = None,
    ) -> None:
        self._default = default
        self._overrides = dict(overrides or {})

    def select(self, tenant_id: str) -> IEmbeddingProvider:
        provider = self._overrides.get(tenant_id, self._default)
        logger.debug(
            "embedding_provider_selected",
            tenant_id=tenant_id,
            provider=provider.get_provider_name(),
        )
        return provider

    def set_override(self, tenant_id: str, provider: IEmbeddingProvider) -> None:
        self._overrides[tenant_id] = provider
