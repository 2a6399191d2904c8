"""Utility modules for tenantrag.

- **errors** -- exception hierarchy rooted at TenantRagError.
- **logging** -- structlog setup with console/JSON dual rendering.
- **concurrency** -- semaphore-throttled gather for bounded fan-out.
- **clock** -- injectable UTC time source (used by quota resets).
- **tenant_validator** -- tenant id format checks.
"""

from tenantrag.utils.errors import (
    ConfigurationError,
    DocumentLoadError,
    EmbeddingContractError,
    ExtractionError,
    ProviderUnavailableError,
    QuotaExceededError,
    RAGError,
    TenantRagError,
)
from tenantrag.utils.tenant_validator import is_valid_tenant_id, validate_tenant_id

__all__ = [
    "ConfigurationError",
    "DocumentLoadError",
    "EmbeddingContractError",
    "ExtractionError",
    "ProviderUnavailableError",
    "QuotaExceededError",
    "RAGError",
    "TenantRagError",
    "is_valid_tenant_id",
    "validate_tenant_id",
]
