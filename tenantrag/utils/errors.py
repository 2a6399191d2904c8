"""Custom exception hierarchy for tenantrag.

All application exceptions inherit from :class:`TenantRagError`, which
carries an optional ``provider_name`` so error handlers can identify which
collaborator (e.g. "openai", "chromadb", "file-loader") caused the failure.

The hierarchy follows the error taxonomy of the engine:

    TenantRagError  (base -- catch-all for any tenantrag error)
    +-- ConfigurationError       (invalid tenant id, empty registry, bad filter use)
    +-- DocumentLoadError        (loader could not fetch a source)
    +-- ExtractionError          (extractor could not turn bytes into text)
    +-- RAGError                 (embedding or vector-store failure)
    |   +-- EmbeddingContractError (embedding collaborator broke its contract)
    +-- ProviderUnavailableError (external service not configured / unreachable)
    +-- QuotaExceededError       (chat service refused by the quota gate)

Quota denials inside the core are *not* exceptions -- the enforcer answers
with booleans and callers branch on them.  ``QuotaExceededError`` is only
raised by the chat convenience service, which has no boolean to return.
"""


class TenantRagError(Exception):
    """Base exception for all tenantrag errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which collaborator triggered the error.
    ``__str__`` prefixes the provider name in brackets, e.g.
    ``[chromadb] upsert failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Configuration / usage errors -- fatal, never retried
# ---------------------------------------------------------------------------

class ConfigurationError(TenantRagError):
    """Raised for invalid configuration or API misuse.

    Covers malformed tenant identifiers, a strategy factory with nothing
    registered, and combinator calls on an empty filter builder.
    """

    def __init__(
        self,
        message: str = "Invalid configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Ingestion errors -- fatal for a single document
# ---------------------------------------------------------------------------

class DocumentLoadError(TenantRagError):
    """Raised when a document loader cannot fetch a source URI."""

    def __init__(
        self,
        message: str = "Document could not be loaded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionError(TenantRagError):
    """Raised when a text extractor cannot decode a document."""

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Collaborator errors
# ---------------------------------------------------------------------------

class RAGError(TenantRagError):
    """Raised on embedding generation or vector-store failures."""

    def __init__(
        self,
        message: str = "RAG operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingContractError(RAGError):
    """Raised when an embedding provider returns the wrong number of vectors.

    Chunks are zipped to vectors positionally, so a count mismatch (or an
    empty response for a query) is fatal to the current operation.
    """

    def __init__(
        self,
        message: str = "Embedding provider violated its contract",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(TenantRagError):
    """Raised when a required provider is not configured or unreachable."""

    def __init__(
        self,
        message: str = "Provider is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class QuotaExceededError(TenantRagError):
    """Raised by the chat service when a tenant's quota denies a request."""

    def __init__(
        self,
        message: str = "Tenant quota exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
