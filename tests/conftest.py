"""Shared pytest fixtures for the tenantrag test suite."""

from __future__ import annotations

import hashlib
import struct
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from tenantrag.interfaces.embedding_provider import IEmbeddingProvider
from tenantrag.models.filters import VectorFilter
from tenantrag.models.vector import VectorMatch
from tenantrag.providers.vector_store.memory_vector_store import InMemoryVectorStore
from tenantrag.utils.clock import FixedClock

_EMBEDDING_DIM = 128

FIXED_NOW = datetime(2024, 3, 14, 9, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Deterministic embedding helpers
# ---------------------------------------------------------------------------


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic fixed-length vector by hashing *text*.

    Uses SHA-256 to hash the text, then unpacks bytes into floats and
    normalises to unit length.  Same text always produces the same vector.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = digest
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    raw = raw[: dim * 4]
    values = list(struct.unpack(f"<{dim}f", raw))
    # Hash bytes can decode to NaN/inf; zero those out before normalising.
    values = [v if v == v and abs(v) < 1e30 else 0.0 for v in values]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests.

    ``drop`` removes that many vectors from every response, to simulate a
    provider that breaks the one-vector-per-text contract.
    """

    def __init__(self, name: str = "mock-embedding", drop: int = 0) -> None:
        self._name = name
        self._drop = drop
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        vectors = [_hash_to_vector(t) for t in texts]
        return vectors[: max(len(vectors) - self._drop, 0)]

    async def embed_single(self, text: str) -> list[float]:
        return _hash_to_vector(text)

    def get_dimension(self) -> int:
        return _EMBEDDING_DIM

    def get_provider_name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return True


class RecordingVectorStore(InMemoryVectorStore):
    """InMemoryVectorStore that remembers every filter it was queried with."""

    def __init__(self) -> None:
        super().__init__()
        self.query_filters: list[VectorFilter | None] = []
        self.query_tenants: list[str | None] = []

    async def query(
        self,
        vector: list[float] | None,
        top_k: int,
        filter: VectorFilter | None = None,
        tenant_id: str | None = None,
        collection: str | None = None,
    ) -> list[VectorMatch]:
        self.query_filters.append(filter)
        self.query_tenants.append(tenant_id)
        return await super().query(vector, top_k, filter, tenant_id, collection)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def fixed_clock() -> FixedClock:
    return FixedClock(FIXED_NOW)


@pytest.fixture
def mock_embedding() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def recording_store() -> RecordingVectorStore:
    return RecordingVectorStore()


@pytest.fixture
def tmp_chromadb(tmp_path: Path):
    """Create a temporary ChromaDB provider for integration tests."""
    from tenantrag.providers.vector_store.chromadb_provider import ChromaDBProvider

    persist_dir = str(tmp_path / "chromadb_test")
    return ChromaDBProvider(persist_directory=persist_dir, collection_name="test")


@pytest.fixture
def mock_settings(tmp_path: Path) -> Any:
    """Return Settings with a dummy API key and an in-memory vector store."""
    from tenantrag.config.settings import Settings

    return Settings(
        openai_api_key="sk-test-key",
        vector_store="memory",
        chromadb_persist_dir=str(tmp_path / "chromadb"),
        tenants_config_path=str(tmp_path / "missing.yaml"),
        app_env="test",
    )


@pytest.fixture
def sample_markdown() -> str:
    return (
        "Intro paragraph before any heading.\n\n"
        "# Setup\n\n"
        "Install the package and configure your API key.\n\n"
        "## Accounts\n\n"
        "Create an account. Reset your password from the profile page.\n\n"
        "## Billing\n\n"
        "Invoices are sent monthly. Dr. Smith approves refunds.\n"
    )


@pytest.fixture
def sample_prose() -> str:
    return (
        "Tenant isolation is enforced at query time. Every search carries the "
        "tenant predicate. A caller filter can only narrow the result set.\n\n"
        "Documents are versioned on ingestion. Each version is a set of records "
        "that share a version id. Old versions can be purged on update.\n\n"
        "Quotas are tracked in memory. Daily counters reset on the first request "
        "of a new day. Unknown tenants are always denied."
    )
