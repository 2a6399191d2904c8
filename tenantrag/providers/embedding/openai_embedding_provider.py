"""Embedding adapter for the OpenAI embeddings endpoint.

Any server that speaks the same protocol works too: point
``openai_base_url`` at it and name its model in ``openai_embedding_model``.
Every tenant routed to this provider must also be queried through it,
since vectors from different models are not comparable.
"""

from __future__ import annotations

import openai
import structlog

from tenantrag.config.settings import Settings
from tenantrag.interfaces.embedding_provider import IEmbeddingProvider
from tenantrag.utils.errors import EmbeddingContractError, ProviderUnavailableError, RAGError

logger = structlog.get_logger(logger_name=__name__)

# Per-request input cap of the embeddings endpoint.
_MAX_INPUTS_PER_CALL = 2048

_DEFAULT_MODEL = "text-embedding-3-small"
_FALLBACK_DIMENSION = 768

_DIMENSIONS_BY_MODEL: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
    "intfloat/multilingual-e5-large-instruct": 1024,
}


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embeds chunk and query texts through ``AsyncOpenAI.embeddings``.

    Inputs longer than the per-call cap are sent in consecutive slices.
    The response items carry their input index and are re-sorted by it,
    so the returned vectors always line up with *texts*.

    Parameters
    ----------
    settings:
        Supplies the key, optional base URL and model name.
    client:
        Pre-built client; tests pass a mock here.
    """

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._api_key = settings.openai_api_key
        self._model = settings.openai_embedding_model or _DEFAULT_MODEL
        self._dimension = _DIMENSIONS_BY_MODEL.get(self._model, _FALLBACK_DIMENSION)

        base_url = settings.openai_base_url or None
        self._provider_label = "openai-compatible_embedding" if base_url else "openai_embedding"
        self._client = client or openai.AsyncOpenAI(api_key=self._api_key, base_url=base_url)

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        vectors: list[list[float]] = []
        for offset in range(0, len(texts), _MAX_INPUTS_PER_CALL):
            vectors.extend(await self._embed_slice(texts[offset : offset + _MAX_INPUTS_PER_CALL]))

        if len(vectors) != len(texts):
            raise EmbeddingContractError(
                message=f"Expected {len(texts)} embeddings but got {len(vectors)}",
                provider_name=self.get_provider_name(),
            )
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        (vector,) = await self.embed([text])
        return vector

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _embed_slice(self, inputs: list[str]) -> list[list[float]]:
        try:
            response = await self._client.embeddings.create(input=inputs, model=self._model)
        except openai.APIConnectionError as exc:
            raise ProviderUnavailableError(
                message=f"{self._provider_label} unreachable: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise RAGError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "embedding_slice_complete",
            model=self._model,
            provider=self._provider_label,
            inputs=len(inputs),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return [item.embedding for item in sorted(response.data, key=lambda item: item.index)]
