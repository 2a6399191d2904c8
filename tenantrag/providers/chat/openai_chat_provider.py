"""OpenAI-compatible chat provider adapter.

Wraps the ``openai`` async client to implement :class:`IChatModel`.  When
``openai_base_url`` is configured the client points at that URL instead of
the default OpenAI endpoint.
"""

from __future__ import annotations

import openai
import structlog

from tenantrag.config.settings import Settings
from tenantrag.interfaces.chat_model import IChatModel
from tenantrag.models.chat import ChatRequest, ChatResponse
from tenantrag.utils.errors import ProviderUnavailableError, RAGError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TEMPERATURE = 0.3
_DEFAULT_MAX_TOKENS = 1024


class OpenAIChatProvider(IChatModel):
    """Chat model backed by an OpenAI-compatible chat completions API.

    Uses ``gpt-4o-mini`` unless ``openai_chat_model`` overrides it.
    """

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._api_key = settings.openai_api_key

        if client is None:
            client_kwargs: dict = {
                "api_key": self._api_key,
                "timeout": openai.Timeout(25.0, connect=5.0),
            }
            if settings.openai_base_url:
                client_kwargs["base_url"] = settings.openai_base_url
            client = openai.AsyncOpenAI(**client_kwargs)
        self._client = client
        self._model = settings.openai_chat_model or "gpt-4o-mini"
        self._provider_label = "openai-compatible" if settings.openai_base_url else "openai"

    async def complete(self, request: ChatRequest) -> ChatResponse:
        temperature = (
            request.temperature if request.temperature is not None else _DEFAULT_TEMPERATURE
        )
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": m.role.value, "content": m.content} for m in request.messages],
                temperature=temperature,
                max_tokens=request.max_tokens or _DEFAULT_MAX_TOKENS,
            )
        except openai.APITimeoutError as exc:
            raise RAGError(
                message=f"{self._provider_label} timed out after 25s",
                provider_name=self.get_provider_name(),
            ) from exc
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

        content = response.choices[0].message.content
        if content is None:
            raise RAGError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self.get_provider_name(),
            )
        tokens = response.usage.total_tokens if response.usage else 0
        logger.info(
            "openai_completion",
            model=self._model,
            provider=self._provider_label,
            tokens=tokens,
        )
        return ChatResponse(content=content, model=response.model or self._model, usage_tokens=tokens)

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
