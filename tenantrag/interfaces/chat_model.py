"""Abstract base class for chat-completion providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from tenantrag.models.chat import ChatRequest, ChatResponse


# Concrete implementation: OpenAIChatProvider (tenantrag/providers/chat/)
class IChatModel(ABC):
    """Contract for generating a completion from a list of messages."""

    @abstractmethod
    async def complete(self, request: ChatRequest) -> ChatResponse:
        """Generate a reply to *request*.

        Raises
        ------
        tenantrag.utils.errors.RAGError
            If the provider call fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai_chat"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured."""
