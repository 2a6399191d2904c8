"""Retrieval-augmented chat: retrieve, compose, complete.

:class:`RagChatService` wires the retriever, the composer and a chat model
into a single call, with an optional quota gate in front.  Unlike the
quota enforcer itself, which only answers yes or no, this service turns a
denial into :class:`~tenantrag.utils.errors.QuotaExceededError`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from tenantrag.models.chat import ChatRequest, ChatResponse, MessageRole
from tenantrag.models.filters import VectorFilter
from tenantrag.utils.errors import QuotaExceededError

if TYPE_CHECKING:
    from tenantrag.interfaces.chat_model import IChatModel
    from tenantrag.services.rag.composer import DefaultRagComposer
    from tenantrag.services.rag.retriever import VectorRetriever
    from tenantrag.services.tenancy.quota_enforcer import TenantQuotaEnforcer

logger = structlog.get_logger(logger_name=__name__)


def estimate_tokens(request: ChatRequest) -> int:
    """Rough token estimate: four characters per token."""
    return sum(len(m.content) for m in request.messages) // 4


def last_user_message(request: ChatRequest) -> str | None:
    for message in reversed(request.messages):
        if message.role is MessageRole.USER:
            return message.content
    return None


class RagChatService:
    """Answer a chat request grounded in the tenant's documents.

    Parameters
    ----------
    retriever:
        Tenant-scoped retriever.
    composer:
        Folds retrieved chunks into the request.
    chat_model:
        Generates the answer.
    quota_enforcer:
        Optional chat-request quota gate.
    """

    def __init__(
        self,
        retriever: VectorRetriever,
        composer: DefaultRagComposer,
        chat_model: IChatModel,
        quota_enforcer: TenantQuotaEnforcer | None = None,
    ) -> None:
        self._retriever = retriever
        self._composer = composer
        self._chat_model = chat_model
        self._quota_enforcer = quota_enforcer

    async def answer(
        self,
        request: ChatRequest,
        tenant_id: str,
        query: str | None = None,
        top_k: int = 5,
        filter: VectorFilter | None = None,
    ) -> ChatResponse:
        """Retrieve context for *query* and ask the chat model.

        *query* defaults to the content of the last user message.

        Raises
        ------
        QuotaExceededError
            If the tenant's chat quota denies the request.
        ValueError
            If there is no query and no user message to fall back on.
        """
        estimated = estimate_tokens(request)
        if self._quota_enforcer is not None and not await self._quota_enforcer.can_make_chat_request(
            tenant_id, estimated
        ):
            raise QuotaExceededError(
                message=f"Chat quota exceeded for tenant '{tenant_id}'",
                provider_name="quota",
            )

        question = query if query is not None else last_user_message(request)
        if not question:
            raise ValueError("No query given and the request has no user message")

        result = await self._retriever.retrieve(question, tenant_id, top_k=top_k, filter=filter)
        composed = self._composer.compose(request, result)
        response = await self._chat_model.complete(composed)

        if self._quota_enforcer is not None:
            used = response.usage_tokens or estimate_tokens(composed)
            await self._quota_enforcer.record_chat_request(tenant_id, used)

        logger.info(
            "rag_answer_generated",
            tenant_id=tenant_id,
            sources=len(result.chunks),
            model=response.model,
            usage_tokens=response.usage_tokens,
        )
        return response
