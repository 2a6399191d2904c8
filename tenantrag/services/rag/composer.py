"""Fold retrieved chunks into a chat request as grounding context."""

from __future__ import annotations

import structlog

from tenantrag.models.chat import ChatRequest, Message, MessageRole
from tenantrag.models.rag import RagChunk, RetrieveResult

logger = structlog.get_logger(logger_name=__name__)

CONTEXT_HEADER = "Use the following context to answer the question. Cite sources when possible."
_SEPARATOR = "\n\n"


def format_source(number: int, chunk: RagChunk) -> str:
    """Render one chunk as ``Source {n} (Document: ..., URI: ...): text``."""
    parts: list[str] = []
    if chunk.doc_id:
        parts.append(f"Document: {chunk.doc_id}")
    if chunk.source_uri:
        parts.append(f"URI: {chunk.source_uri}")
    label = f"Source {number}"
    if parts:
        label += f" ({', '.join(parts)})"
    return f"{label}: {chunk.chunk.text}"


def build_context(result: RetrieveResult) -> str:
    entries = [format_source(i, c) for i, c in enumerate(result.chunks, start=1)]
    return _SEPARATOR.join([CONTEXT_HEADER, *entries])


class DefaultRagComposer:
    """Inject retrieved context into the leading system message.

    If the request already starts with a system message, that message is
    replaced by ``context + blank line + original text``; otherwise a new
    system message holding just the context is inserted first.  An empty
    retrieval result leaves the request untouched.
    """

    def compose(self, request: ChatRequest, result: RetrieveResult) -> ChatRequest:
        if not result.chunks:
            return request

        context = build_context(result)
        messages = list(request.messages)
        if messages and messages[0].role is MessageRole.SYSTEM:
            messages[0] = Message(
                role=MessageRole.SYSTEM,
                content=context + _SEPARATOR + messages[0].content,
            )
        else:
            messages.insert(0, Message(role=MessageRole.SYSTEM, content=context))

        logger.debug("rag_context_composed", sources=len(result.chunks))
        return request.model_copy(update={"messages": messages})
