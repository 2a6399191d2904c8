"""Chunking strategy selection.

:class:`ChunkingStrategyFactory` maps a :class:`ChunkStrategy` to a
registered implementation, falling back to fixed-size chunking when the
requested kind is not registered.  :class:`StrategyChunker` is the
:class:`IChunker` the pipeline talks to.
"""

from __future__ import annotations

from typing import Iterable, Mapping

import structlog

from tenantrag.interfaces.chunking import IChunker, IChunkingStrategy, IChunkingStrategyFactory
from tenantrag.models.ingestion import Chunk, ChunkOptions, ChunkStrategy
from tenantrag.services.ingestion.chunker import (
    FixedSizeChunkingStrategy,
    MarkdownAwareChunkingStrategy,
    ParagraphChunkingStrategy,
    SentenceChunkingStrategy,
)
from tenantrag.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


class ChunkingStrategyFactory(IChunkingStrategyFactory):
    """Registry of chunking strategies keyed by :class:`ChunkStrategy`.

    Parameters
    ----------
    strategies:
        Either a ``{kind: strategy}`` mapping or an iterable of strategies
        (each registered under its own ``kind``).
    """

    def __init__(
        self,
        strategies: Mapping[ChunkStrategy, IChunkingStrategy] | Iterable[IChunkingStrategy] = (),
    ) -> None:
        if isinstance(strategies, Mapping):
            self._strategies: dict[ChunkStrategy, IChunkingStrategy] = dict(strategies)
        else:
            self._strategies = {s.kind: s for s in strategies}

    def register(self, strategy: IChunkingStrategy) -> None:
        self._strategies[strategy.kind] = strategy

    def get_strategy(self, kind: ChunkStrategy) -> IChunkingStrategy:
        strategy = self._strategies.get(kind)
        if strategy is not None:
            return strategy

        fallback = self._strategies.get(ChunkStrategy.FIXED_SIZE)
        if fallback is not None:
            logger.warning(
                "chunking_strategy_fallback",
                requested=kind.value,
                fallback=ChunkStrategy.FIXED_SIZE.value,
            )
            return fallback

        raise ConfigurationError(
            message=f"No chunking strategy registered for '{kind.value}' and no fixed-size fallback"
        )


def default_strategy_factory() -> ChunkingStrategyFactory:
    """Return a factory with all four built-in strategies registered."""
    fixed = FixedSizeChunkingStrategy()
    return ChunkingStrategyFactory(
        [
            fixed,
            SentenceChunkingStrategy(),
            ParagraphChunkingStrategy(),
            MarkdownAwareChunkingStrategy(fallback=fixed),
        ]
    )


class StrategyChunker(IChunker):
    """Chunk text with whichever strategy ``options.strategy`` selects."""

    def __init__(self, factory: IChunkingStrategyFactory | None = None) -> None:
        self._factory = factory or default_strategy_factory()

    def chunk(self, text: str, options: ChunkOptions) -> list[Chunk]:
        strategy = self._factory.get_strategy(options.strategy)
        return strategy.chunk(text, options)
