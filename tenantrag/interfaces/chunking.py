"""Abstract base classes for chunking.

* :class:`IChunkingStrategy` -- one algorithm (fixed-size, sentence, ...).
* :class:`IChunkingStrategyFactory` -- maps a :class:`ChunkStrategy` to an
  implementation.
* :class:`IChunker` -- what the pipeline calls; picks a strategy from the
  options and runs it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tenantrag.models.ingestion import Chunk, ChunkOptions, ChunkStrategy


class IChunkingStrategy(ABC):
    """A single text-chunking algorithm."""

    @property
    @abstractmethod
    def kind(self) -> ChunkStrategy:
        """The strategy enum value this implementation serves."""

    @abstractmethod
    def chunk(self, text: str, options: ChunkOptions) -> list[Chunk]:
        """Split *text* into ordered chunks covering it left to right.

        Each call re-derives the chunks from scratch; strategies hold no
        state between calls.
        """


class IChunkingStrategyFactory(ABC):
    @abstractmethod
    def get_strategy(self, kind: ChunkStrategy) -> IChunkingStrategy:
        """Return the strategy registered for *kind*.

        Raises
        ------
        tenantrag.utils.errors.ConfigurationError
            If no strategies are registered at all.
        """


class IChunker(ABC):
    @abstractmethod
    def chunk(self, text: str, options: ChunkOptions) -> list[Chunk]:
        """Chunk *text* with the strategy selected by ``options.strategy``."""
