"""Text chunking strategies.

Splits extracted document text into :class:`~tenantrag.models.ingestion.Chunk`
objects sized for embedding models.  Four strategies are provided:

1. **Fixed-size** -- a sliding character window that snaps its right edge
   back to the last period (or, failing that, the last space) near the end
   of the window.  Consecutive windows overlap by ``options.overlap``.

2. **Sentence-aware** -- greedily packs whole sentences into chunks, never
   cutting a sentence in half.  Sentence splitting is abbreviation-aware so
   "Dr. Smith" stays one sentence.

3. **Paragraph** -- the same packing over blank-line separated paragraphs.
   A paragraph that alone exceeds the budget is packed sentence by sentence.

4. **Markdown-aware** -- accumulates heading-delimited sections and tags
   each chunk with the heading of the content it carries.

Every chunk records its true character offsets into the input text, so a
retrieved chunk can always be traced back to the exact source span.
"""

from __future__ import annotations

import re
import uuid
from typing import NamedTuple

import structlog

from tenantrag.interfaces.chunking import IChunkingStrategy
from tenantrag.models import metadata as md
from tenantrag.models.ingestion import Chunk, ChunkOptions, ChunkStrategy

logger = structlog.get_logger(logger_name=__name__)

# Common abbreviations that should NOT trigger a sentence split.
_ABBREVIATIONS = frozenset(
    {
        "Dr",
        "Mr",
        "Mrs",
        "Ms",
        "Prof",
        "Jr",
        "Sr",
        "St",
        "Ave",
        "Vol",
        "No",
        "vs",
        "etc",
        "approx",
        "dept",
        "est",
        "inc",
        "ltd",
        "co",
        "e.g",
        "i.e",
    }
)

_SENTENCE_END = re.compile(r"[.!?]+(?=\s|$)")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_HEADING = re.compile(r"^(#{1,6})\s+(.+)$", re.MULTILINE)

# How far back from the window edge fixed-size chunking looks for a boundary.
_PERIOD_LOOKBACK = 100
_SPACE_LOOKBACK = 50


class _Span(NamedTuple):
    """Half-open character range ``[start, end)`` in the source text."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _make_chunk(
    index: int,
    text: str,
    start: int,
    end: int,
    strategy: ChunkStrategy,
    heading: str | None = None,
) -> Chunk:
    metadata: dict[str, md.MetadataValue] = {
        md.CHUNK_INDEX: index,
        md.STRATEGY: strategy.value,
    }
    if heading:
        metadata[md.HEADING] = heading
    return Chunk(
        id=f"chunk_{index}_{uuid.uuid4().hex}",
        text=text,
        start_index=start,
        end_index=end,
        metadata=metadata,
    )


def _strip_span(text: str, start: int, end: int) -> _Span | None:
    """Shrink ``[start, end)`` to exclude surrounding whitespace."""
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if start >= end:
        return None
    return _Span(start, end)


def split_sentence_spans(text: str, start: int = 0, end: int | None = None) -> list[_Span]:
    """Return whitespace-trimmed sentence spans within ``text[start:end]``.

    Handles ``.``, ``!``, ``?`` (and runs like ``?!``) followed by
    whitespace or end-of-range.  Periods after known abbreviations are
    masked first so they do not end a sentence; the mask keeps the string
    length unchanged, so offsets stay aligned with *text*.
    """
    if end is None:
        end = len(text)
    segment = text[start:end]
    masked = segment
    for abbr in _ABBREVIATIONS:
        masked = re.sub(rf"\b{re.escape(abbr)}\.", abbr + "\x00", masked)

    spans: list[_Span] = []
    last = 0
    for match in _SENTENCE_END.finditer(masked):
        span = _strip_span(text, start + last, start + match.end())
        if span is not None:
            spans.append(span)
        last = match.end()

    tail = _strip_span(text, start + last, end)
    if tail is not None:
        spans.append(tail)
    return spans


def split_paragraph_spans(text: str) -> list[_Span]:
    """Return whitespace-trimmed spans of blank-line separated paragraphs."""
    spans: list[_Span] = []
    last = 0
    for match in _PARAGRAPH_BREAK.finditer(text):
        span = _strip_span(text, last, match.start())
        if span is not None:
            spans.append(span)
        last = match.end()
    tail = _strip_span(text, last, len(text))
    if tail is not None:
        spans.append(tail)
    return spans


def _build_overlap(group: list[_Span], overlap: int) -> list[_Span]:
    """Return tail spans of *group* whose combined extent is <= *overlap*.

    The whole group is never carried over, otherwise the next chunk would
    start with a full copy of the previous one.
    """
    if overlap <= 0 or len(group) < 2:
        return []
    tail: list[_Span] = []
    for span in reversed(group[1:]):
        extent = group[-1].end - span.start
        if extent > overlap:
            break
        tail.insert(0, span)
    return tail


def _pack_spans(spans: list[_Span], max_size: int, overlap: int) -> list[_Span]:
    """Greedily pack consecutive *spans* into chunk ranges of at most *max_size*.

    A single span longer than *max_size* becomes a range of its own.
    Consecutive ranges share trailing spans up to *overlap* characters.
    """
    ranges: list[_Span] = []
    group: list[_Span] = []

    for span in spans:
        if group and span.end - group[0].start > max_size:
            ranges.append(_Span(group[0].start, group[-1].end))
            group = _build_overlap(group, overlap)
            # Drop overlap from the front until the new span fits.
            while group and span.end - group[0].start > max_size:
                group.pop(0)
        group.append(span)

    if group:
        ranges.append(_Span(group[0].start, group[-1].end))
    return ranges


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class FixedSizeChunkingStrategy(IChunkingStrategy):
    """Sliding character window with period/space boundary snapping.

    For each window ``[start, start + max_size)`` that does not reach the
    end of the text, the right edge snaps back to just after the last
    ``.`` in the trailing 100 characters, else just after the last space in
    the trailing 50 characters, else stays put.  A snap must land strictly
    after ``start``.  The next window starts at
    ``max(start + 1, end - overlap)`` so progress is guaranteed even when
    ``overlap >= max_size``.

    A window holding only whitespace is folded into the chunk before it,
    or into the next one when no chunk has been emitted yet, so the spans
    always reach the end of the text without gaps.
    """

    @property
    def kind(self) -> ChunkStrategy:
        return ChunkStrategy.FIXED_SIZE

    def chunk(self, text: str, options: ChunkOptions) -> list[Chunk]:
        chunks: list[Chunk] = []
        length = len(text)
        start = 0
        pending_start: int | None = None

        while start < length:
            end = min(start + options.max_size, length)
            if end < length:
                end = self._snap_end(text, start, end)

            body = text[start:end].strip()
            if body:
                chunk_start = start if pending_start is None else pending_start
                pending_start = None
                chunks.append(_make_chunk(len(chunks), body, chunk_start, end, self.kind))
            elif chunks:
                if end > chunks[-1].end_index:
                    chunks[-1] = chunks[-1].model_copy(update={"end_index": end})
            elif pending_start is None:
                pending_start = start

            if end >= length:
                break
            start = max(start + 1, end - options.overlap)

        logger.debug("chunking_complete", strategy=self.kind.value, num_chunks=len(chunks))
        return chunks

    @staticmethod
    def _snap_end(text: str, start: int, end: int) -> int:
        window = end - start
        last_period = text.rfind(".", end - min(_PERIOD_LOOKBACK, window), end)
        if last_period > start:
            return last_period + 1
        last_space = text.rfind(" ", end - min(_SPACE_LOOKBACK, window), end)
        if last_space > start:
            return last_space + 1
        return end


class SentenceChunkingStrategy(IChunkingStrategy):
    """Pack whole sentences into chunks of at most ``max_size`` characters."""

    @property
    def kind(self) -> ChunkStrategy:
        return ChunkStrategy.SENTENCE

    def chunk(self, text: str, options: ChunkOptions) -> list[Chunk]:
        if not text.strip():
            return []
        ranges = _pack_spans(split_sentence_spans(text), options.max_size, options.overlap)
        chunks = [
            _make_chunk(i, text[r.start : r.end], r.start, r.end, self.kind)
            for i, r in enumerate(ranges)
        ]
        logger.debug("chunking_complete", strategy=self.kind.value, num_chunks=len(chunks))
        return chunks


class ParagraphChunkingStrategy(IChunkingStrategy):
    """Pack blank-line separated paragraphs into chunks.

    Paragraphs longer than ``max_size`` are broken into sentences first,
    so the only chunks that can exceed the budget are single over-long
    sentences.
    """

    @property
    def kind(self) -> ChunkStrategy:
        return ChunkStrategy.PARAGRAPH

    def chunk(self, text: str, options: ChunkOptions) -> list[Chunk]:
        if not text.strip():
            return []

        units: list[_Span] = []
        for para in split_paragraph_spans(text):
            if para.length > options.max_size:
                units.extend(split_sentence_spans(text, para.start, para.end))
            else:
                units.append(para)

        ranges = _pack_spans(units, options.max_size, options.overlap)
        chunks = [
            _make_chunk(i, text[r.start : r.end], r.start, r.end, self.kind)
            for i, r in enumerate(ranges)
        ]
        logger.debug("chunking_complete", strategy=self.kind.value, num_chunks=len(chunks))
        return chunks


class _Section(NamedTuple):
    start: int
    end: int
    heading: str | None


class MarkdownAwareChunkingStrategy(IChunkingStrategy):
    """Accumulate heading-delimited Markdown sections into chunks.

    Each section runs from a heading line to the next heading (or the end
    of the text); text before the first heading forms a heading-less
    section.  Sections are appended to a buffer; before appending, if the
    buffer is non-empty and ``len(buffer) + len(section) > max_size`` the
    buffer is flushed as a chunk.  A chunk is tagged with the heading of the
    last section it contains.  Text with no headings falls back to
    fixed-size chunking.
    """

    def __init__(self, fallback: IChunkingStrategy | None = None) -> None:
        self._fallback = fallback or FixedSizeChunkingStrategy()

    @property
    def kind(self) -> ChunkStrategy:
        return ChunkStrategy.MARKDOWN_AWARE

    def chunk(self, text: str, options: ChunkOptions) -> list[Chunk]:
        headings = list(_HEADING.finditer(text))
        if not headings:
            logger.debug("markdown_no_headings_fallback", text_length=len(text))
            return self._fallback.chunk(text, options)

        chunks: list[Chunk] = []
        buffer_start = 0
        buffer_end = 0
        buffer_heading: str | None = None

        def flush() -> None:
            span = _strip_span(text, buffer_start, buffer_end)
            if span is None:
                return
            chunks.append(
                _make_chunk(
                    len(chunks),
                    text[span.start : span.end],
                    buffer_start,
                    buffer_end,
                    self.kind,
                    heading=buffer_heading,
                )
            )

        for section in self._sections(text, headings):
            section_length = section.end - section.start
            buffered = buffer_end - buffer_start
            if buffered > 0 and buffered + section_length > options.max_size:
                flush()
                buffer_start = buffer_end = section.start
                buffered = 0
            if buffered == 0:
                buffer_start = section.start
            buffer_end = section.end
            buffer_heading = section.heading

        if buffer_end > buffer_start:
            flush()

        logger.debug("chunking_complete", strategy=self.kind.value, num_chunks=len(chunks))
        return chunks

    @staticmethod
    def _sections(text: str, headings: list[re.Match[str]]) -> list[_Section]:
        sections: list[_Section] = []
        first = headings[0].start()
        if first > 0 and text[:first].strip():
            sections.append(_Section(0, first, None))
        for i, match in enumerate(headings):
            end = headings[i + 1].start() if i + 1 < len(headings) else len(text)
            sections.append(_Section(match.start(), end, match.group(2).strip()))
        return sections
