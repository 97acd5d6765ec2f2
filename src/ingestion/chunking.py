"""Semantic chunking of transcript segments with token budgets and overlap.

The transcript chunker is a single greedy pass over the segments. The token
estimate of the growing buffer is derived from a running word count, so no
text is re-scanned as the buffer grows; the only backward walk is the overlap
tail, which is bounded by the overlap budget.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from src.ingestion.models import Chunk, ChunkAnalysis, ChunkMetadata, ResourceChunk, Segment
from src.ingestion.tokens import (
    SENTENCE_SPLIT_RE,
    estimate_token_count,
    tokens_for_word_count,
    truncate_to_token_limit,
)
from src.pipeline_config import ChunkingConfig

logger = logging.getLogger(__name__)

DEFAULT_CHUNKING_CONFIG = ChunkingConfig()

# Resource documents (scraped pages, READMEs, feeds) are packed by paragraph.
RESOURCE_MAX_TOKENS = 800
RESOURCE_MIN_TOKENS = 300
RESOURCE_OVERLAP_TOKENS = 50

_PARAGRAPH_SPLIT_RE = re.compile(r"\n\n+")


@dataclass
class _ChunkBuffer:
    words: list[str] = field(default_factory=list)
    start_time: str = ""
    end_time: str = ""


def _overlap_tail(words: list[str], overlap_tokens: int) -> list[str]:
    """Whole words from the end of *words* that fit in *overlap_tokens*."""
    if overlap_tokens <= 0:
        return []

    tail: list[str] = []
    used = 0
    for word in reversed(words):
        cost = estimate_token_count(word)
        if used + cost > overlap_tokens:
            break
        tail.append(word)
        used += cost
    tail.reverse()
    return tail


def _truncate(text: str, config: ChunkingConfig) -> str:
    """Cut an oversized chunk back under ``max_tokens`` without splitting a word.

    Prefers ending on one of ``config.respect_boundaries`` when one falls in
    the second half of the kept text.
    """
    truncated = truncate_to_token_limit(text, config.max_tokens)
    split_word = len(truncated) < len(text) and not text[len(truncated)].isspace()

    for boundary in config.respect_boundaries:
        pos = truncated.rfind(boundary)
        if pos > len(truncated) // 2:
            truncated = truncated[: pos + len(boundary)].strip()
            split_word = False
            break

    words = truncated.split()
    if split_word and len(words) > 1:
        words.pop()
    while len(words) > 1 and tokens_for_word_count(len(words)) > config.max_tokens:
        words.pop()
    return " ".join(words)


def _create_chunk(
    words: list[str],
    start_time: str,
    end_time: str,
    chunk_index: int,
    config: ChunkingConfig,
) -> Chunk:
    text = " ".join(words)
    token_count = tokens_for_word_count(len(words))

    truncated = False
    if token_count > config.max_tokens:
        logger.warning(
            "Chunk %d has %d tokens (max: %d), truncating",
            chunk_index,
            token_count,
            config.max_tokens,
        )
        text = _truncate(text, config)
        token_count = estimate_token_count(text)
        truncated = True

    undersized = token_count < config.min_tokens
    if undersized:
        logger.warning(
            "Chunk %d has only %d tokens (min: %d)",
            chunk_index,
            token_count,
            config.min_tokens,
        )

    return Chunk(
        text=text,
        start_time=start_time,
        end_time=end_time,
        token_count=token_count,
        metadata=ChunkMetadata(
            chunk_index=chunk_index,
            has_overlap=chunk_index > 0,
            undersized=undersized,
            truncated=truncated,
        ),
    )


def _split_long_segment(
    segment: Segment,
    words: list[str],
    config: ChunkingConfig,
    first_index: int,
    seed: list[str] | None = None,
) -> list[Chunk]:
    """Split an over-budget segment word by word into pieces under ``max_tokens``.

    *seed* is an overlap tail carried over from the previous chunk; it opens
    the first piece. A piece is only emitted once it holds a new word.
    """
    pieces: list[Chunk] = []
    current: list[str] = list(seed or [])
    carried = len(current)

    for word in words:
        if len(current) > carried and tokens_for_word_count(len(current) + 1) > config.max_tokens:
            pieces.append(
                _create_chunk(
                    current,
                    segment.start_time,
                    segment.end_time,
                    first_index + len(pieces),
                    config,
                )
            )
            current = _overlap_tail(current, config.overlap)
            carried = len(current)
        current.append(word)

    if current:
        pieces.append(
            _create_chunk(
                current,
                segment.start_time,
                segment.end_time,
                first_index + len(pieces),
                config,
            )
        )
    return pieces


def chunk_vtt(
    segments: list[Segment],
    config: ChunkingConfig = DEFAULT_CHUNKING_CONFIG,
) -> list[Chunk]:
    """Pack transcript segments into overlapping, token-bounded chunks.

    Args:
        segments: Parsed (and usually intro-trimmed) transcript segments.
        config: Token budget, overlap and preferred break strings.

    Returns:
        Chunks in emission order. Every chunk after the first starts with an
        overlap tail from its predecessor and has ``metadata.has_overlap`` set.
    """
    if not segments:
        return []

    logger.info("Chunking %d VTT segments", len(segments))
    chunks: list[Chunk] = []
    buffer = _ChunkBuffer()

    for segment in segments:
        segment_words = segment.text.split()
        if not segment_words:
            continue

        tentative_tokens = tokens_for_word_count(len(buffer.words) + len(segment_words))

        if tentative_tokens <= config.max_tokens:
            if not buffer.words:
                buffer.start_time = segment.start_time
            buffer.words.extend(segment_words)
            buffer.end_time = segment.end_time
        elif buffer.words:
            chunks.append(
                _create_chunk(
                    buffer.words,
                    buffer.start_time,
                    buffer.end_time,
                    len(chunks),
                    config,
                )
            )
            tail = _overlap_tail(buffer.words, config.overlap)
            if tokens_for_word_count(len(tail) + len(segment_words)) > config.max_tokens:
                chunks.extend(
                    _split_long_segment(segment, segment_words, config, len(chunks), seed=tail)
                )
                buffer = _ChunkBuffer()
            else:
                buffer = _ChunkBuffer(
                    words=tail + segment_words,
                    start_time=segment.start_time,
                    end_time=segment.end_time,
                )
        else:
            # A single segment is over budget on its own
            chunks.extend(_split_long_segment(segment, segment_words, config, len(chunks)))

    if buffer.words:
        chunks.append(
            _create_chunk(buffer.words, buffer.start_time, buffer.end_time, len(chunks), config)
        )

    logger.info("Created %d chunks from %d segments", len(chunks), len(segments))
    return chunks


def validate_chunking_config(config: ChunkingConfig) -> list[str]:
    """Return the list of invariant violations for *config* (empty when valid)."""
    return config.validate()


def analyze_chunks(chunks: list[Chunk]) -> ChunkAnalysis:
    """Summarise chunk sizes and overlap coverage.

    The quality score averages a consistency term (``1 - variance / mean**2``,
    floored at 0) and the share of chunks that carry overlap.
    """
    if not chunks:
        return ChunkAnalysis()

    token_counts = [c.token_count for c in chunks]
    average = sum(token_counts) / len(chunks)
    with_overlap = sum(1 for c in chunks if c.metadata.has_overlap)

    variance = sum((count - average) ** 2 for count in token_counts) / len(chunks)
    consistency = max(0.0, 1 - variance / (average * average)) if average else 0.0
    overlap_ratio = with_overlap / len(chunks)

    return ChunkAnalysis(
        total_chunks=len(chunks),
        average_tokens=round(average),
        min_tokens=min(token_counts),
        max_tokens=max(token_counts),
        chunks_with_overlap=with_overlap,
        overlap_ratio=overlap_ratio,
        quality_score=round((consistency + overlap_ratio) / 2, 2),
    )


def chunk_resource_content(
    content: str,
    max_tokens: int = RESOURCE_MAX_TOKENS,
    min_tokens: int = RESOURCE_MIN_TOKENS,
    overlap_tokens: int = RESOURCE_OVERLAP_TOKENS,
) -> list[ResourceChunk]:
    """Chunk external resource text by paragraph.

    Paragraphs are packed until the next one would exceed *max_tokens* and the
    current chunk already holds at least *min_tokens*. The last two sentences
    of a finished chunk seed the next one when they fit in *overlap_tokens*.
    """
    chunks: list[ResourceChunk] = []
    paragraphs = [p for p in _PARAGRAPH_SPLIT_RE.split(content) if p.strip()]

    current = ""
    current_tokens = 0
    for paragraph in paragraphs:
        paragraph_tokens = estimate_token_count(paragraph)

        if current_tokens + paragraph_tokens > max_tokens and current_tokens >= min_tokens:
            chunks.append(
                ResourceChunk(
                    text=current.strip(),
                    chunk_index=len(chunks),
                    token_count=estimate_token_count(current),
                )
            )
            sentences = [s.strip() for s in SENTENCE_SPLIT_RE.split(current) if s.strip()]
            overlap_text = ". ".join(sentences[-2:]) + ". "
            overlap_count = estimate_token_count(overlap_text)
            if overlap_count <= overlap_tokens:
                current, current_tokens = overlap_text, overlap_count
            else:
                current, current_tokens = "", 0

        current = f"{current}\n\n{paragraph}" if current else paragraph
        current_tokens += paragraph_tokens

    if current.strip():
        chunks.append(
            ResourceChunk(
                text=current.strip(),
                chunk_index=len(chunks),
                token_count=estimate_token_count(current),
            )
        )
    return chunks
