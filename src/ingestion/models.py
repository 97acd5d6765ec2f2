"""Data models for the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from src.ingestion.timestamps import timestamp_to_seconds


@dataclass(frozen=True)
class Segment:
    """One timed caption cue after parsing."""

    index: int
    start_time: str
    end_time: str
    text: str
    speaker: str | None = None

    @property
    def start_seconds(self) -> float:
        return timestamp_to_seconds(self.start_time)

    @property
    def end_seconds(self) -> float:
        return timestamp_to_seconds(self.end_time)

    @property
    def duration(self) -> float:
        return self.end_seconds - self.start_seconds


@dataclass(frozen=True)
class ChunkMetadata:
    """Positional metadata attached to every chunk."""

    chunk_index: int
    has_overlap: bool
    undersized: bool = False  # below min_tokens; expected for a trailing chunk
    truncated: bool = False


@dataclass(frozen=True)
class Chunk:
    """A chunk ready for embedding and storage."""

    text: str
    start_time: str
    end_time: str
    token_count: int
    metadata: ChunkMetadata


@dataclass(frozen=True)
class ResourceChunk:
    """A chunk of external resource content (no timing information)."""

    text: str
    chunk_index: int
    token_count: int


@dataclass
class ParsedTranscript:
    """Parsed segments plus the detected lecture start."""

    segments: list[Segment]
    lecture_start_index: int = 0
    total_duration: float = 0.0

    @property
    def lecture_segments(self) -> list[Segment]:
        return self.segments[self.lecture_start_index :]


class Confidence(StrEnum):
    """How confident the lecture-start detector is about its answer."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DetectionMethod(StrEnum):
    """Which detector tier produced the lecture start."""

    KEYWORD = "keyword"
    TIME_FALLBACK = "time_fallback"
    DEFAULT = "default"


@dataclass(frozen=True)
class IntroAnalysis:
    """Result of analysing the introductory part of a transcript."""

    has_intro: bool
    intro_duration: float
    lecture_start_index: int
    confidence: Confidence
    method: DetectionMethod


@dataclass(frozen=True)
class ChunkAnalysis:
    """Summary statistics over a list of chunks."""

    total_chunks: int = 0
    average_tokens: int = 0
    min_tokens: int = 0
    max_tokens: int = 0
    chunks_with_overlap: int = 0
    overlap_ratio: float = 0.0
    quality_score: float = 0.0


@dataclass(frozen=True)
class VTTValidation:
    """Outcome of a cheap structural check on raw VTT content."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
