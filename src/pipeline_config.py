"""Pipeline configuration: chunking and lecture-start tuning dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.config import Settings


DEFAULT_LECTURE_START_KEYWORDS: tuple[str, ...] = (
    "today",
    "we'll cover",
    "let's start",
    "agenda",
    "welcome to",
    "in this lecture",
    "we will learn",
    "our topic today",
    "let's begin",
    "first",
    "introduction",
)


@dataclass(frozen=True)
class ChunkingConfig:
    """Token budget for the semantic chunker.

    ``overlap`` is the number of estimated tokens carried from the tail of one
    chunk into the head of the next. ``respect_boundaries`` lists preferred
    break strings in priority order; they are used when an oversized chunk has
    to be cut back.
    """

    min_tokens: int = 300
    max_tokens: int = 800
    overlap: int = 50
    respect_boundaries: tuple[str, ...] = ("\n\n", ". ", "? ", "! ")

    def validate(self) -> list[str]:
        """Return a list of invariant violations (empty when valid)."""
        errors: list[str] = []
        if self.min_tokens <= 0:
            errors.append("min_tokens must be greater than 0")
        if self.max_tokens <= self.min_tokens:
            errors.append("max_tokens must be greater than min_tokens")
        if self.overlap < 0:
            errors.append("overlap must be non-negative")
        if self.overlap >= self.min_tokens:
            errors.append("overlap must be less than min_tokens")
        return errors


@dataclass(frozen=True)
class LectureStartConfig:
    """Thresholds for lecture-start detection.

    The keyword tier scans the first ``keyword_window`` segments; the time
    fallback looks for the first segment starting after
    ``fallback_offset_seconds`` with more than ``fallback_min_chars`` characters.
    """

    keywords: tuple[str, ...] = DEFAULT_LECTURE_START_KEYWORDS
    keyword_window: int = 20
    keyword_min_chars: int = 20
    fallback_offset_seconds: float = 600.0
    fallback_min_chars: int = 50
    medium_confidence_limit_seconds: float = 15 * 60


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable configuration for the lecture ingestion pipeline."""

    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    lecture_start: LectureStartConfig = field(default_factory=LectureStartConfig)
    skip_intro: bool = True
    embedding_batch_size: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        """Build a pipeline config from application settings.

        Raises:
            ValueError: If the configured chunk budget violates its invariants.
        """
        chunking = ChunkingConfig(
            min_tokens=settings.chunk_min_tokens,
            max_tokens=settings.chunk_max_tokens,
            overlap=settings.chunk_overlap,
        )
        errors = chunking.validate()
        if errors:
            msg = f"Invalid chunking settings: {'; '.join(errors)}"
            raise ValueError(msg)

        lecture_start = LectureStartConfig(
            keyword_window=settings.lecture_start_keyword_window,
            fallback_offset_seconds=settings.lecture_start_fallback_seconds,
            fallback_min_chars=settings.lecture_start_fallback_min_chars,
        )
        return cls(
            chunking=chunking,
            lecture_start=lecture_start,
            skip_intro=settings.skip_intro,
            embedding_batch_size=settings.embedding_batch_size,
        )
