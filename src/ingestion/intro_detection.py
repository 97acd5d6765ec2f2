"""Lecture-start detection: skip intro music, greetings and housekeeping.

Two tiers, the first match wins:

1. Keyword tier: the first of the opening segments whose lower-cased text
   contains a lecture-opening phrase and is long enough not to be a lone
   greeting.
2. Time fallback: the first segment past the fallback offset (10 minutes by
   default) with a substantial amount of text.

If neither matches, the whole transcript is used (index 0). Detection never
raises.
"""

from __future__ import annotations

import logging

from src.ingestion.models import Confidence, DetectionMethod, IntroAnalysis, Segment
from src.pipeline_config import LectureStartConfig

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = LectureStartConfig()


def _contains_lecture_keyword(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def _detect(segments: list[Segment], config: LectureStartConfig) -> tuple[int, DetectionMethod]:
    for i, segment in enumerate(segments[: config.keyword_window]):
        text = segment.text.lower()
        if len(text) > config.keyword_min_chars and _contains_lecture_keyword(text, config.keywords):
            logger.info(
                "Found lecture start at segment %d (%s): %r",
                i,
                segment.start_time,
                segment.text[:100],
            )
            return i, DetectionMethod.KEYWORD

    for i, segment in enumerate(segments):
        if (
            segment.start_seconds > config.fallback_offset_seconds
            and len(segment.text) > config.fallback_min_chars
        ):
            logger.info("Using time fallback: lecture starts at segment %d (%s)", i, segment.start_time)
            return i, DetectionMethod.TIME_FALLBACK

    if segments:
        logger.warning("No clear lecture start detected, using first segment")
    return 0, DetectionMethod.DEFAULT


def find_lecture_start(
    segments: list[Segment],
    config: LectureStartConfig | None = None,
) -> int:
    """Return the index of the first segment of substantive lecture content."""
    index, _ = _detect(segments, config or _DEFAULT_CONFIG)
    return index


def analyze_intro_content(
    segments: list[Segment],
    config: LectureStartConfig | None = None,
) -> IntroAnalysis:
    """Classify the intro and how confident the detection is.

    Confidence is ``high`` for a keyword match, ``medium`` for a time-fallback
    match starting before the medium-confidence limit (15 minutes), and ``low``
    for a later fallback match or when nothing matched.
    """
    config = config or _DEFAULT_CONFIG
    index, method = _detect(segments, config)

    if method is DetectionMethod.DEFAULT:
        return IntroAnalysis(
            has_intro=False,
            intro_duration=0.0,
            lecture_start_index=0,
            confidence=Confidence.LOW,
            method=method,
        )

    intro_duration = segments[index].start_seconds
    if method is DetectionMethod.KEYWORD:
        confidence = Confidence.HIGH
    elif intro_duration < config.medium_confidence_limit_seconds:
        confidence = Confidence.MEDIUM
    else:
        confidence = Confidence.LOW

    return IntroAnalysis(
        has_intro=index > 0,
        intro_duration=intro_duration if index > 0 else 0.0,
        lecture_start_index=index,
        confidence=confidence,
        method=method,
    )
