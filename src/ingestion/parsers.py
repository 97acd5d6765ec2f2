"""WebVTT caption parser with sequence-number filtering and intro detection."""

from __future__ import annotations

import logging
import re

from src.ingestion.exceptions import ParseError
from src.ingestion.intro_detection import find_lecture_start
from src.ingestion.models import ParsedTranscript, Segment, VTTValidation
from src.ingestion.timestamps import (
    calculate_duration,
    is_valid_timestamp,
    parse_timestamp_line,
    timestamp_to_seconds,
)
from src.pipeline_config import LectureStartConfig

logger = logging.getLogger(__name__)

VTT_HEADER = "WEBVTT"
MIN_VTT_LENGTH = 10

_SEQUENCE_NUMBER_RE = re.compile(r"^\d+$")
# Inline voice tag as written by Microsoft Teams: <v Speaker Name>text</v>.
# The closing </v> tag is optional in WebVTT.
_VOICE_TAG_RE = re.compile(r"^<v(?:\.[\w.-]+)?\s+([^>]+)>(.*?)(?:</v>)?$", re.DOTALL)
_RANGE_PATTERN_RE = re.compile(r"\d{2}:\d{2}:\d{2}\.\d{3}\s*-->\s*\d{2}:\d{2}:\d{2}\.\d{3}")


def is_sequence_number(line: str) -> bool:
    """Return True if the whole trimmed line is digits (a cue sequence number).

    Numbers inside spoken text (``"Step 1 is important"``) do not count.
    """
    return bool(_SEQUENCE_NUMBER_RE.match(line.strip()))


def _normalise_cue_text(text_lines: list[str]) -> tuple[str, str | None]:
    text = " ".join(" ".join(text_lines).split())
    speaker: str | None = None
    voice_match = _VOICE_TAG_RE.match(text)
    if voice_match:
        speaker = voice_match.group(1).strip()
        text = " ".join(voice_match.group(2).split())
    return text, speaker


def parse_vtt(content: str) -> list[Segment]:
    """Parse WebVTT content into ordered transcript segments.

    Cue text may span several lines; lines are joined with a single space.
    Collection of a cue's text stops at a blank line, another timing line or a
    sequence number. Damaged cues are skipped with a warning instead of
    aborting the whole parse.

    Raises:
        ParseError: If *content* is empty or not a string.
    """
    if not content or not isinstance(content, str):
        raise ParseError("Invalid VTT content: must be a non-empty string")

    lines = content.splitlines()
    segments: list[Segment] = []
    previous_start: float | None = None

    i = 0
    while i < len(lines):
        line_no = i + 1
        line = lines[i].strip()
        i += 1

        if not line or line == VTT_HEADER or is_sequence_number(line):
            continue

        timing = parse_timestamp_line(line)
        if timing is None:
            continue

        # Collect text until a blank line, another timing line or a sequence number
        text_lines: list[str] = []
        while i < len(lines):
            next_line = lines[i].strip()
            if not next_line or parse_timestamp_line(next_line) or is_sequence_number(next_line):
                break
            text_lines.append(next_line)
            i += 1

        if not is_valid_timestamp(timing.start_time) or not is_valid_timestamp(timing.end_time):
            logger.warning("Skipping cue with invalid timestamp at line %d: %s", line_no, line)
            continue

        duration = calculate_duration(timing.start_time, timing.end_time)
        start_seconds = timestamp_to_seconds(timing.start_time)
        if duration <= 0:
            logger.warning("Skipping cue whose end does not follow its start: %s", line)
            continue
        if previous_start is not None and start_seconds < previous_start:
            logger.warning("Skipping out-of-order cue: %s", line)
            continue

        text, speaker = _normalise_cue_text(text_lines)
        if not text:
            continue

        segments.append(
            Segment(
                index=len(segments),
                start_time=timing.start_time,
                end_time=timing.end_time,
                text=text,
                speaker=speaker,
            )
        )
        previous_start = start_seconds

    logger.info("Parsed %d VTT segments", len(segments))
    return segments


def parse_vtt_with_intro_detection(
    content: str,
    config: LectureStartConfig | None = None,
) -> ParsedTranscript:
    """Parse *content* and locate where the substantive lecture begins."""
    segments = parse_vtt(content)
    if not segments:
        return ParsedTranscript(segments=[], lecture_start_index=0, total_duration=0.0)

    lecture_start_index = find_lecture_start(segments, config)
    total_duration = segments[-1].end_seconds

    logger.info(
        "Lecture starts at segment %d (%s); total duration %d minutes",
        lecture_start_index,
        segments[lecture_start_index].start_time,
        int(total_duration // 60),
    )
    return ParsedTranscript(
        segments=segments,
        lecture_start_index=lecture_start_index,
        total_duration=total_duration,
    )


def filter_intro_segments(segments: list[Segment], lecture_start_index: int) -> list[Segment]:
    """Drop everything before *lecture_start_index*."""
    return segments[lecture_start_index:]


def validate_vtt_content(content: str) -> VTTValidation:
    """Cheap structural check run before a file is accepted for processing."""
    if not content or not isinstance(content, str):
        return VTTValidation(is_valid=False, errors=["Content must be a non-empty string"])

    if len(content) < MIN_VTT_LENGTH:
        return VTTValidation(is_valid=False, errors=["Content too short to be valid VTT"])

    errors: list[str] = []
    if VTT_HEADER not in content:
        errors.append("Missing WEBVTT header")
    if not _RANGE_PATTERN_RE.search(content):
        errors.append("No valid timestamp patterns found")

    return VTTValidation(is_valid=not errors, errors=errors)
