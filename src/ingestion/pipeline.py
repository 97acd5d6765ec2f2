"""End-to-end ingestion pipeline: parse -> detect start -> chunk -> embed -> store."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from datetime import UTC, datetime

from openai import OpenAI

from src.config import settings
from src.ingestion.chunking import analyze_chunks, chunk_resource_content, chunk_vtt
from src.ingestion.embeddings import embed_items
from src.ingestion.exceptions import ParseError
from src.ingestion.models import ChunkAnalysis, Segment
from src.ingestion.parsers import parse_vtt_with_intro_detection
from src.ingestion.storage import KnowledgeStore
from src.pipeline_config import PipelineConfig
from src.resources.validators import ResourceType, detect_resource_type, validate_resource_url

logger = logging.getLogger(__name__)

_TITLE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?:lecture|session|class|workshop|tutorial):\s*([^.!?]+)", re.IGNORECASE),
    re.compile(r"(?:today|we'll|we will)\s+(?:cover|discuss|talk about)\s+([^.!?]+)", re.IGNORECASE),
    re.compile(r"(?:welcome to|introduction to)\s+([^.!?]+)", re.IGNORECASE),
]

# Lead-in phrases are case-insensitive; the name itself must be capitalised words.
_INSTRUCTOR_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?i:hi|hello|welcome),?\s*(?i:i'm|i am)\s+([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)*)"),
    re.compile(r"(?i:this is|i'm)\s+([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)*)(?:\s+and|,)"),
]


@dataclass
class ProcessingResult:
    """Outcome of processing one lecture transcript."""

    lecture_id: str
    num_segments: int
    lecture_start_index: int
    num_chunks: int
    total_duration: float
    chunk_analysis: ChunkAnalysis
    processing_time: float


@dataclass
class ResourceIngestResult:
    """Outcome of ingesting one external resource."""

    resource_id: str
    resource_type: ResourceType
    num_chunks: int


def extract_lecture_title(segments: list[Segment]) -> str | None:
    """Guess the lecture title from the first three segments."""
    text = " ".join(s.text for s in segments[:3])
    for pattern in _TITLE_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def extract_instructor(segments: list[Segment]) -> str | None:
    """Guess the instructor's name from a self-introduction in the first five segments."""
    text = " ".join(s.text for s in segments[:5])
    for pattern in _INSTRUCTOR_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return None


def _update_progress(store: KnowledgeStore, lecture_id: str, stage: str, progress: int) -> None:
    # Progress updates are informational; a failed write must not abort processing.
    try:
        store.update_processing_progress(lecture_id, stage, progress)
    except Exception:
        logger.warning("Failed to update progress for lecture %s (%s)", lecture_id, stage, exc_info=True)


def process_vtt_file(
    store: KnowledgeStore,
    lecture_id: str,
    vtt_content: str,
    title: str | None = None,
    cohort_id: str | None = None,
    config: PipelineConfig | None = None,
    openai_client: OpenAI | None = None,
) -> ProcessingResult:
    """Full lecture pipeline: parse, trim the intro, chunk, embed and store.

    Progress is written to the lecture row as it goes (parsing 20, chunking 40,
    embedding 40-70, storing 70, completed 100). On any failure the lecture is
    marked ``failed`` and the exception is re-raised.

    Args:
        store: Persistence for lecture rows and chunks.
        lecture_id: ID of an existing lecture row.
        vtt_content: Raw WebVTT text.
        title: Lecture title, used when none can be read from the transcript.
        cohort_id: Cohort the chunks belong to; looked up from the lecture if omitted.
        config: Pipeline tuning (defaults to values from settings).
        openai_client: Optional client for the embedding calls.

    Returns:
        A :class:`ProcessingResult` summary.
    """
    started = time.perf_counter()
    config = config or PipelineConfig.from_settings(settings)

    try:
        logger.info("Starting VTT processing for lecture %s", lecture_id)

        # 1. Parse and detect where the lecture proper begins
        parsed = parse_vtt_with_intro_detection(vtt_content, config.lecture_start)
        if not parsed.segments:
            raise ParseError("No segments found in VTT file")
        _update_progress(store, lecture_id, "parsing", 20)

        # 2. Chunk (optionally skipping the intro)
        segments = parsed.lecture_segments if config.skip_intro else parsed.segments
        chunks = chunk_vtt(segments, config.chunking)
        analysis = analyze_chunks(chunks)
        logger.info(
            "Created %d chunks (avg %d tokens, quality %.2f)",
            analysis.total_chunks,
            analysis.average_tokens,
            analysis.quality_score,
        )
        _update_progress(store, lecture_id, "chunking", 40)

        # 3. Embed
        def on_progress(completed: int, total: int) -> None:
            _update_progress(store, lecture_id, "embedding", 40 + round(completed / total * 30))

        chunks_with_embeddings = embed_items(
            chunks,
            lambda c: c.text,
            batch_size=config.embedding_batch_size,
            on_progress=on_progress,
            client=openai_client,
        )
        _update_progress(store, lecture_id, "storing", 70)

        # 4. Store
        metadata = {
            "lecture_title": extract_lecture_title(parsed.segments) or title,
            "instructor": extract_instructor(parsed.segments),
            "created_at": datetime.now(UTC).isoformat(),
        }
        if cohort_id is None:
            cohort_id = store.get_cohort_id(lecture_id)
        store.store_lecture_chunks(lecture_id, chunks_with_embeddings, metadata, cohort_id)

        processing_time = time.perf_counter() - started
        store.mark_completed(lecture_id, len(chunks), processing_time)
    except Exception as exc:
        logger.exception("VTT processing failed for lecture %s", lecture_id)
        store.mark_failed(lecture_id, str(exc) or type(exc).__name__)
        raise

    logger.info("VTT processing completed for lecture %s in %.1fs", lecture_id, processing_time)
    return ProcessingResult(
        lecture_id=lecture_id,
        num_segments=len(parsed.segments),
        lecture_start_index=parsed.lecture_start_index,
        num_chunks=len(chunks),
        total_duration=parsed.total_duration,
        chunk_analysis=analysis,
        processing_time=processing_time,
    )


def ingest_resource(
    store: KnowledgeStore,
    url: str,
    title: str,
    content: str,
    resource_type: ResourceType | str | None = None,
    author: str | None = None,
    cohort_id: str | None = None,
    batch_size: int | None = None,
    openai_client: OpenAI | None = None,
) -> ResourceIngestResult:
    """Chunk, embed and store the already-fetched text of an external resource.

    Raises:
        ValueError: If the URL does not fit the resource type, or there is no content.
    """
    rtype = ResourceType(resource_type) if resource_type else detect_resource_type(url)
    if not validate_resource_url(url, rtype):
        msg = f"Invalid {rtype.value} URL: {url}"
        raise ValueError(msg)

    chunks = chunk_resource_content(content)
    if not chunks:
        raise ValueError("Resource has no content to index")

    chunks_with_embeddings = embed_items(
        chunks,
        lambda c: c.text,
        batch_size=batch_size or settings.embedding_batch_size,
        client=openai_client,
    )

    metadata = {
        "resource_title": title,
        "type": rtype.value,
        "url": url,
        "author": author,
        "created_at": datetime.now(UTC).isoformat(),
    }
    resource_id = store.create_resource(url, rtype.value, title, content, {"author": author})
    store.store_resource_chunks(resource_id, chunks_with_embeddings, metadata, cohort_id)
    logger.info("Ingested %s resource %s as %d chunks", rtype.value, url, len(chunks))

    return ResourceIngestResult(resource_id=resource_id, resource_type=rtype, num_chunks=len(chunks))
