"""Lecture endpoints: upload WebVTT transcripts and poll processing status."""

from __future__ import annotations

import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from src.api.dependencies import get_store
from src.api.models import LectureStatusResponse, VTTUploadResponse
from src.ingestion.exceptions import ParseError
from src.ingestion.parsers import validate_vtt_content
from src.ingestion.pipeline import process_vtt_file
from src.ingestion.storage import KnowledgeStore

router = APIRouter()

# 50 MB upload limit
MAX_UPLOAD_BYTES = 50 * 1024 * 1024


@router.post("/api/vtt/upload", response_model=VTTUploadResponse)
async def upload_vtt(
    store: Annotated[KnowledgeStore, Depends(get_store)],
    file: Annotated[UploadFile, File(...)],
    title: Annotated[str | None, Form()] = None,
    cohort_id: Annotated[str | None, Form()] = None,
) -> VTTUploadResponse:
    """Upload a .vtt transcript, create the lecture and run the ingestion pipeline.

    The lecture row is created first so a failure during processing is still
    visible through the status endpoint.
    """
    raw = await file.read()
    if len(raw) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {MAX_UPLOAD_BYTES // (1024 * 1024)} MB.",
        )

    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="VTT file must be UTF-8 text") from exc

    validation = validate_vtt_content(content)
    if not validation.is_valid:
        raise HTTPException(status_code=400, detail="; ".join(validation.errors))

    filename = file.filename or ""
    lecture_title = title or (filename.rsplit(".", 1)[0] if filename else "") or "Untitled Lecture"

    # Supabase and OpenAI clients are synchronous; keep them off the event loop.
    lecture_id = await asyncio.to_thread(
        store.create_lecture, lecture_title, cohort_id, filename or None, len(raw)
    )
    try:
        result = await asyncio.to_thread(
            process_vtt_file, store, lecture_id, content, lecture_title, cohort_id
        )
    except ParseError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return VTTUploadResponse(
        lecture_id=lecture_id,
        title=lecture_title,
        num_segments=result.num_segments,
        lecture_start_index=result.lecture_start_index,
        num_chunks=result.num_chunks,
        quality_score=result.chunk_analysis.quality_score,
        processing_time=round(result.processing_time, 2),
    )


@router.get("/api/vtt/status/{lecture_id}", response_model=LectureStatusResponse)
async def lecture_status(
    lecture_id: str,
    store: Annotated[KnowledgeStore, Depends(get_store)],
) -> LectureStatusResponse:
    """Return the processing stage and progress of a lecture."""
    row = await asyncio.to_thread(store.get_lecture_status, lecture_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Lecture not found")

    return LectureStatusResponse(
        lecture_id=lecture_id,
        title=row.get("title"),
        status=row["status"],
        processing_stage=row.get("processing_stage"),
        processing_progress=row.get("processing_progress") or 0,
        chunks_count=row.get("chunks_count"),
        error_message=row.get("error_message"),
    )
