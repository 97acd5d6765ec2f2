"""Pydantic request/response schemas for the Lecture Knowledge API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from src.resources.validators import ResourceType
from src.retrieval.models import ResultType


class VTTUploadResponse(BaseModel):
    """Response body for the /api/vtt/upload endpoint."""

    lecture_id: str
    title: str
    num_segments: int
    lecture_start_index: int
    num_chunks: int
    quality_score: float
    processing_time: float


class LectureStatusResponse(BaseModel):
    """Processing status of an uploaded lecture."""

    lecture_id: str
    title: str | None = None
    status: str
    processing_stage: str | None = None
    processing_progress: int = 0
    chunks_count: int | None = None
    error_message: str | None = None


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class QueryRequest(BaseModel):
    """Request body for the /api/query endpoint."""

    question: str
    cohort_id: str | None = None
    result_type: ResultType | None = None
    history: list[ChatTurn] = []
    top_k: int | None = Field(default=None, ge=1, le=50)
    boost_recent: bool = True
    boost_technical: bool = True
    boost_titles: bool = True


class SourceChunk(BaseModel):
    """A single reranked source with its score breakdown."""

    id: str
    type: ResultType
    text: str
    title: str | None = None
    similarity: float
    final_score: float
    ranking_factors: dict[str, float]
    metadata: dict[str, Any] = {}


class QueryResponse(BaseModel):
    """Response body for the /api/query endpoint."""

    answer: str
    sources: list[SourceChunk]
    model: str | None = None
    usage: dict[str, Any] | None = None


class ResourceIngestRequest(BaseModel):
    """Request body for the /api/resources endpoint (content is already fetched)."""

    url: str
    title: str
    content: str
    resource_type: ResourceType | None = None
    author: str | None = None
    cohort_id: str | None = None


class ResourceIngestResponse(BaseModel):
    resource_id: str
    resource_type: ResourceType
    num_chunks: int
