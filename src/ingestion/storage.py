"""Supabase storage for lectures, resources and knowledge chunks."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any, cast

from supabase import Client, create_client

from src.config import Settings, settings

if TYPE_CHECKING:
    from src.ingestion.models import Chunk, ResourceChunk

CHUNK_INSERT_BATCH_SIZE = 50


class LectureStatus(StrEnum):
    """Processing status of an uploaded lecture."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def _now() -> str:
    return datetime.now(UTC).isoformat()


class KnowledgeStore:
    """Persistence for lectures, resources and their embedded chunks.

    The Supabase client is created lazily from settings unless one is passed
    in. The store is owned by the caller; ``reset()`` drops the client so the
    next call reconnects (useful after rotating keys and in tests).
    """

    def __init__(self, client: Client | None = None, app_settings: Settings | None = None) -> None:
        self._client = client
        self._settings = app_settings or settings

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = create_client(self._settings.supabase_url, self._settings.supabase_key)
        return self._client

    def reset(self) -> None:
        self._client = None

    # -- lectures -----------------------------------------------------------

    def create_lecture(
        self,
        title: str,
        cohort_id: str | None = None,
        vtt_filename: str | None = None,
        vtt_size: int | None = None,
    ) -> str:
        """Insert a pending lecture row and return its ID."""
        result = (
            self.client.table("lectures")
            .insert(
                {
                    "title": title,
                    "cohort_id": cohort_id,
                    "vtt_filename": vtt_filename,
                    "vtt_size": vtt_size,
                    "status": LectureStatus.PENDING.value,
                    "processing_progress": 0,
                }
            )
            .execute()
        )
        return str(result.data[0]["id"])

    def get_lecture_status(self, lecture_id: str) -> dict[str, Any] | None:
        result = (
            self.client.table("lectures")
            .select("id,title,status,processing_stage,processing_progress,chunks_count,error_message")
            .eq("id", lecture_id)
            .execute()
        )
        rows = cast(list[dict[str, Any]], result.data)
        return rows[0] if rows else None

    def get_cohort_id(self, lecture_id: str) -> str | None:
        result = self.client.table("lectures").select("cohort_id").eq("id", lecture_id).execute()
        rows = cast(list[dict[str, Any]], result.data)
        return rows[0].get("cohort_id") if rows else None

    def update_processing_progress(self, lecture_id: str, stage: str, progress: int) -> None:
        self.client.table("lectures").update(
            {
                "status": LectureStatus.PROCESSING.value,
                "processing_stage": stage,
                "processing_progress": progress,
                "updated_at": _now(),
            }
        ).eq("id", lecture_id).execute()

    def mark_completed(self, lecture_id: str, chunks_count: int, processing_time: float) -> None:
        self.client.table("lectures").update(
            {
                "status": LectureStatus.COMPLETED.value,
                "processing_stage": "completed",
                "processing_progress": 100,
                "chunks_count": chunks_count,
                "processing_time": round(processing_time, 2),
                "completed_at": _now(),
            }
        ).eq("id", lecture_id).execute()

    def mark_failed(self, lecture_id: str, error_message: str) -> None:
        self.client.table("lectures").update(
            {
                "status": LectureStatus.FAILED.value,
                "error_message": error_message,
                "failed_at": _now(),
            }
        ).eq("id", lecture_id).execute()

    # -- resources ----------------------------------------------------------

    def create_resource(
        self,
        url: str,
        resource_type: str,
        title: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        result = (
            self.client.table("resources")
            .insert(
                {
                    "url": url,
                    "type": resource_type,
                    "title": title,
                    "content": content,
                    "metadata": metadata or {},
                    "scraped_at": _now(),
                }
            )
            .execute()
        )
        return str(result.data[0]["id"])

    # -- chunks -------------------------------------------------------------

    def _insert_chunk_rows(self, rows: list[dict[str, Any]]) -> None:
        for i in range(0, len(rows), CHUNK_INSERT_BATCH_SIZE):
            self.client.table("knowledge_chunks").insert(rows[i : i + CHUNK_INSERT_BATCH_SIZE]).execute()

    def store_lecture_chunks(
        self,
        lecture_id: str,
        chunks_with_embeddings: list[tuple[Chunk, list[float]]],
        metadata: dict[str, Any] | None = None,
        cohort_id: str | None = None,
    ) -> int:
        """Store lecture chunks with embeddings (batched by 50). Returns rows written."""
        shared = metadata or {}
        rows: list[dict[str, Any]] = []
        for chunk, embedding in chunks_with_embeddings:
            rows.append(
                {
                    "type": "lecture",
                    "lecture_id": lecture_id,
                    "text": chunk.text,
                    "embedding": embedding,
                    "start_time": chunk.start_time,
                    "end_time": chunk.end_time,
                    "token_count": chunk.token_count,
                    "chunk_index": chunk.metadata.chunk_index,
                    "cohort_id": cohort_id,
                    "metadata": {
                        **shared,
                        "chunk_index": chunk.metadata.chunk_index,
                        "has_overlap": chunk.metadata.has_overlap,
                        "timestamp": chunk.start_time,
                    },
                }
            )
        self._insert_chunk_rows(rows)
        return len(rows)

    def store_resource_chunks(
        self,
        resource_id: str,
        chunks_with_embeddings: list[tuple[ResourceChunk, list[float]]],
        metadata: dict[str, Any] | None = None,
        cohort_id: str | None = None,
    ) -> int:
        shared = metadata or {}
        rows = [
            {
                "type": "resource",
                "resource_id": resource_id,
                "text": chunk.text,
                "embedding": embedding,
                "token_count": chunk.token_count,
                "chunk_index": chunk.chunk_index,
                "cohort_id": cohort_id,
                "metadata": {**shared, "chunk_index": chunk.chunk_index},
            }
            for chunk, embedding in chunks_with_embeddings
        ]
        self._insert_chunk_rows(rows)
        return len(rows)

    # -- search -------------------------------------------------------------

    def search_knowledge(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
        cohort_id: str | None = None,
        result_type: str | None = None,
    ) -> list[dict[str, Any]]:
        """Vector similarity search via the ``search_knowledge`` SQL function."""
        result = self.client.rpc(
            "search_knowledge",
            {
                "query_embedding": query_embedding,
                "match_threshold": match_threshold,
                "match_count": match_count,
                "filter_cohort_id": cohort_id,
                "filter_type": result_type,
            },
        ).execute()
        # Supabase .data is typed as JSON (broad union); cast to concrete type.
        return cast(list[dict[str, Any]], result.data)
