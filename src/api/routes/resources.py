"""Resource endpoint: index the text of an external learning resource."""

from __future__ import annotations

import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from src.api.dependencies import get_store
from src.api.models import ResourceIngestRequest, ResourceIngestResponse
from src.ingestion.pipeline import ingest_resource
from src.ingestion.storage import KnowledgeStore

router = APIRouter()


@router.post("/api/resources", response_model=ResourceIngestResponse)
async def add_resource(
    request: ResourceIngestRequest,
    store: Annotated[KnowledgeStore, Depends(get_store)],
) -> ResourceIngestResponse:
    try:
        result = await asyncio.to_thread(
            ingest_resource,
            store,
            request.url,
            request.title,
            request.content,
            request.resource_type,
            request.author,
            request.cohort_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return ResourceIngestResponse(
        resource_id=result.resource_id,
        resource_type=result.resource_type,
        num_chunks=result.num_chunks,
    )
