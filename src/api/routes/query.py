"""Query endpoint: retrieve, rerank and answer with Claude."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict
from typing import Annotated

from anthropic import APIStatusError
from fastapi import APIRouter, Depends, HTTPException

from src.api.dependencies import get_search_client
from src.api.models import QueryRequest, QueryResponse, SourceChunk
from src.config import settings
from src.retrieval.generation import generate_answer
from src.retrieval.models import RerankedResult
from src.retrieval.reranker import get_ranking_stats, rerank_results
from src.retrieval.search import KnowledgeSearchClient

router = APIRouter()
logger = logging.getLogger(__name__)

NO_RESULTS_ANSWER = "No relevant lecture or resource content found for your question."


def _to_source(reranked: RerankedResult) -> SourceChunk:
    result = reranked.result
    return SourceChunk(
        id=result.id,
        type=result.type,
        text=result.text,
        title=result.title or None,
        similarity=result.similarity,
        final_score=reranked.final_score,
        ranking_factors=asdict(reranked.ranking_factors),
        metadata=result.metadata,
    )


@router.post("/api/query", response_model=QueryResponse)
async def query(
    request: QueryRequest,
    search_client: Annotated[KnowledgeSearchClient, Depends(get_search_client)],
) -> QueryResponse:
    """Answer a question over lectures and resources.

    Vector search -> hybrid rerank -> top-K -> Claude.
    """
    candidates = await asyncio.to_thread(
        search_client.search,
        request.question,
        cohort_id=request.cohort_id,
        result_type=request.result_type,
    )
    if not candidates:
        return QueryResponse(answer=NO_RESULTS_ANSWER, sources=[])

    reranked = rerank_results(
        candidates,
        request.question,
        boost_recent=request.boost_recent,
        boost_technical=request.boost_technical,
        boost_titles=request.boost_titles,
    )
    top = reranked[: request.top_k or settings.rerank_top_k]
    logger.debug("Rerank stats for top %d: %s", len(top), get_ranking_stats(top))

    try:
        result = await asyncio.to_thread(
            generate_answer,
            request.question,
            top,
            [turn.model_dump() for turn in request.history],
        )
    except APIStatusError as exc:
        # Upstream LLM errors (overloaded, rate limited) become a JSON 503 response.
        raise HTTPException(status_code=503, detail=f"LLM unavailable: {exc.message}") from exc

    return QueryResponse(
        answer=result["answer"],
        sources=[_to_source(r) for r in top],
        model=result.get("model"),
        usage=result.get("usage"),
    )
