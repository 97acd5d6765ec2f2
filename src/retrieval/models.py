"""Data models for retrieval and reranking."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ResultType(StrEnum):
    """Kind of knowledge chunk a search hit came from."""

    LECTURE = "lecture"
    RESOURCE = "resource"


@dataclass
class SearchResult:
    """A candidate chunk returned by vector search.

    ``metadata`` is whatever was stored at ingestion time; the reranker reads
    ``lecture_title`` / ``resource_title``, ``instructor`` / ``author``,
    ``created_at``, ``type`` (resource sub-type) and ``url`` when present.
    """

    id: str
    type: ResultType
    text: str
    similarity: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return str(self.metadata.get("lecture_title") or self.metadata.get("resource_title") or "")


@dataclass
class RankingFactors:
    """Contribution of each scoring dimension, kept for explainability."""

    vector_similarity: float = 0.0
    recency_boost: float = 0.0
    metadata_match: float = 0.0
    code_presence: float = 0.0
    resource_type_relevance: float = 0.0
    title_relevance: float = 0.0


@dataclass
class RerankedResult:
    """A search result with its composite score."""

    result: SearchResult
    final_score: float
    ranking_factors: RankingFactors

    @property
    def id(self) -> str:
        return self.result.id

    @property
    def similarity(self) -> float:
        return self.result.similarity


@dataclass
class RankingStats:
    """Aggregate view over a reranked result set."""

    average_score: float = 0.0
    score_range: tuple[float, float] = (0.0, 0.0)
    top_factors: list[str] = field(default_factory=list)
