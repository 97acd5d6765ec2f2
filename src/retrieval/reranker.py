"""Hybrid reranking: vector similarity plus explainable relevance boosts.

Each boost is a :class:`RankingFactor` strategy with its weights taken from a
frozen :class:`RankingWeights`, so individual factors can be tuned or swapped
without touching call sites. The final score is the base similarity plus the
sum of enabled factors, clamped to ``[0, 1]``. Results are sorted by final
score with Python's stable sort, so exact ties keep their input order.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from datetime import UTC, datetime
from typing import Any

from src.resources.validators import ResourceType
from src.retrieval.models import RankingFactors, RankingStats, RerankedResult, SearchResult

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 60 * 60 * 24


@dataclass(frozen=True)
class RankingWeights:
    """Every tunable number used by the reranker."""

    # Recency: linear decay over the first window, a smaller decay over the
    # second, then a flat floor for anything older.
    recency_max: float = 0.10
    recency_mid: float = 0.05
    recency_floor: float = 0.02
    recency_full_window_days: float = 30.0
    recency_decay_window_days: float = 60.0

    # Metadata: title and author/instructor matching
    title_exact: float = 0.10
    title_partial: float = 0.05
    author_match: float = 0.05
    metadata_cap: float = 0.15

    code_per_family: float = 0.01
    code_cap: float = 0.08

    resource_cap: float = 0.12

    title_relevance_max: float = 0.10


@dataclass(frozen=True)
class ResourceCategory:
    """A resource category the query can ask for explicitly."""

    name: str
    type_tag: ResourceType
    url_markers: tuple[str, ...]
    triggers: tuple[str, ...]
    boost: float


RESOURCE_CATEGORIES: tuple[ResourceCategory, ...] = (
    ResourceCategory(
        name="github",
        type_tag=ResourceType.GITHUB,
        url_markers=("github.com",),
        triggers=("github", "repository", "repo", "code", "development", "git"),
        boost=0.06,
    ),
    ResourceCategory(
        name="youtube",
        type_tag=ResourceType.YOUTUBE,
        url_markers=("youtube.com", "youtu.be"),
        triggers=("video", "tutorial", "watch", "demo", "presentation", "lecture"),
        boost=0.06,
    ),
    ResourceCategory(
        name="blog",
        type_tag=ResourceType.BLOG,
        url_markers=("blog", "medium.com"),
        triggers=("article", "blog", "post", "guide", "tutorial", "documentation"),
        boost=0.06,
    ),
    ResourceCategory(
        name="rss",
        type_tag=ResourceType.RSS,
        url_markers=(),
        triggers=("news", "update", "feed", "rss", "latest"),
        boost=0.04,
    ),
)

TECHNICAL_KEYWORDS: tuple[str, ...] = (
    "code",
    "function",
    "class",
    "import",
    "programming",
    "development",
    "api",
    "database",
    "sql",
    "javascript",
    "python",
    "react",
    "node",
    "docker",
    "kubernetes",
    "git",
    "github",
    "deployment",
    "server",
)

# One pattern per family of code-like content
CODE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"```[\s\S]*?```"),
    re.compile(r"function\s+\w+"),
    re.compile(r"class\s+\w+"),
    re.compile(r"import\s+.*from"),
    re.compile(r"const\s+\w+\s*="),
    re.compile(r"let\s+\w+\s*="),
    re.compile(r"def\s+\w+"),
    re.compile(r"\.py|\.js|\.ts|\.jsx|\.tsx"),
    re.compile(r"npm\s+install|pip\s+install"),
    re.compile(r"docker|kubernetes|k8s"),
)


@dataclass(frozen=True)
class QueryContext:
    """Query text prepared once per rerank call."""

    text: str
    words: tuple[str, ...]
    significant_words: tuple[str, ...]
    now: datetime

    @classmethod
    def from_query(cls, query: str, now: datetime | None = None) -> QueryContext:
        text = query.lower().strip()
        words = tuple(text.split())
        return cls(
            text=text,
            words=words,
            significant_words=tuple(w for w in words if len(w) > 2),
            now=now or datetime.now(UTC),
        )


def _word_overlaps(word: str, title_words: list[str]) -> bool:
    return any(title_word in word or word in title_word for title_word in title_words)


def _parse_created_at(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        created = value
    elif isinstance(value, str) and value:
        try:
            created = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Ignoring unparseable created_at: %r", value)
            return None
    else:
        return None

    if created.tzinfo is None:
        created = created.replace(tzinfo=UTC)
    return created


class RankingFactor(ABC):
    """One scoring dimension. ``name`` is the matching RankingFactors field."""

    name: str

    def __init__(self, weights: RankingWeights) -> None:
        self._weights = weights

    @abstractmethod
    def score(self, result: SearchResult, query: QueryContext) -> float:
        """Return this factor's contribution for *result*."""
        ...


class RecencyFactor(RankingFactor):
    """Newer content gets a small boost that decays with age."""

    name = "recency_boost"

    def score(self, result: SearchResult, query: QueryContext) -> float:
        created = _parse_created_at(result.metadata.get("created_at"))
        if created is None:
            return 0.0

        w = self._weights
        days = max(0.0, (query.now - created).total_seconds() / SECONDS_PER_DAY)
        if days < w.recency_full_window_days:
            return w.recency_max * (1 - days / w.recency_full_window_days)
        if days < w.recency_full_window_days + w.recency_decay_window_days:
            elapsed = days - w.recency_full_window_days
            return w.recency_mid * (1 - elapsed / w.recency_decay_window_days)
        return w.recency_floor


class MetadataMatchFactor(RankingFactor):
    """Query matches against the title and the instructor/author name."""

    name = "metadata_match"

    def score(self, result: SearchResult, query: QueryContext) -> float:
        if not query.text:
            return 0.0

        w = self._weights
        score = 0.0
        title = result.title.lower()
        if title:
            if query.text in title:
                score += w.title_exact
            else:
                title_words = title.split()
                matching = [word for word in query.words if _word_overlaps(word, title_words)]
                score += len(matching) / len(query.words) * w.title_partial

        names = (
            str(result.metadata.get("instructor") or "").lower(),
            str(result.metadata.get("author") or "").lower(),
        )
        if any(name and query.text in name for name in names):
            score += w.author_match

        return min(score, w.metadata_cap)


class CodePresenceFactor(RankingFactor):
    """Boost code-heavy chunks, but only for technical queries."""

    name = "code_presence"

    def score(self, result: SearchResult, query: QueryContext) -> float:
        if not any(keyword in query.text for keyword in TECHNICAL_KEYWORDS):
            return 0.0
        families = sum(1 for pattern in CODE_PATTERNS if pattern.search(result.text))
        return min(families * self._weights.code_per_family, self._weights.code_cap)


class ResourceTypeFactor(RankingFactor):
    """Boost resources whose category the query asks for (repo, video, article, feed)."""

    name = "resource_type_relevance"

    def __init__(
        self,
        weights: RankingWeights,
        categories: tuple[ResourceCategory, ...] = RESOURCE_CATEGORIES,
    ) -> None:
        super().__init__(weights)
        self._categories = categories

    def score(self, result: SearchResult, query: QueryContext) -> float:
        resource_type = str(result.metadata.get("type") or "").lower()
        url = str(result.metadata.get("url") or "").lower()

        score = 0.0
        for category in self._categories:
            is_category = resource_type == category.type_tag or any(
                marker in url for marker in category.url_markers
            )
            if is_category and any(trigger in query.text for trigger in category.triggers):
                score += category.boost
        return min(score, self._weights.resource_cap)


class TitleRelevanceFactor(RankingFactor):
    """Share of significant query words found in the title."""

    name = "title_relevance"

    def score(self, result: SearchResult, query: QueryContext) -> float:
        title = result.title.lower()
        if not title or not query.significant_words:
            return 0.0

        title_words = title.split()
        matching = sum(1 for word in query.significant_words if _word_overlaps(word, title_words))
        if matching == 0:
            return 0.0
        ratio = matching / len(query.significant_words)
        return min(ratio * self._weights.title_relevance_max, self._weights.title_relevance_max)


def default_factors(weights: RankingWeights) -> list[RankingFactor]:
    return [
        RecencyFactor(weights),
        MetadataMatchFactor(weights),
        CodePresenceFactor(weights),
        ResourceTypeFactor(weights),
        TitleRelevanceFactor(weights),
    ]


_FACTOR_FIELDS = {f.name for f in fields(RankingFactors)} - {"vector_similarity"}


class HybridReranker:
    """Composes ranking factors into a single score per search result."""

    def __init__(
        self,
        weights: RankingWeights | None = None,
        factors: list[RankingFactor] | None = None,
    ) -> None:
        self.weights = weights or RankingWeights()
        self.factors = factors if factors is not None else default_factors(self.weights)
        unknown = [f.name for f in self.factors if f.name not in _FACTOR_FIELDS]
        if unknown:
            msg = f"Unknown ranking factor(s): {unknown}. Expected one of {sorted(_FACTOR_FIELDS)}"
            raise ValueError(msg)

    def rerank(
        self,
        results: list[SearchResult],
        query: str,
        *,
        boost_recent: bool = True,
        boost_technical: bool = True,
        boost_titles: bool = True,
        now: datetime | None = None,
    ) -> list[RerankedResult]:
        """Score every result and return them sorted by descending final score."""
        disabled: set[str] = set()
        if not boost_recent:
            disabled.add(RecencyFactor.name)
        if not boost_technical:
            disabled.add(CodePresenceFactor.name)
        if not boost_titles:
            disabled.add(TitleRelevanceFactor.name)

        context = QueryContext.from_query(query, now)
        reranked = [self._score(result, context, disabled) for result in results]
        reranked.sort(key=lambda r: r.final_score, reverse=True)

        if reranked:
            logger.debug(
                "Reranked %d results; top score %.3f (%s)",
                len(reranked),
                reranked[0].final_score,
                reranked[0].id,
            )
        return reranked

    def _score(
        self,
        result: SearchResult,
        query: QueryContext,
        disabled: set[str],
    ) -> RerankedResult:
        factors = RankingFactors(vector_similarity=result.similarity)
        total = result.similarity
        for factor in self.factors:
            if factor.name in disabled:
                continue
            contribution = factor.score(result, query)
            setattr(factors, factor.name, contribution)
            total += contribution

        return RerankedResult(
            result=result,
            final_score=min(max(total, 0.0), 1.0),
            ranking_factors=factors,
        )


def rerank_results(
    results: list[SearchResult],
    query: str,
    *,
    boost_recent: bool = True,
    boost_technical: bool = True,
    boost_titles: bool = True,
    weights: RankingWeights | None = None,
    now: datetime | None = None,
) -> list[RerankedResult]:
    """Rerank *results* for *query* with the default factor set.

    Args:
        results: Candidates from vector search, each with a 0-1 similarity.
        query: The raw user query.
        boost_recent: Apply the recency boost.
        boost_technical: Apply the code-presence boost.
        boost_titles: Apply the title-word relevance boost.
        weights: Override the default weights.
        now: Reference time for recency (defaults to the current UTC time).

    Returns:
        Reranked results, highest ``final_score`` first.
    """
    reranker = HybridReranker(weights)
    return reranker.rerank(
        results,
        query,
        boost_recent=boost_recent,
        boost_technical=boost_technical,
        boost_titles=boost_titles,
        now=now,
    )


def get_ranking_stats(results: list[RerankedResult]) -> RankingStats:
    """Mean score, score range and factor categories ranked by total contribution."""
    if not results:
        return RankingStats()

    scores = [r.final_score for r in results]
    totals = {
        "recency": sum(r.ranking_factors.recency_boost for r in results),
        "metadata": sum(r.ranking_factors.metadata_match for r in results),
        "code": sum(r.ranking_factors.code_presence for r in results),
        "resource": sum(r.ranking_factors.resource_type_relevance for r in results),
        "title": sum(r.ranking_factors.title_relevance for r in results),
    }
    top_factors = sorted(totals, key=lambda name: totals[name], reverse=True)

    return RankingStats(
        average_score=sum(scores) / len(scores),
        score_range=(min(scores), max(scores)),
        top_factors=top_factors,
    )


def explain_ranking(result: RerankedResult) -> str:
    """Human-readable breakdown of how *result* was scored."""
    f = result.ranking_factors
    lines = [
        f"Ranking Analysis for {result.id}:",
        f"- Vector Similarity: {f.vector_similarity:.3f}",
        f"- Recency Boost: {f.recency_boost:.3f}",
        f"- Metadata Match: {f.metadata_match:.3f}",
        f"- Code Presence: {f.code_presence:.3f}",
        f"- Resource Type: {f.resource_type_relevance:.3f}",
        f"- Title Relevance: {f.title_relevance:.3f}",
        f"- Final Score: {result.final_score:.3f}",
    ]
    return "\n".join(lines)
