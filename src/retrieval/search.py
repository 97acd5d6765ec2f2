"""Vector search over lecture and resource chunks."""

from __future__ import annotations

import logging
from typing import Any

from openai import OpenAI

from src.config import Settings, settings
from src.ingestion.storage import KnowledgeStore
from src.retrieval.models import ResultType, SearchResult

logger = logging.getLogger(__name__)


def _to_search_result(row: dict[str, Any]) -> SearchResult:
    return SearchResult(
        id=str(row["id"]),
        type=ResultType(row.get("type", ResultType.LECTURE)),
        text=row.get("text", ""),
        similarity=float(row.get("similarity", 0.0)),
        metadata=row.get("metadata") or {},
    )


class KnowledgeSearchClient:
    """Embeds questions and runs the ``search_knowledge`` vector search.

    Owns an OpenAI client (created lazily unless injected) and uses a
    :class:`KnowledgeStore` for the database side. Call ``reset()`` to drop
    cached clients, ``close()`` when done.
    """

    def __init__(
        self,
        store: KnowledgeStore | None = None,
        openai_client: OpenAI | None = None,
        app_settings: Settings | None = None,
    ) -> None:
        self._settings = app_settings or settings
        self.store = store or KnowledgeStore(app_settings=self._settings)
        self._openai = openai_client

    @property
    def openai(self) -> OpenAI:
        if self._openai is None:
            self._openai = OpenAI(api_key=self._settings.openai_api_key or None)
        return self._openai

    def embed_query(self, query: str) -> list[float]:
        """Generate an embedding vector for the given query string."""
        response = self.openai.embeddings.create(
            input=[query],
            model=self._settings.embedding_model,
            dimensions=self._settings.embedding_dimensions,
        )
        return response.data[0].embedding

    def search(
        self,
        query: str,
        cohort_id: str | None = None,
        match_count: int | None = None,
        match_threshold: float | None = None,
        result_type: ResultType | str | None = None,
    ) -> list[SearchResult]:
        """Return chunks similar to *query*, best first as ordered by the database.

        Args:
            query: The user's question.
            cohort_id: Restrict to one cohort's knowledge.
            match_count: Maximum rows (defaults to ``settings.search_match_count``).
            match_threshold: Minimum cosine similarity (defaults to settings).
            result_type: ``"lecture"`` or ``"resource"`` to search one kind only.
        """
        embedding = self.embed_query(query)
        rows = self.store.search_knowledge(
            embedding,
            match_threshold=(
                match_threshold if match_threshold is not None else self._settings.search_match_threshold
            ),
            match_count=match_count or self._settings.search_match_count,
            cohort_id=cohort_id,
            result_type=ResultType(result_type).value if result_type else None,
        )
        logger.debug("Vector search returned %d rows", len(rows))
        return [_to_search_result(row) for row in rows]

    def reset(self) -> None:
        self._openai = None
        self.store.reset()

    def close(self) -> None:
        if self._openai is not None:
            self._openai.close()
        self.reset()
