"""Per-request collaborators for the API routes."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Annotated

from fastapi import Depends

from src.ingestion.storage import KnowledgeStore
from src.retrieval.search import KnowledgeSearchClient


def get_store() -> KnowledgeStore:
    return KnowledgeStore()


def get_search_client(
    store: Annotated[KnowledgeStore, Depends(get_store)],
) -> Iterator[KnowledgeSearchClient]:
    client = KnowledgeSearchClient(store=store)
    try:
        yield client
    finally:
        client.close()
