"""Embedding helpers using OpenAI text-embedding-3-small."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TypeVar

from openai import OpenAI

from src.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def embed_texts(
    texts: list[str],
    model: str | None = None,
    client: OpenAI | None = None,
) -> list[list[float]]:
    """Embed a list of texts using the OpenAI embeddings API.

    Args:
        texts: Strings to embed.
        model: OpenAI embedding model name (defaults to ``settings.embedding_model``).
        client: Optional pre-built client; one is created from settings otherwise.

    Returns:
        A list of embedding vectors (one per input text, in input order).
    """
    if not texts:
        return []
    client = client or OpenAI(api_key=settings.openai_api_key or None)
    response = client.embeddings.create(
        input=texts,
        model=model or settings.embedding_model,
        dimensions=settings.embedding_dimensions,
    )
    return [item.embedding for item in response.data]


def embed_items(
    items: Sequence[T],
    get_text: Callable[[T], str],
    batch_size: int = 10,
    on_progress: Callable[[int, int], None] | None = None,
    client: OpenAI | None = None,
) -> list[tuple[T, list[float]]]:
    """Embed *items* in batches and return ``(item, embedding)`` pairs.

    Args:
        items: Chunks (transcript or resource) to embed.
        get_text: Extracts the text to embed from an item.
        batch_size: Number of texts sent per API request.
        on_progress: Called with ``(completed, total)`` after each batch.
        client: Optional OpenAI client shared across batches.

    Returns:
        ``(item, embedding_vector)`` tuples in input order.
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")

    client = client or OpenAI(api_key=settings.openai_api_key or None)
    pairs: list[tuple[T, list[float]]] = []
    total = len(items)

    for start in range(0, total, batch_size):
        batch = items[start : start + batch_size]
        embeddings = embed_texts([get_text(item) for item in batch], client=client)
        pairs.extend(zip(batch, embeddings, strict=True))
        logger.debug("Embedded %d/%d items", len(pairs), total)
        if on_progress is not None:
            on_progress(len(pairs), total)

    return pairs
