"""Claude-powered answer generation with source attribution."""

from __future__ import annotations

from typing import Any

from anthropic import Anthropic
from anthropic.types import MessageParam, TextBlock

from src.config import settings
from src.ingestion.timestamps import seconds_to_timestamp
from src.retrieval.models import RerankedResult, ResultType

SYSTEM_PROMPT = (
    "You are a teaching assistant for a course. Answer questions based on the "
    "provided lecture transcript excerpts and learning resources.\n\n"
    "Rules:\n"
    "- Only answer based on the provided context. If the answer isn't "
    "in the context, say so.\n"
    "- Cite your sources using [Source N] notation.\n"
    "- Mention the lecture and timestamp when citing a lecture.\n"
    "- Be concise and direct; include code examples only when the sources do."
)


def _source_label(result: RerankedResult) -> str:
    meta = result.result.metadata
    title = result.result.title or "Untitled"
    if result.result.type is ResultType.LECTURE:
        timestamp = meta.get("timestamp")
        if isinstance(timestamp, int | float):
            timestamp = seconds_to_timestamp(timestamp)
        return f"Lecture: {title}" + (f" [{timestamp}]" if timestamp else "")
    kind = meta.get("type", "resource")
    return f"{str(kind).capitalize()}: {title}"


def format_context(results: list[RerankedResult]) -> str:
    """Render reranked results as numbered sources for the prompt."""
    return "\n\n".join(
        f"[Source {i + 1}] {_source_label(r)}\n{r.result.text}" for i, r in enumerate(results)
    )


def generate_answer(
    question: str,
    results: list[RerankedResult],
    history: list[dict[str, str]] | None = None,
    client: Anthropic | None = None,
) -> dict[str, Any]:
    """Generate an answer using Claude with source attribution.

    Args:
        question: The user's question.
        results: Reranked chunks, best first (already cut to top-K).
        history: Earlier turns as ``{"role": ..., "content": ...}`` dicts.
        client: Optional pre-built Anthropic client.

    Returns:
        Dictionary with answer, model, and usage info.
    """
    messages: list[MessageParam] = [
        {"role": "assistant" if turn["role"] == "assistant" else "user", "content": turn["content"]}
        for turn in history or []
    ]
    messages.append(
        {
            "role": "user",
            "content": f"Context from lectures and resources:\n\n{format_context(results)}\n\nQuestion: {question}",
        }
    )

    client = client or Anthropic(api_key=settings.anthropic_api_key)
    response = client.messages.create(
        model=settings.llm_model,
        max_tokens=1024,
        system=SYSTEM_PROMPT,
        messages=messages,
    )

    # response.content[0] is a union of block types; plain text is requested.
    block = response.content[0]
    if not isinstance(block, TextBlock):
        raise ValueError(f"Expected TextBlock from Claude, got {type(block).__name__}")

    return {
        "answer": block.text,
        "model": response.model,
        "usage": {
            "input_tokens": response.usage.input_tokens,
            "output_tokens": response.usage.output_tokens,
        },
    }
