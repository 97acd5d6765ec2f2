"""Token estimation helpers.

Counts are approximations (about 1.3 tokens per whitespace-delimited word),
good enough for sizing chunks before they are sent to the embedding model.
"""

from __future__ import annotations

import math
import re

TOKENS_PER_WORD = 1.3
# Truncation keeps a margin below the limit since the ratio is only an estimate.
TRUNCATION_SAFETY = 0.9

SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


def tokens_for_word_count(word_count: int) -> int:
    """Estimated token count for *word_count* words."""
    if word_count <= 0:
        return 0
    return math.ceil(word_count * TOKENS_PER_WORD)


def estimate_token_count(text: str) -> int:
    """Estimate how many model tokens *text* will consume."""
    if not text:
        return 0
    return tokens_for_word_count(len(text.split()))


def estimate_token_counts(texts: list[str]) -> list[int]:
    return [estimate_token_count(t) for t in texts]


def is_within_token_limit(text: str, max_tokens: int) -> bool:
    return estimate_token_count(text) <= max_tokens


def truncate_to_token_limit(text: str, max_tokens: int) -> str:
    """Cut *text* down to roughly *max_tokens* using the chars-per-token ratio.

    The cut is character based and may land inside a word; callers that care
    about word boundaries trim the result further.
    """
    estimated = estimate_token_count(text)
    if estimated <= max_tokens:
        return text

    chars_per_token = len(text) / estimated
    max_chars = math.floor(max_tokens * chars_per_token * TRUNCATION_SAFETY)
    return text[:max_chars].strip()


def split_text_by_token_limit(text: str, max_tokens_per_chunk: int) -> list[str]:
    """Pack sentences greedily into pieces of at most *max_tokens_per_chunk*.

    A single sentence that is too long on its own is truncated.
    """
    pieces: list[str] = []
    sentences = [s.strip() for s in SENTENCE_SPLIT_RE.split(text) if s.strip()]

    current = ""
    for sentence in sentences:
        candidate = f"{current} {sentence}" if current else sentence
        if estimate_token_count(candidate) <= max_tokens_per_chunk:
            current = candidate
            continue

        if current:
            pieces.append(current)
            current = ""
        if is_within_token_limit(sentence, max_tokens_per_chunk):
            current = sentence
        else:
            pieces.append(truncate_to_token_limit(sentence, max_tokens_per_chunk))

    if current:
        pieces.append(current)
    return pieces
