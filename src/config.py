from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_batch_size: int = 10
    llm_model: str = "claude-sonnet-4-20250514"

    # Chunking
    chunk_min_tokens: int = 300
    chunk_max_tokens: int = 800
    chunk_overlap: int = 50

    # Lecture-start detection
    skip_intro: bool = True
    lecture_start_keyword_window: int = 20
    lecture_start_fallback_seconds: float = 600.0
    lecture_start_fallback_min_chars: int = 50

    # Retrieval
    search_match_threshold: float = 0.7
    search_match_count: int = 20
    rerank_top_k: int = 5

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
