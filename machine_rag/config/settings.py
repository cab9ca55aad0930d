"""Application settings loaded from environment variables via pydantic-settings.

Two sources are read, in priority order:

  1. **Environment variables**, e.g. ``RAG_EMBED_DIM=1024``
  2. **.env file** in the working directory (local development)

Field ``rag_embed_dim`` maps to env var ``RAG_EMBED_DIM``; pydantic-settings
matches names case-insensitively.  Defaults apply when neither source sets
a value.  Empty strings mean "not configured": the factories in
``machine_rag.main`` skip live-data providers whose URL is empty.
"""

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """machine-rag settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Completion / embedding service (OpenAI-compatible) ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # e.g. https://openai.inference.de-txl.ionos.com/v1
    openai_text_model: str = "meta-llama/Llama-3.3-70B-Instruct"
    openai_embedding_model: str = "BAAI/bge-m3"
    llm_timeout_seconds: float = 60.0

    # === Ingestion ===
    rag_collection_name: str = "factory-jsonld"
    rag_ingest_dir: str = "./data/jsonld"
    rag_embed_dim: int = 1024
    rag_embed_metric: Literal["COSINE", "L2", "IP"] = "COSINE"
    rag_token_chunk_min: int = 200
    rag_token_chunk_max: int = 400
    rag_token_chunk_overlap: int = 80
    rag_pdf_concurrency: int = 1
    rag_parent_max_chars: int = 12000
    rag_section_min_tokens: int = 80
    rag_upload_batch_size: int = 100

    # === Vector store ===
    vector_store_backend: Literal["chromadb", "milvus"] = "chromadb"
    chromadb_persist_dir: str = "./data/chromadb"
    milvus_api_url: str = ""
    milvus_token: str = ""
    milvus_db_name: str = "default"

    # === Retrieval ===
    retrieval_top_k: int = 5

    # === Live data ===
    timeseries_api_url: str = ""  # PostgREST base URL
    timeseries_api_key: str = ""
    timeseries_table: str = "entityhistory"
    timeseries_attribute_prefix: str = "https://industry-fusion.org/base/v0.1/"
    timeseries_row_limit: int = 100
    alerta_api_url: str = ""
    alerta_api_key: str = ""
    http_timeout_seconds: float = 15.0

    # === Query behaviour ===
    default_timezone: str = "Europe/Berlin"
    history_max_turns: int = 10
    chart_preview_limit: int = 100

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_chunk_sizes(self) -> "Settings":
        if self.rag_token_chunk_max <= 0:
            raise ValueError("RAG_TOKEN_CHUNK_MAX must be positive")
        if not 0 <= self.rag_token_chunk_min <= self.rag_token_chunk_max:
            raise ValueError("RAG_TOKEN_CHUNK_MIN must be between 0 and RAG_TOKEN_CHUNK_MAX")
        if not 0 <= self.rag_token_chunk_overlap < self.rag_token_chunk_max:
            raise ValueError("RAG_TOKEN_CHUNK_OVERLAP must be smaller than RAG_TOKEN_CHUNK_MAX")
        if self.rag_embed_dim <= 0:
            raise ValueError("RAG_EMBED_DIM must be positive")
        return self

    def has_timeseries_store(self) -> bool:
        """Return True when a time-series store URL is configured."""
        return bool(self.timeseries_api_url)

    def has_alert_service(self) -> bool:
        """Return True when an Alerta URL is configured."""
        return bool(self.alerta_api_url)
