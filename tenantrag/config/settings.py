"""Application settings loaded from environment variables via pydantic-settings.

Two sources, in priority order:

    1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``
    2. A ``.env`` file in the working directory

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults
apply when neither source sets a value.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """tenantrag settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Embeddings / chat ===
    # Empty string = "not configured".
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (TogetherAI, etc.)
    openai_embedding_model: str = ""  # defaults to text-embedding-3-small
    openai_chat_model: str = ""  # defaults to gpt-4o-mini

    # === Vector store ===
    vector_store: str = "chromadb"  # "chromadb" or "memory"
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "tenantrag"

    # === Chunking ===
    chunk_max_size: int = 1000
    chunk_overlap: int = 200
    chunk_strategy: str = "fixed_size"

    # === Retrieval ===
    retrieval_top_k: int = 5

    # === Ingestion ===
    ingest_max_concurrency: int = 0  # 0 = host logical core count
    worker_queue_size: int = 100

    # === Tenants ===
    tenants_config_path: str = "config/config.yaml"

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_providers(self) -> list[str]:
        """Return the external providers that have credentials configured."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        return providers
