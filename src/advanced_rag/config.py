"""Centralized configuration for the advanced RAG pipeline."""

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChunkConfig(BaseSettings):
    """Text chunking parameters (characters)."""

    model_config = SettingsConfigDict(env_prefix="CHUNK_", frozen=True)

    size: int = Field(default=1200, gt=0)
    overlap: int = Field(default=200, ge=0)

    @model_validator(mode="after")
    def _overlap_less_than_size(self) -> "ChunkConfig":
        if self.overlap >= self.size:
            msg = f"overlap ({self.overlap}) must be less than size ({self.size})"
            raise ValueError(msg)
        return self


class QueryExpansionConfig(BaseSettings):
    """Multi-query expansion settings."""

    model_config = SettingsConfigDict(
        env_prefix="ADVANCED_RAG_QUERY_EXPANSION_", frozen=True
    )

    enabled: bool = True
    num_queries: int = Field(default=3, ge=0)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)


class SelfCritiqueConfig(BaseSettings):
    """Self-critique and answer improvement settings."""

    model_config = SettingsConfigDict(
        env_prefix="ADVANCED_RAG_SELF_CRITIQUE_", frozen=True, populate_by_name=True
    )

    enabled: bool = True
    # Aliased fields skip env_prefix, so the prefixed name is listed too.
    threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices(
            "ADVANCED_RAG_SELF_CRITIQUE_THRESHOLD", "ADVANCED_RAG_CRITIQUE_THRESHOLD"
        ),
    )
    max_improvement_attempts: int = Field(default=2, ge=0)


class RerankingConfig(BaseSettings):
    """Passage ranking settings."""

    model_config = SettingsConfigDict(env_prefix="ADVANCED_RAG_RERANKING_", frozen=True)

    enabled: bool = True
    top_n: int = Field(default=10, gt=0)


class SynthesisConfig(BaseSettings):
    """Answer synthesis settings."""

    model_config = SettingsConfigDict(
        env_prefix="ADVANCED_RAG_SYNTHESIS_", frozen=True, populate_by_name=True
    )

    max_context_documents: int = Field(
        default=8,
        gt=0,
        validation_alias=AliasChoices(
            "ADVANCED_RAG_SYNTHESIS_MAX_CONTEXT_DOCUMENTS",
            "ADVANCED_RAG_MAX_CONTEXT_DOCS",
        ),
    )
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    include_citations: bool = True
    max_tokens: int = Field(default=4000, gt=0)


class PerformanceConfig(BaseSettings):
    """Timeout, retry and cache settings for generation calls."""

    model_config = SettingsConfigDict(
        env_prefix="ADVANCED_RAG_PERFORMANCE_", frozen=True
    )

    timeout_s: float = Field(default=30.0, gt=0.0)
    max_retries: int = Field(default=3, ge=0)
    retry_delay_s: float = Field(default=1.0, ge=0.0)
    cache_enabled: bool = False
    cache_size: int = Field(default=128, gt=0)


class LLMConfig(BaseSettings):
    """Ollama generation service settings."""

    model_config = SettingsConfigDict(env_prefix="LLM_", frozen=True)

    model: str = "gemma3:1b"
    host: str | None = None
    api_key: str | None = None
    max_tokens: int = Field(default=512, gt=0)


class VectorStoreConfig(BaseSettings):
    """ChromaDB vector store settings."""

    model_config = SettingsConfigDict(env_prefix="VS_", frozen=True)

    db_path: str = "./chroma_db"
    collection_name: str = "advanced_rag"
    embedding_model: str = "all-MiniLM-L6-v2"
    batch_size: int = Field(default=96, gt=0)


class IngestConfig(BaseSettings):
    """Document ingestion settings."""

    model_config = SettingsConfigDict(env_prefix="INGEST_", frozen=True)

    documents_dir: str = "./documents"
    extract_metadata: bool = False
    max_files: int = Field(default=10, gt=0)
    max_file_mb: int = Field(default=100, gt=0)


class ServerConfig(BaseSettings):
    """HTTP server settings, with optional TLS."""

    model_config = SettingsConfigDict(env_prefix="SERVER_", frozen=True)

    host: str = "0.0.0.0"
    port: int = Field(default=3000, gt=0, le=65535)
    ssl_enabled: bool = False
    certfile: str = "./certs/cert.pem"
    keyfile: str = "./certs/key.pem"


class AppConfig(BaseSettings):
    """Top-level application configuration."""

    model_config = SettingsConfigDict(frozen=True)

    chunk: ChunkConfig = Field(default_factory=ChunkConfig)
    query_expansion: QueryExpansionConfig = Field(default_factory=QueryExpansionConfig)
    self_critique: SelfCritiqueConfig = Field(default_factory=SelfCritiqueConfig)
    reranking: RerankingConfig = Field(default_factory=RerankingConfig)
    synthesis: SynthesisConfig = Field(default_factory=SynthesisConfig)
    performance: PerformanceConfig = Field(default_factory=PerformanceConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    vector_store: VectorStoreConfig = Field(default_factory=VectorStoreConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
