"""Configuration management for the document intelligence service."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # OpenAI configuration (required)
    OPENAI_API_KEY: str = Field(..., description="OpenAI API key")

    # Environment
    DOCINTEL_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")
    LOG_LEVEL: str | None = Field(default=None, description="Overrides the env-derived log level")

    # Embedding configuration
    EMBEDDING_MODEL: str = Field(
        default="text-embedding-3-small", description="OpenAI embedding model"
    )
    EMBEDDING_DIM: int = Field(default=1536, description="Embedding vector dimension")
    EMBEDDING_BATCH_SIZE: int = Field(default=64, description="Texts per embedding request")

    # Chunking configuration
    CHUNK_SIZE_TOKENS: int = Field(default=1200, description="Target tokens per chunk")
    CHUNK_OVERLAP_TOKENS: int = Field(default=150, description="Token overlap between chunks")
    CHUNK_INSERT_BATCH_SIZE: int = Field(default=100, description="Chunk rows per insert")

    # Completion models
    CHAT_MODEL: str = Field(default="gpt-4o-mini", description="Model for chat answers")
    SUMMARY_MODEL: str = Field(default="gpt-4o-mini", description="Model for summaries")
    ANALYSIS_MODEL: str = Field(default="gpt-4o", description="Model for insights and validation")
    CLASSIFIER_MODEL: str = Field(
        default="gpt-4o-mini", description="Model for the technical-document gate"
    )

    # Retrieval configuration
    CHAT_TOP_K: int = Field(default=6, description="Chunks retrieved per chat question")
    CHAT_SIMILARITY_THRESHOLD: float = Field(
        default=0.15, description="Similarity floor for chat retrieval"
    )
    SEARCH_DEFAULT_TOP_K: int = Field(default=5, description="Default search result count")
    SEARCH_DEFAULT_THRESHOLD: float = Field(default=0.5, description="Default search floor")

    # Analysis limits
    SUMMARY_MAX_CHUNKS: int = Field(default=30, description="Max chunks fed to summaries")
    SUMMARY_MAX_CHARS: int = Field(default=40_000, description="Max chars sent for a summary")
    INSIGHTS_MAX_CHARS: int = Field(default=100_000, description="Max chars sent for insights")
    VALIDATION_MAX_CHARS: int = Field(
        default=20_000, description="Max chars of a document sent for validation"
    )

    # Upload gating
    ENFORCE_TECHNICAL_DOCUMENTS: bool = Field(
        default=True, description="Reject uploads classified as non-technical"
    )
    TECHNICAL_REJECTION_CONFIDENCE: float = Field(
        default=0.7, description="Classifier confidence required to reject a document"
    )
    WEEKLY_UPLOAD_LIMIT: int = Field(default=5, description="Documents per user per week")
    MAX_UPLOAD_BYTES: int = Field(default=10 * 1024 * 1024, description="Max upload size")
    MAX_PDF_PAGES: int = Field(default=50, description="Max pages accepted in a PDF")

    # Lightweight TTL cache
    TTL_CACHE_MAX_SIZE: int = Field(default=100, description="Max entries in TTL caches")
    TTL_CACHE_DEFAULT_SECONDS: float = Field(default=3600, description="Default TTL in seconds")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
