"""Settings for the TraceLayer extraction engine, read from the environment."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Pull a local .env into os.environ; unreadable files are ignored and the
# process environment is used as-is
try:
    load_dotenv()
except OSError:
    pass


class Settings(BaseSettings):
    """Engine settings. Names match the environment variables exactly."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Entity store
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Service role key used by the engine")

    # Text-generation providers (at least one key is needed to run a pipeline)
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key")
    ANTHROPIC_API_KEY: str = Field(default="", description="Anthropic API key")
    GEMINI_API_KEY: str = Field(default="", description="Google Gemini API key")

    LLM_PROVIDER: str = Field(
        default="openai", description="Default provider: openai, anthropic, gemini"
    )
    OPENAI_MODEL: str = Field(default="gpt-4o", description="OpenAI chat model")
    ANTHROPIC_MODEL: str = Field(
        default="claude-sonnet-4-20250514", description="Anthropic messages model"
    )
    GEMINI_MODEL: str = Field(default="gemini-2.0-flash", description="Gemini model")
    LLM_TEMPERATURE: float = Field(default=0.3, description="Sampling temperature")

    # Environment
    ENGINE_ENV: str = Field(default="dev", description="Environment: dev, test, staging, prod")
    LOG_LEVEL: str = Field(
        default="", description="Log level override; DEBUG in dev and INFO elsewhere when empty"
    )

    # Requirement chunking
    CHUNK_MAX_CHARS: int = Field(default=35_000, description="Max chars per extraction window")
    CHUNK_OVERLAP_CHARS: int = Field(
        default=2_000, description="Overlap between consecutive extraction windows"
    )

    # Prompt size caps
    CLASSIFY_MAX_CHARS: int = Field(
        default=32_000, description="Max source chars sent for classification"
    )
    CORPUS_MAX_CHARS: int = Field(
        default=60_000, description="Max chars of the concatenated corpus for corpus-wide stages"
    )
    BRD_SOURCE_SNIPPET_CHARS: int = Field(
        default=15_000, description="Max chars of each source quoted into the BRD prompt"
    )
    BRD_SOURCE_CONTEXT_MAX_CHARS: int = Field(
        default=50_000, description="Max chars of all source snippets in the BRD prompt"
    )
    BRD_EXCERPT_MAX_CHARS: int = Field(
        default=1_000, description="Max chars of each evidence excerpt in the BRD prompt"
    )

    # Deduplication
    TITLE_SIMILARITY_THRESHOLD: float = Field(
        default=0.70, description="Token overlap ratio at which two titles are near-duplicates"
    )

    # Max output tokens per stage
    CLASSIFY_MAX_TOKENS: int = Field(default=8192, description="Classification output budget")
    REQUIREMENTS_MAX_TOKENS: int = Field(default=16384, description="Requirement output budget")
    STAKEHOLDERS_MAX_TOKENS: int = Field(default=12288, description="Stakeholder output budget")
    DECISIONS_MAX_TOKENS: int = Field(default=12288, description="Decision output budget")
    TIMELINE_MAX_TOKENS: int = Field(default=8192, description="Timeline output budget")
    CONFLICTS_MAX_TOKENS: int = Field(default=8192, description="Conflict output budget")
    BRD_MAX_TOKENS: int = Field(default=32768, description="BRD synthesis output budget")

    # Conflict labels: "batch_position" (CON-### by position in the current batch)
    # or "monotonic" (continue after the highest persisted CON-###)
    CONFLICT_ID_STRATEGY: str = Field(
        default="batch_position", description="Conflict label allocation strategy"
    )


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
