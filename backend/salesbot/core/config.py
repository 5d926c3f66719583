from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Sales Assistant Fallback Engine"
    API_V1_STR: str = "/api/v1"

    # CORS
    ALLOWED_ORIGINS: str = "*"
    ENVIRONMENT: str = "development"

    # Remote delegation (n8n-style webhook)
    DELEGATE_WEBHOOK_URL: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("DELEGATE_WEBHOOK_URL", "N8N_WEBHOOK_URL")
    )
    DELEGATE_API_KEY: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("DELEGATE_API_KEY", "N8N_API_KEY")
    )
    DELEGATE_TIMEOUT_MS: int = Field(
        default=30000, validation_alias=AliasChoices("DELEGATE_TIMEOUT_MS", "N8N_TIMEOUT_MS")
    )

    # Shopify policy source
    SHOPIFY_API_VERSION: str = "2024-01"
    SHOPIFY_ACCESS_TOKEN: Optional[str] = None
    SHOPIFY_ACCESS_TOKENS_JSON: str = "{}"  # {"shop.myshopify.com": "shpat_..."}

    # Policy cache
    POLICY_CACHE_TTL_SECONDS: int = 3600
    POLICY_FETCH_TIMEOUT_SECONDS: float = 10.0
    POLICY_CACHE_SINGLE_FLIGHT: bool = False
    POLICY_MIN_CHARS: int = 50
    POLICY_PREVIEW_MAX_CHARS: int = 400

    # Ranking
    MAX_RECOMMENDATIONS: int = 6
    GENERIC_RELEVANCE_SCORE: int = 50

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    DEBUG_LOG_FILE: str = "debug.log"
    DEBUG_TRACE_ENABLED: bool = False

    # Load backend-local .env regardless of current working directory.
    # Ignore unrelated env vars so frontend settings don't crash the backend.
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        case_sensitive=True,
        extra="ignore",
    )

settings = Settings()
