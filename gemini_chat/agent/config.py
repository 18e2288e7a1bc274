"""Configuration with environment variable loading.

Pydantic-based configuration for the Gemini client and the CSV ingestor.
Values default from the environment; a ``.env`` file is honoured.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from gemini_chat.models.schemas import ModelTier

# Load environment variables from .env file
load_dotenv()

CSV_MAX_CHARS = 1_000_000
DEFAULT_CSV_PROXY_URL = "https://api.allorigins.win/raw"


def api_key_from_env() -> str:
    return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or os.getenv("API_KEY", "")


class ModelServiceConfig(BaseModel):
    """Configuration for the hosted Gemini model.

    Attributes:
        api_key: API key for model access.
    """

    api_key: str = Field(
        default_factory=api_key_from_env,
        validate_default=True,
        description="API key for the Gemini service",
    )

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Validate that API key is provided and non-empty."""
        if not v or not v.strip():
            raise ValueError("API key required. Set GEMINI_API_KEY or API_KEY in .env")
        return v.strip()


class ChatConfig(BaseModel):
    """Configuration for the chat client and CSV ingestion.

    Attributes:
        proxy_url: CORS relay that remote CSV URLs are fetched through.
        max_chars: Hard ceiling on the raw CSV text length.
        fetch_timeout: Seconds allowed for fetching a remote CSV.
        default_model: Model tier selected when a conversation starts.
    """

    default_model: ModelTier = Field(
        default_factory=lambda: os.getenv("GEMINI_MODEL", ModelTier.FLASH.value),
        validate_default=True,
        description="Model selected for new conversations",
    )
    proxy_url: str = Field(
        default_factory=lambda: os.getenv("CSV_PROXY_URL", DEFAULT_CSV_PROXY_URL),
        description="CORS relay endpoint taking the target in a 'url' query parameter",
    )
    max_chars: int = Field(
        default_factory=lambda: os.getenv("CSV_MAX_CHARS", str(CSV_MAX_CHARS)),
        ge=1,
        validate_default=True,
        description="Maximum accepted CSV length in characters",
    )
    fetch_timeout: float = Field(
        default_factory=lambda: os.getenv("CSV_FETCH_TIMEOUT", "30"),
        gt=0,
        validate_default=True,
        description="Timeout in seconds for remote CSV fetches",
    )


def get_model_config() -> ModelServiceConfig:
    """Create model configuration from environment.

    Returns:
        Configured ModelServiceConfig instance.

    Raises:
        ValidationError: If no API key is set.
    """
    return ModelServiceConfig()


def get_chat_config() -> ChatConfig:
    """Create chat client configuration from environment."""
    return ChatConfig()
