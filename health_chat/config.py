"""Client configuration with environment variable loading.

Pydantic-based configuration for the chat and analysis endpoints.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file
load_dotenv()

DEFAULT_APOLOGY = "Sorry, I encountered an error. Please try again."


class ClientConfig(BaseModel):
    """Configuration for the health assistant client.

    Attributes:
        api_base_url: Base URL of the assistant API.
        stream_path: Path of the streaming chat endpoint.
        analyze_path: Path of the document analysis endpoint.
        timeout: Transport timeout in seconds, bounding stalled streams.
        apology_message: Text substituted into a turn when a request fails.
    """

    # Environment-sourced defaults go through the same validators
    model_config = ConfigDict(validate_default=True)

    api_base_url: str = Field(
        default_factory=lambda: os.getenv("HEALTH_CHAT_API_URL", "http://localhost:8000"),
        description="Base URL of the assistant API",
    )
    stream_path: str = Field(
        default="/api/chat/stream",
        description="Streaming chat endpoint path",
    )
    analyze_path: str = Field(
        default="/api/analyze-image",
        description="Document analysis endpoint path",
    )
    timeout: float = Field(
        default_factory=lambda: float(os.getenv("HEALTH_CHAT_TIMEOUT", "120")),
        gt=0.0,
        description="Transport timeout in seconds",
    )
    apology_message: str = Field(
        default=DEFAULT_APOLOGY,
        min_length=1,
        description="User-facing text shown when a request fails",
    )

    @field_validator("api_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                "API base URL must start with http:// or https://. Set HEALTH_CHAT_API_URL in .env"
            )
        return v

    @property
    def stream_url(self) -> str:
        return f"{self.api_base_url}{self.stream_path}"

    @property
    def analyze_url(self) -> str:
        return f"{self.api_base_url}{self.analyze_path}"


def get_client_config() -> ClientConfig:
    """Create client configuration from environment.

    Returns:
        Configured ClientConfig instance.

    Raises:
        ValueError: If the configured base URL is invalid.
    """
    return ClientConfig()
