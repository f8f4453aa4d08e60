"""Configuration management."""

import os
from pydantic import BaseModel, Field
from dotenv import load_dotenv

from .exceptions import ConfigurationError

# Load environment variables
load_dotenv()

DEFAULT_API_KEY = "demo-api-token"
FAILURE_POLICIES = ("mock", "mark-failed")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


class Config(BaseModel):
    """Application configuration."""

    # API Keys
    bria_api_key: str = Field(
        default_factory=lambda: (
            os.getenv("BRIA_API_KEY")
            or os.getenv("NEXT_PUBLIC_BRIA_API_KEY")
            or DEFAULT_API_KEY
        ),
        description="Bria API token (falls back to a demo token that always hits the mock path)"
    )

    # Endpoints
    bria_base_url: str = Field(
        default_factory=lambda: os.getenv("BRIA_BASE_URL", "https://engine.prod.bria-api.com"),
        description="Bria API base URL"
    )
    proxy_url: str = Field(
        default_factory=lambda: os.getenv("BRIA_PROXY_URL", ""),
        description="Optional local proxy exposing /api/generate and /api/poll"
    )

    # Timing
    debounce_seconds: float = Field(
        default_factory=lambda: _env_float("PRODUCER_DEBOUNCE_SECONDS", 0.8),
        description="Script re-parse debounce delay"
    )
    poll_interval: float = Field(
        default_factory=lambda: _env_float("PRODUCER_POLL_INTERVAL", 2.0),
        description="Seconds between status polls"
    )
    poll_max_attempts: int = Field(
        default_factory=lambda: _env_int("PRODUCER_POLL_MAX_ATTEMPTS", 90),
        description="Maximum status polls before giving up"
    )
    mock_latency: float = Field(
        default_factory=lambda: _env_float("PRODUCER_MOCK_LATENCY", 1.5),
        description="Simulated latency of the fallback generator"
    )
    analysis_timeout: float = Field(
        default_factory=lambda: _env_float("PRODUCER_ANALYSIS_TIMEOUT", 3.0),
        description="Timeout for structured prompt analysis"
    )
    request_timeout: float = Field(
        default_factory=lambda: _env_float("PRODUCER_REQUEST_TIMEOUT", 60.0),
        description="HTTP request timeout"
    )

    # Generation
    structure_ref_influence: float = Field(
        default=0.7,
        description="Default structure influence for the Reimagine pipeline"
    )
    failure_policy: str = Field(
        default_factory=lambda: os.getenv("PRODUCER_FAILURE_POLICY", "mock"),
        description="What to do when a generation fails: 'mock' or 'mark-failed'"
    )

    class Config:
        """Pydantic config."""
        frozen = False

    def validate_required(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If a value is missing or out of range.
        """
        problems: list[str] = []

        if not self.bria_api_key:
            problems.append("BRIA_API_KEY is empty")
        if self.failure_policy not in FAILURE_POLICIES:
            problems.append(
                f"PRODUCER_FAILURE_POLICY must be one of {', '.join(FAILURE_POLICIES)}. "
                f"Got: {self.failure_policy}"
            )
        if self.poll_max_attempts < 1:
            problems.append("PRODUCER_POLL_MAX_ATTEMPTS must be at least 1")
        if self.poll_interval < 0 or self.debounce_seconds < 0 or self.mock_latency < 0:
            problems.append("Timing values must not be negative")

        if problems:
            raise ConfigurationError(
                f"Invalid configuration: {'; '.join(problems)}",
                details={"problems": problems},
            )

    @property
    def uses_demo_key(self) -> bool:
        return self.bria_api_key == DEFAULT_API_KEY


# Global config instance
config = Config()
